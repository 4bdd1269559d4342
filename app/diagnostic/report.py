"""
Result projections — on-screen teaser and the full report (HTML + plain text).

Both report formats render from the same context built by _report_context(),
so every figure in the HTML also appears, identically formatted, in the text.
"""
import os
from dataclasses import dataclass, asdict
from typing import Dict, List, Any, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.config import BRAND_NAME, BRAND_TAGLINE
from app.diagnostic.engine import DiagnosticResult, classify_bucket

TEASER_LEAK_COUNT = 2


@dataclass(frozen=True)
class TeaserResult:
    leak_score: int
    leak_bucket: str
    leak_bucket_label: str
    top_leaks: List[Dict[str, str]]
    best_simulation: Dict[str, Any]
    revenue_est: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def generate_teaser(result: DiagnosticResult) -> TeaserResult:
    """Abbreviated view for immediate display: top findings + best what-if."""
    best = result.simulations[0]
    for sim in result.simulations[1:]:
        if sim.uplift > best.uplift:
            best = sim

    return TeaserResult(
        leak_score=result.leak_score,
        leak_bucket=result.leak_bucket,
        leak_bucket_label=result.leak_bucket_label,
        top_leaks=[
            {'title': leak.title, 'description': leak.description, 'impact': leak.impact}
            for leak in result.leaks[:TEASER_LEAK_COUNT]
        ],
        best_simulation={
            'scenario': best.scenario,
            'uplift': best.uplift,
            'uplift_percent': best.uplift_percent,
        },
        revenue_est=result.revenue_est,
    )


# ── Template rendering ───────────────────────────────────────────────────────

def format_money(value) -> str:
    """Jinja2 filter: 50025 → '50,025.00'."""
    return f'{float(value or 0):,.2f}'


def format_number(value) -> str:
    """Jinja2 filter: thousands separators, integers stay integral, fractions to 2 places."""
    value = value or 0
    if isinstance(value, float) and not value.is_integer():
        return f'{value:,.2f}'.rstrip('0').rstrip('.')
    return f'{int(value):,}'


def display_host(store_url: Optional[str]) -> str:
    """'https://mystore.com' → 'mystore.com'."""
    if not store_url:
        return ''
    return store_url.replace('https://', '', 1).replace('http://', '', 1)


_env = Environment(
    loader=FileSystemLoader(os.path.join(os.path.dirname(__file__), 'templates')),
    autoescape=select_autoescape(enabled_extensions=('html',), default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)
_env.filters['money'] = format_money
_env.filters['number'] = format_number
_env.filters['host'] = display_host


def _report_context(result, calendar_url, first_name=None, store_url=None):
    return {
        'inputs': result.inputs,
        'first_name': first_name,
        'store_url': store_url,
        'leak_score': result.leak_score,
        'leak_bucket_label': result.leak_bucket_label,
        'score_color': classify_bucket(result.leak_score)['color'],
        'leaks': result.leaks,
        'simulations': result.simulations,
        'revenue_est': result.revenue_est,
        'revenue_per_session': result.revenue_per_session,
        'calendar_url': calendar_url,
        'brand_name': BRAND_NAME,
        'brand_tagline': BRAND_TAGLINE,
    }


def generate_full_report(result: DiagnosticResult, calendar_url: str,
                         first_name: str = None, store_url: str = None) -> str:
    """Full HTML report for email delivery and storage."""
    template = _env.get_template('full_report.html')
    return template.render(**_report_context(result, calendar_url, first_name, store_url)).strip()


def generate_full_report_text(result: DiagnosticResult, calendar_url: str,
                              first_name: str = None, store_url: str = None) -> str:
    """Plain-text version of the full report (email fallback)."""
    template = _env.get_template('full_report.txt')
    return template.render(**_report_context(result, calendar_url, first_name, store_url)).strip()


def render_template(name: str, **context) -> str:
    """Render any other template in this package (e.g. operator notifications)."""
    return _env.get_template(name).render(**context).strip()
