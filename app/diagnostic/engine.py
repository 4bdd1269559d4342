"""
Diagnostic scoring engine — revenue baseline, leak score, findings, what-if simulations.

Pure functions over a validated StoreMetrics record: no I/O, no shared state.
Timestamps are supplied by the caller (run_diagnostic defaults to now/UTC).
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Any, Optional, Tuple

from app.diagnostic.rules import (
    LEAK_FAMILIES,
    BUCKETS,
    SIMULATIONS,
    match_tier,
    load_leak_catalog,
)


@dataclass(frozen=True)
class StoreMetrics:
    """Trailing-30-day store metrics, already bounds-checked."""
    sessions_30d: int
    orders_30d: int
    conversion_rate: float   # percent, 0-20
    aov: float               # currency units, 0-5000
    abandoned_carts_30d: int


@dataclass(frozen=True)
class LeakFinding:
    id: str
    title: str
    description: str
    impact: str              # high / medium / low
    impact_score: int
    category: str            # conversion / cart / aov / traffic
    check_first: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WhatIfScenario:
    scenario: str
    cr_change: float
    aov_change: float
    new_revenue: int
    uplift: int
    uplift_percent: int


@dataclass(frozen=True)
class DiagnosticResult:
    inputs: StoreMetrics
    revenue_est: float
    revenue_per_session: float
    leak_score: int
    leak_bucket: str
    leak_bucket_label: str
    leaks: Tuple[LeakFinding, ...]
    simulations: Tuple[WhatIfScenario, ...]
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['analyzed_at'] = self.analyzed_at.isoformat()
        return data


def round_half_up(value: float, places: int = 0):
    """Round like a cash register (0.5 goes up), not banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def _revenue(sessions: int, conversion_rate: float, aov: float) -> float:
    return sessions * (conversion_rate / 100) * aov


# ── Core operations ──────────────────────────────────────────────────────────

def compute_baseline(metrics: StoreMetrics) -> Dict[str, float]:
    """Estimated 30-day revenue and revenue per session, both in cents precision."""
    revenue_est = _revenue(metrics.sessions_30d, metrics.conversion_rate, metrics.aov)
    revenue_per_session = revenue_est / metrics.sessions_30d if metrics.sessions_30d > 0 else 0.0

    return {
        'revenue_est': round_half_up(revenue_est, 2),
        'revenue_per_session': round_half_up(revenue_per_session, 2),
    }


def compute_leak_score(metrics: StoreMetrics) -> int:
    """100 minus one tier penalty per metric family, clamped to 0-100."""
    score = 100
    for _family, tiers in LEAK_FAMILIES:
        tier = match_tier(tiers, metrics)
        if tier:
            score -= tier.penalty
    return max(0, min(100, score))


def classify_bucket(score: int) -> Dict[str, str]:
    """Map a leak score to its bucket key, label and report colour."""
    for upper, bucket, label, color in BUCKETS:
        if upper is None or score < upper:
            return {'bucket': bucket, 'label': label, 'color': color}
    raise ValueError(f"No bucket for score {score}")


def identify_leaks(metrics: StoreMetrics) -> List[LeakFinding]:
    """One finding per triggered family, highest impact first."""
    catalog = load_leak_catalog()
    leaks = []

    for _family, tiers in LEAK_FAMILIES:
        tier = match_tier(tiers, metrics)
        if not tier:
            continue
        definition = catalog[tier.finding_id]
        leaks.append(LeakFinding(
            id=tier.finding_id,
            title=definition['title'],
            description=definition['description'],
            impact=definition['impact'],
            impact_score=tier.penalty,
            category=definition['category'],
            check_first=tuple(definition.get('check_first', [])),
        ))

    # sorted() is stable, so ties keep family order
    return sorted(leaks, key=lambda leak: leak.impact_score, reverse=True)


def run_simulations(metrics: StoreMetrics, baseline: Dict[str, float]) -> List[WhatIfScenario]:
    """All four what-if scenarios, each applying a single delta to the baseline formula."""
    revenue_est = baseline['revenue_est']
    simulations = []

    for label, cr_change, aov_change in SIMULATIONS:
        new_revenue = _revenue(
            metrics.sessions_30d,
            metrics.conversion_rate + cr_change,
            metrics.aov + aov_change,
        )
        delta = new_revenue - revenue_est
        simulations.append(WhatIfScenario(
            scenario=label,
            cr_change=cr_change,
            aov_change=aov_change,
            new_revenue=round_half_up(new_revenue),
            uplift=round_half_up(delta),
            uplift_percent=round_half_up(delta / revenue_est * 100) if revenue_est > 0 else 0,
        ))

    return simulations


def run_diagnostic(metrics: StoreMetrics, analyzed_at: Optional[datetime] = None) -> DiagnosticResult:
    """Run the full analysis for one submission."""
    baseline = compute_baseline(metrics)
    leak_score = compute_leak_score(metrics)
    bucket = classify_bucket(leak_score)

    return DiagnosticResult(
        inputs=metrics,
        revenue_est=baseline['revenue_est'],
        revenue_per_session=baseline['revenue_per_session'],
        leak_score=leak_score,
        leak_bucket=bucket['bucket'],
        leak_bucket_label=bucket['label'],
        leaks=tuple(identify_leaks(metrics)),
        simulations=tuple(run_simulations(metrics, baseline)),
        analyzed_at=analyzed_at or datetime.now(timezone.utc),
    )
