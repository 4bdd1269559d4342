"""
Leak rule tables — tiered penalties per metric family, bucket bands, what-if deltas.

Each family is an ordered list of tiers; the first tier whose condition holds
applies, the rest are skipped. The tier penalty is both the score deduction
and the finding's impact score, so the scorer and the finding list can never
disagree. Changing a threshold is a data edit here, not a logic edit.

Finding copy (titles, descriptions, checklists) lives in leak_catalog.yaml.
"""
import os
import logging
from collections import namedtuple

import yaml

logger = logging.getLogger('diagnostic.rules')


Tier = namedtuple('Tier', ['condition', 'penalty', 'finding_id'])


# ── Metric families (evaluation order = tie-break order) ─────────────────────

CONVERSION_TIERS = [
    Tier(lambda m: m.conversion_rate < 1.5, 25, 'low_conversion'),
    Tier(lambda m: m.conversion_rate < 2.0, 15, 'low_conversion'),
    Tier(lambda m: m.conversion_rate < 2.5, 8, 'conversion_medium'),
]

# Relative to order volume so small stores aren't penalized for raw counts
CART_TIERS = [
    Tier(lambda m: m.abandoned_carts_30d > m.orders_30d * 2, 20, 'high_cart_abandon'),
    Tier(lambda m: m.abandoned_carts_30d > m.orders_30d, 12, 'cart_medium'),
]

AOV_TIERS = [
    Tier(lambda m: m.aov < 90, 12, 'low_aov'),
    Tier(lambda m: m.aov < 130, 6, 'low_aov'),
]

LEAK_FAMILIES = [
    ('conversion', CONVERSION_TIERS),
    ('cart', CART_TIERS),
    ('aov', AOV_TIERS),
]


def match_tier(tiers, metrics):
    """Return the first tier whose condition holds, or None."""
    for tier in tiers:
        if tier.condition(metrics):
            return tier
    return None


# ── Buckets: (upper bound exclusive, key, label, report colour) ──────────────

BUCKETS = [
    (40, 'major', 'Major Leakage Detected', '#fca5a5'),
    (70, 'meaningful', 'Meaningful Leakage Detected', '#fcd34d'),
    (None, 'solid', 'Solid Fundamentals', '#86efac'),
]


# ── What-if scenarios: (label, conversion delta in pp, AOV delta) ────────────

SIMULATIONS = [
    ('Conversion Rate +0.3%', 0.3, 0),
    ('Conversion Rate +0.5%', 0.5, 0),
    ('AOV +$15', 0, 15),
    ('AOV +$25', 0, 25),
]


# ── Finding catalog (YAML) ───────────────────────────────────────────────────

_leak_catalog = None


def load_leak_catalog():
    """Load finding definitions from YAML, cached in memory after first read."""
    global _leak_catalog
    if _leak_catalog is not None:
        return _leak_catalog

    catalog_path = os.path.join(os.path.dirname(__file__), 'leak_catalog.yaml')
    with open(catalog_path, 'r') as f:
        _leak_catalog = yaml.safe_load(f)['findings']
    logger.info("Leak catalog loaded (%d findings)", len(_leak_catalog))
    return _leak_catalog
