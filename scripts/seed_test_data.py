#!/usr/bin/env python3
"""
Seed demo submissions for the admin view.

Creates one submission per scoring profile:
  1. Healthy store (solid, no findings)
  2. Mid-size store with two moderate leaks (solid)
  3. Struggling store (meaningful, three findings)
  4. Brand-new store with no traffic (all-zero metrics)

Integrations are NOT called; integration timestamps stay empty.

Usage:
    python scripts/seed_test_data.py          # seed all profiles
    python scripts/seed_test_data.py --clear  # wipe seeded rows first

Requires: DATABASE_URL set (or defaults to sqlite:///local.db).
"""
import sys
import os
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import CALENDAR_URL
from app.database import get_session, init_db
from app.diagnostic.engine import run_diagnostic
from app.diagnostic.report import generate_teaser, generate_full_report
from app.models.submission import DiagnosticSubmission
from app.services.submissions import create_submission
from app.validation import LeadForm

# Seeded rows are recognisable by their email domain
SEED_DOMAIN = 'seed.example.com'

PROFILES = [
    {'firstName': 'Morgan', 'storeUrl': 'ironsightsupply.com', 'monthlyRevenueRange': '150k-500k',
     'sessions30d': 42000, 'orders30d': 1300, 'conversionRate': 3.1, 'aov': 185, 'abandonedCarts30d': 900},
    {'firstName': 'Dana', 'storeUrl': 'rangereadygear.com', 'monthlyRevenueRange': '50k-150k',
     'sessions30d': 15000, 'orders30d': 350, 'conversionRate': 2.3, 'aov': 145, 'abandonedCarts30d': 450},
    {'firstName': 'Riley', 'storeUrl': 'backcountrykit.myshopify.com', 'monthlyRevenueRange': 'under-50k',
     'sessions30d': 10000, 'orders30d': 100, 'conversionRate': 1.2, 'aov': 70, 'abandonedCarts30d': 300},
    {'firstName': 'Sam', 'storeUrl': 'newbrandoutfitters.com', 'monthlyRevenueRange': None,
     'sessions30d': 0, 'orders30d': 0, 'conversionRate': 0, 'aov': 0, 'abandonedCarts30d': 0},
]


def seed_profile(profile):
    form = LeadForm.model_validate(dict(profile, email=f"{profile['firstName'].lower()}@{SEED_DOMAIN}"))
    result = run_diagnostic(form.to_metrics())
    html = generate_full_report(result, CALENDAR_URL, first_name=form.first_name, store_url=form.store_url)
    submission_id = create_submission(
        form, result, generate_teaser(result), html, tracking={'utm_source': 'seed'},
    )
    print(f'  {form.first_name:<8} score={result.leak_score:<3} {result.leak_bucket:<10} {submission_id}')
    return submission_id


def clear_seeded_data():
    session = get_session()
    try:
        deleted = (
            session.query(DiagnosticSubmission)
            .filter(DiagnosticSubmission.email.like(f'%@{SEED_DOMAIN}'))
            .delete(synchronize_session=False)
        )
        session.commit()
        print(f'Cleared {deleted} seeded submissions.')
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description='Seed demo diagnostic submissions')
    parser.add_argument('--clear', action='store_true', help='Clear seeded data before (or instead of) seeding')
    parser.add_argument('--clear-only', action='store_true', help='Only clear, do not re-seed')
    args = parser.parse_args()

    init_db()

    if args.clear or args.clear_only:
        clear_seeded_data()
        if args.clear_only:
            return

    print('Seeding submissions...')
    for profile in PROFILES:
        seed_profile(profile)
    print('\nDone! Log in at /api/admin/login and GET /api/admin/submissions to verify.')


if __name__ == '__main__':
    main()
