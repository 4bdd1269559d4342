"""
Submission persistence helpers — called from the diagnostic and admin routes.

create_submission() propagates DB errors (the request fails without a record);
record_integration_status() is best-effort and never raises.
"""
import json
import logging
from datetime import datetime, timezone

from app.database import get_session
from app.models.submission import DiagnosticSubmission

logger = logging.getLogger('services.submissions')


def create_submission(form, result, teaser, full_report_html, tracking=None):
    """INSERT one submission row and return its generated id."""
    tracking = tracking or {}
    leaks = result.leaks

    session = get_session()
    try:
        submission = DiagnosticSubmission(
            first_name=form.first_name,
            email=form.email,
            store_url=form.store_url,
            monthly_revenue_range=form.monthly_revenue_range,
            sessions_30d=form.sessions_30d,
            orders_30d=form.orders_30d,
            conversion_rate=form.conversion_rate,
            aov=form.aov,
            abandoned_carts_30d=form.abandoned_carts_30d,
            revenue_est=result.revenue_est,
            revenue_per_session=result.revenue_per_session,
            leak_score=result.leak_score,
            leak_bucket=result.leak_bucket,
            top_leak_1=leaks[0].title if len(leaks) > 0 else 'None',
            top_leak_2=leaks[1].title if len(leaks) > 1 else 'None',
            teaser_json=json.dumps(teaser.to_dict()),
            full_report_html=full_report_html,
            ip_address=tracking.get('ip_address'),
            user_agent=tracking.get('user_agent'),
            utm_source=tracking.get('utm_source'),
            utm_medium=tracking.get('utm_medium'),
            utm_campaign=tracking.get('utm_campaign'),
        )
        session.add(submission)
        session.commit()
        submission_id = submission.id
        logger.info(
            "Submission %s stored (score=%d)", submission_id, result.leak_score,
            extra={'submission_id': submission_id},
        )
        return submission_id
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def record_integration_status(submission_id, outcome):
    """
    Stamp the integrations that succeeded.

    outcome: IntegrationOutcome (lead_email, owner_email, crm results).
    """
    now = datetime.now(timezone.utc)
    updates = {}
    if outcome.lead_email.success:
        updates['email_sent_at'] = now
    if outcome.owner_email.success:
        updates['owner_notified_at'] = now
    if outcome.crm.success:
        updates['ghl_synced_at'] = now

    if not updates:
        return

    session = get_session()
    try:
        submission = session.get(DiagnosticSubmission, submission_id)
        if submission is None:
            logger.warning("Submission %s vanished before status update", submission_id)
            return
        for column, value in updates.items():
            setattr(submission, column, value)
        session.commit()
    except Exception:
        session.rollback()
        logger.error("Failed to record integration status for %s", submission_id, exc_info=True)
    finally:
        session.close()


def list_submissions(limit=500):
    """Newest-first submissions for the admin view."""
    session = get_session()
    try:
        rows = (
            session.query(DiagnosticSubmission)
            .order_by(DiagnosticSubmission.created_at.desc())
            .limit(limit)
            .all()
        )
        return [row.to_dict() for row in rows]
    finally:
        session.close()


def get_submission(submission_id):
    """Single submission (including stored report) or None."""
    session = get_session()
    try:
        row = session.get(DiagnosticSubmission, submission_id)
        if row is None:
            return None
        data = row.to_dict()
        data['teaser'] = json.loads(row.teaser_json) if row.teaser_json else None
        data['full_report_html'] = row.full_report_html
        return data
    finally:
        session.close()
