"""
Notifications — SendGrid v3 mail API for lead reports and operator alerts.

Two messages per submission: the full report to the lead, and a summary to the
operator. Failures are logged and returned as EmailResult, never raised.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from app.config import (
    SENDGRID_API_KEY, SENDGRID_API_URL,
    FROM_EMAIL, FROM_NAME, OWNER_NOTIFY_EMAIL,
    APP_URL, CALENDAR_URL, REVENUE_RANGES,
)
from app.diagnostic.engine import DiagnosticResult, classify_bucket
from app.diagnostic.report import (
    generate_full_report,
    generate_full_report_text,
    render_template,
    display_host,
)
from app.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.notifications')


@dataclass
class EmailResult:
    success: bool
    error: Optional[str] = None


def _send(to_email: str, subject: str, html: str, text: str, from_name: str = FROM_NAME):
    """POST one message to SendGrid. Raises on transport or HTTP errors."""
    payload = {
        'personalizations': [{'to': [{'email': to_email}]}],
        'from': {'email': FROM_EMAIL, 'name': from_name},
        'subject': subject,
        # SendGrid requires text/plain before text/html
        'content': [
            {'type': 'text/plain', 'value': text},
            {'type': 'text/html', 'value': html},
        ],
    }

    def _post():
        response = requests.post(
            SENDGRID_API_URL,
            headers={
                'Authorization': f'Bearer {SENDGRID_API_KEY}',
                'Content-Type': 'application/json',
            },
            json=payload,
            timeout=10,
        )
        response.raise_for_status()
        return response

    return get_breaker('sendgrid').call(_post)


def send_report_to_lead(email: str, first_name: str, result: DiagnosticResult,
                        store_url: str = None) -> EmailResult:
    """Send the full diagnostic report to the person who filled in the form."""
    if not SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not set — skipping lead email")
        return EmailResult(False, 'SendGrid not configured')

    try:
        html = generate_full_report(result, CALENDAR_URL, first_name=first_name, store_url=store_url)
        text = generate_full_report_text(result, CALENDAR_URL, first_name=first_name, store_url=store_url)
        _send(email, f"{first_name}, Your Revenue Leak Diagnostic Report", html, text)
        logger.info("Report sent to %s", email)
        return EmailResult(True)
    except Exception as e:
        logger.error("Failed to send report to %s: %s", email, e, extra={'integration': 'sendgrid'})
        return EmailResult(False, str(e))


def send_owner_notification(submission_id: str, form, result: DiagnosticResult) -> EmailResult:
    """Tell the operator a new lead came in, with a link to the admin view."""
    if not SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not set — skipping owner notification")
        return EmailResult(False, 'SendGrid not configured')
    if not OWNER_NOTIFY_EMAIL:
        logger.warning("OWNER_NOTIFY_EMAIL not set — skipping owner notification")
        return EmailResult(False, 'Owner email not configured')

    try:
        context = dict(
            first_name=form.first_name,
            email=form.email,
            store_url=form.store_url,
            revenue_range=REVENUE_RANGES.get(form.monthly_revenue_range) if form.monthly_revenue_range else None,
            inputs=result.inputs,
            leak_score=result.leak_score,
            leak_bucket_label=result.leak_bucket_label,
            score_color=classify_bucket(result.leak_score)['color'],
            revenue_est=result.revenue_est,
            leaks=result.leaks,
            admin_url=f"{APP_URL}/admin?submission={submission_id}",
        )
        subject = (
            f"New Lead: {form.first_name} ({display_host(form.store_url)}) "
            f"- Score: {result.leak_score}"
        )
        _send(
            OWNER_NOTIFY_EMAIL,
            subject,
            render_template('owner_notification.html', **context),
            render_template('owner_notification.txt', **context),
            from_name=f"{FROM_NAME} Diagnostic Tool",
        )
        logger.info("Owner notification sent for submission %s", submission_id)
        return EmailResult(True)
    except Exception as e:
        logger.error(
            "Failed to send owner notification for %s: %s", submission_id, e,
            extra={'submission_id': submission_id, 'integration': 'sendgrid'},
        )
        return EmailResult(False, str(e))


def send_all_emails(submission_id: str, form, result: DiagnosticResult) -> Dict[str, EmailResult]:
    """Send both messages concurrently and wait for both."""
    with ThreadPoolExecutor(max_workers=2) as executor:
        lead_future = executor.submit(
            send_report_to_lead, form.email, form.first_name, result, form.store_url,
        )
        owner_future = executor.submit(send_owner_notification, submission_id, form, result)
        return {
            'lead_email': lead_future.result(),
            'owner_email': owner_future.result(),
        }
