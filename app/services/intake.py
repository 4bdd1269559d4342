"""
Submission flow — engine → persistence → side-effect fan-out → status update.

The diagnostic result is final before any integration runs. Email and CRM sync
run concurrently and are joined; each comes back as a result object, so their
failures only show up as missing timestamps on the submission.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from app.config import CALENDAR_URL, GHL_WEBHOOK_URL
from app.diagnostic.engine import run_diagnostic
from app.diagnostic.report import generate_teaser, generate_full_report
from app.services.notifications import send_all_emails, EmailResult
from app.services.ghl import send_to_ghl, send_to_ghl_webhook, CrmSyncResult
from app.services.submissions import create_submission, record_integration_status

logger = logging.getLogger('services.intake')


@dataclass
class IntegrationOutcome:
    lead_email: EmailResult
    owner_email: EmailResult
    crm: CrmSyncResult


def _dispatch_emails(submission_id, form, result):
    try:
        return send_all_emails(submission_id, form, result)
    except Exception as e:
        logger.error(
            "Email dispatch crashed for %s: %s", submission_id, e,
            exc_info=True, extra={'submission_id': submission_id, 'integration': 'sendgrid'},
        )
        failed = EmailResult(False, str(e))
        return {'lead_email': failed, 'owner_email': failed}


def _sync_crm(form, result):
    try:
        crm = send_to_ghl(form, result)
        if GHL_WEBHOOK_URL:
            webhook = send_to_ghl_webhook(form, result)
            if not crm.success and webhook.success:
                return webhook
        return crm
    except Exception as e:
        logger.error("CRM sync crashed for %s: %s", form.email, e, exc_info=True, extra={'integration': 'ghl'})
        return CrmSyncResult(False, error=str(e))


def run_integrations(submission_id, form, result) -> IntegrationOutcome:
    """Fan out email + CRM sync, wait for both (join-all)."""
    with ThreadPoolExecutor(max_workers=2) as executor:
        email_future = executor.submit(_dispatch_emails, submission_id, form, result)
        crm_future = executor.submit(_sync_crm, form, result)
        emails = email_future.result()
        crm = crm_future.result()

    outcome = IntegrationOutcome(
        lead_email=emails['lead_email'],
        owner_email=emails['owner_email'],
        crm=crm,
    )
    logger.info(
        "Integrations for %s: lead_email=%s owner_email=%s crm=%s",
        submission_id, outcome.lead_email.success, outcome.owner_email.success, outcome.crm.success,
        extra={'submission_id': submission_id},
    )
    return outcome


def process_submission(form, tracking=None):
    """
    Handle one validated form end to end.

    Returns (submission_id, teaser, outcome). Persistence errors propagate;
    integration errors never do.
    """
    result = run_diagnostic(form.to_metrics())
    teaser = generate_teaser(result)
    full_report_html = generate_full_report(
        result, CALENDAR_URL, first_name=form.first_name, store_url=form.store_url,
    )

    submission_id = create_submission(form, result, teaser, full_report_html, tracking)

    outcome = run_integrations(submission_id, form, result)
    record_integration_status(submission_id, outcome)

    return submission_id, teaser, outcome
