"""
GoHighLevel CRM sync — contact upsert + pipeline opportunity, plus legacy webhook.

Never blocks the submission: every failure comes back as CrmSyncResult.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional

import requests

from app.config import (
    GHL_API_KEY, GHL_LOCATION_ID, GHL_API_URL, GHL_API_VERSION,
    GHL_PIPELINE_ID, GHL_PIPELINE_STAGE_ID, GHL_WEBHOOK_URL, GHL_BRAND_TAG,
    OPPORTUNITY_UPLIFT_SHARE,
)
from app.diagnostic.engine import DiagnosticResult, round_half_up
from app.diagnostic.report import display_host
from app.services.circuit_breaker import get_breaker

logger = logging.getLogger('services.ghl')

BUCKET_TAGS = {
    'major': 'diagnostic-major-leakage',
    'meaningful': 'diagnostic-meaningful-leakage',
    'solid': 'diagnostic-solid-fundamentals',
}


class GhlError(Exception):
    """Non-2xx response from the GoHighLevel API."""


@dataclass
class CrmSyncResult:
    success: bool
    contact_id: Optional[str] = None
    opportunity_id: Optional[str] = None
    error: Optional[str] = None


def _top_leak_title(result: DiagnosticResult, index: int) -> str:
    return result.leaks[index].title if len(result.leaks) > index else 'None'


def _ghl_request(method: str, endpoint: str, body: Dict) -> Dict:
    """Authenticated JSON request to the GHL API. Raises GhlError on non-2xx."""
    def _do():
        response = requests.request(
            method,
            f"{GHL_API_URL}{endpoint}",
            headers={
                'Authorization': f'Bearer {GHL_API_KEY}',
                'Content-Type': 'application/json',
                'Version': GHL_API_VERSION,
            },
            json=body,
            timeout=15,
        )
        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.ok:
            raise GhlError(data.get('message') or f"HTTP {response.status_code}")
        return data

    return get_breaker('ghl').call(_do)


def build_contact_payload(form, result: DiagnosticResult) -> Dict:
    tags = ['diagnostic-lead', GHL_BRAND_TAG, BUCKET_TAGS.get(result.leak_bucket, 'diagnostic-submitted')]
    if form.monthly_revenue_range:
        tags.append(f"revenue-{form.monthly_revenue_range}")

    metrics = result.inputs
    custom_fields = {
        'leak_score': result.leak_score,
        'leak_bucket': result.leak_bucket,
        'estimated_revenue': result.revenue_est,
        'top_leak_1': _top_leak_title(result, 0),
        'top_leak_2': _top_leak_title(result, 1),
        'conversion_rate': metrics.conversion_rate,
        'aov': metrics.aov,
        'abandoned_carts_30d': metrics.abandoned_carts_30d,
        'sessions_30d': metrics.sessions_30d,
        'orders_30d': metrics.orders_30d,
    }

    return {
        'locationId': GHL_LOCATION_ID,
        'firstName': form.first_name,
        'email': form.email,
        'website': form.store_url,
        'tags': tags,
        'source': 'Diagnostic Tool',
        'customFields': [
            {'key': key, 'field_value': str(value)} for key, value in custom_fields.items()
        ],
    }


def build_opportunity_payload(contact_id: str, form, result: DiagnosticResult) -> Dict:
    # Bigger leaks → bigger potential uplift → bigger deal value
    share = OPPORTUNITY_UPLIFT_SHARE.get(result.leak_bucket, 0)
    return {
        'locationId': GHL_LOCATION_ID,
        'name': f"{form.first_name} - Diagnostic Lead ({display_host(form.store_url)})",
        'pipelineId': GHL_PIPELINE_ID,
        'pipelineStageId': GHL_PIPELINE_STAGE_ID,
        'status': 'open',
        'contactId': contact_id,
        'monetaryValue': round_half_up(result.revenue_est * share),
        'source': 'Diagnostic Tool',
    }


def send_to_ghl(form, result: DiagnosticResult) -> CrmSyncResult:
    """Upsert the contact, then open an opportunity in the sales pipeline."""
    if not GHL_API_KEY or not GHL_LOCATION_ID:
        logger.info("GHL credentials not set — skipping CRM sync")
        return CrmSyncResult(False, error='GHL not configured')

    try:
        data = _ghl_request('POST', '/contacts/upsert', build_contact_payload(form, result))
        contact_id = (data.get('contact') or {}).get('id')
        if not contact_id:
            raise GhlError("Contact upsert returned no contact id")
        logger.info("GHL contact upserted: %s", contact_id)
    except Exception as e:
        logger.error("GHL contact upsert failed for %s: %s", form.email, e, extra={'integration': 'ghl'})
        return CrmSyncResult(False, error=str(e))

    try:
        data = _ghl_request('POST', '/opportunities/', build_opportunity_payload(contact_id, form, result))
        opportunity_id = (data.get('opportunity') or {}).get('id')
        logger.info("GHL opportunity created: %s", opportunity_id)
    except Exception as e:
        # Contact exists, so the lead is in the CRM: partial success
        logger.warning("GHL opportunity failed for contact %s: %s", contact_id, e)
        return CrmSyncResult(
            True,
            contact_id=contact_id,
            error=f"Contact created but opportunity failed: {e}",
        )

    return CrmSyncResult(True, contact_id=contact_id, opportunity_id=opportunity_id)


def send_to_ghl_webhook(form, result: DiagnosticResult) -> CrmSyncResult:
    """Legacy inbound-webhook sync. No-op unless GHL_WEBHOOK_URL is set."""
    if not GHL_WEBHOOK_URL:
        return CrmSyncResult(False, error='GHL webhook not configured')

    metrics = result.inputs
    payload = {
        'first_name': form.first_name,
        'email': form.email,
        'store_url': form.store_url,
        'monthly_revenue_range': form.monthly_revenue_range,
        'sessions_30d': metrics.sessions_30d,
        'orders_30d': metrics.orders_30d,
        'conversion_rate': metrics.conversion_rate,
        'aov': metrics.aov,
        'abandoned_carts_30d': metrics.abandoned_carts_30d,
        'leak_score': result.leak_score,
        'leak_bucket': result.leak_bucket,
        'revenue_est': result.revenue_est,
        'top_leak_1': _top_leak_title(result, 0),
        'top_leak_2': _top_leak_title(result, 1),
        'source': 'diagnostic_tool',
        'submitted_at': datetime.now(timezone.utc).isoformat(),
    }

    try:
        response = requests.post(GHL_WEBHOOK_URL, json=payload, timeout=10)
        response.raise_for_status()
        logger.info("GHL webhook accepted: %d", response.status_code)
        return CrmSyncResult(True)
    except Exception as e:
        logger.error("GHL webhook failed: %s", e)
        return CrmSyncResult(False, error=str(e))
