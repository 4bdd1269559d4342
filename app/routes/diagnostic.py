"""
Diagnostic routes — public form submission endpoint.
"""
import logging
from flask import Blueprint, request, jsonify

from app.validation import validate_form
from app.services.intake import process_submission

logger = logging.getLogger('routes.diagnostic')

bp = Blueprint('diagnostic', __name__)

REQUIRED_FIELDS = [
    'first_name', 'email', 'store_url',
    'sessions_30d', 'orders_30d', 'conversion_rate', 'aov', 'abandoned_carts_30d',
]
OPTIONAL_FIELDS = ['monthly_revenue_range']


def _tracking_info():
    """Client IP, user agent and UTM params for attribution."""
    forwarded_for = request.headers.get('X-Forwarded-For')
    ip_address = forwarded_for.split(',')[0].strip() if forwarded_for else request.remote_addr
    return {
        'ip_address': ip_address,
        'user_agent': request.headers.get('User-Agent'),
        'utm_source': request.args.get('utm_source'),
        'utm_medium': request.args.get('utm_medium'),
        'utm_campaign': request.args.get('utm_campaign'),
    }


@bp.route('/api/diagnostic', methods=['POST'])
def submit_diagnostic():
    """Validate → score → store → email/CRM → return the teaser."""
    payload = request.get_json(silent=True)
    form, errors = validate_form(payload)
    if errors:
        return jsonify({
            'success': False,
            'error': 'Validation failed',
            'details': errors,
        }), 400

    try:
        submission_id, teaser, _outcome = process_submission(form, _tracking_info())
    except Exception:
        logger.error("Diagnostic submission failed for %s", form.email, exc_info=True)
        return jsonify({
            'success': False,
            'error': 'An error occurred processing your request. Please try again.',
        }), 500

    return jsonify({
        'success': True,
        'submission_id': submission_id,
        'teaser': teaser.to_dict(),
        'message': 'Your full report has been emailed to you.',
    })


@bp.route('/api/diagnostic', methods=['GET'])
def describe_diagnostic():
    """Endpoint descriptor for integrators."""
    return jsonify({
        'endpoint': '/api/diagnostic',
        'method': 'POST',
        'description': 'Submit diagnostic form data for analysis',
        'required_fields': REQUIRED_FIELDS,
        'optional_fields': OPTIONAL_FIELDS,
    })
