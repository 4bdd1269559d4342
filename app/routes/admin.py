"""
Admin routes — password login, token verification, submission listing.
"""
import logging
from functools import wraps
from flask import Blueprint, request, jsonify

from app.config import ADMIN_TOKEN_TTL
from app.services.admin_auth import (
    AdminNotConfigured, check_password, issue_token, verify_token, revoke_token, bearer_token,
)
from app.services.submissions import list_submissions, get_submission

logger = logging.getLogger('routes.admin')

bp = Blueprint('admin', __name__)


def require_admin(view):
    """Reject requests without a live bearer token."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not verify_token(bearer_token(request.headers.get('Authorization'))):
            return jsonify({'error': 'Unauthorized'}), 401
        return view(*args, **kwargs)
    return wrapper


@bp.route('/api/admin/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    try:
        if not check_password(data.get('password')):
            logger.warning("Admin login rejected from %s", request.remote_addr)
            return jsonify({'error': 'Invalid password'}), 401
        token = issue_token()
    except AdminNotConfigured:
        return jsonify({'error': 'Admin password not configured'}), 500
    except Exception as e:
        logger.error("Admin login failed: %s", e, exc_info=True)
        return jsonify({'error': 'Login failed'}), 500

    return jsonify({'token': token, 'expires_in': ADMIN_TOKEN_TTL})


@bp.route('/api/admin/verify', methods=['POST'])
def verify():
    data = request.get_json(silent=True) or {}
    if not verify_token(data.get('token')):
        return jsonify({'valid': False}), 401
    return jsonify({'valid': True})


@bp.route('/api/admin/logout', methods=['POST'])
@require_admin
def logout():
    try:
        revoke_token(bearer_token(request.headers.get('Authorization')))
    except Exception as e:
        logger.error("Admin logout failed: %s", e)
        return jsonify({'error': 'Logout failed'}), 500
    return jsonify({'ok': True})


@bp.route('/api/admin/submissions')
@require_admin
def submissions():
    """All submissions, newest first."""
    try:
        limit = int(request.args.get('limit', 500))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400
    if limit < 1:
        return jsonify({'error': 'limit must be at least 1'}), 400
    limit = min(limit, 1000)

    try:
        return jsonify({'submissions': list_submissions(limit=limit)})
    except Exception as e:
        logger.error("Failed to fetch submissions: %s", e, exc_info=True)
        return jsonify({'error': 'Failed to fetch submissions'}), 500


@bp.route('/api/admin/submissions/<submission_id>')
@require_admin
def submission_detail(submission_id):
    try:
        submission = get_submission(submission_id)
    except Exception as e:
        logger.error("Failed to fetch submission %s: %s", submission_id, e, exc_info=True)
        return jsonify({'error': 'Failed to fetch submission'}), 500
    if submission is None:
        return jsonify({'error': 'Submission not found'}), 404
    return jsonify({'submission': submission})
