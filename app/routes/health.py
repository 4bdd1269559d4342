"""
Health routes — liveness check + integration circuit breaker status.

Breaker status and reset sit behind the admin bearer token, since the status
carries upstream error text.
"""
from flask import Blueprint, jsonify

from app.routes.admin import require_admin
from app.services.circuit_breaker import get_all_breakers

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Liveness check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
@require_admin
def api_health():
    """Circuit breaker state for every outbound integration."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    return jsonify({'services': services})


@bp.route('/api/health/<service>/reset', methods=['POST'])
@require_admin
def reset_circuit(service):
    """Manually close a tripped breaker."""
    breaker = get_all_breakers().get(service)
    if breaker is None:
        return jsonify({'ok': False, 'error': f'Unknown service: {service}'}), 404
    breaker.reset()
    return jsonify({'ok': True, 'service': breaker.get_health()})
