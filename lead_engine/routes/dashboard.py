"""
Dashboard routes: liveness check and circuit breaker health.
"""
import logging
from flask import Blueprint, jsonify

from lead_engine.services.circuit_breaker import get_all_breakers

logger = logging.getLogger('routes.dashboard')

bp = Blueprint('dashboard', __name__)


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Circuit breaker state and call counters for every external service."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    degraded = [name for name, h in services.items() if h['state'] in ('open', 'half_open')]
    return jsonify({
        'status': 'degraded' if degraded else 'ok',
        'degraded': degraded,
        'services': services,
    }), 200


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    """Manually close a service's circuit breaker."""
    breakers = get_all_breakers()
    if service not in breakers:
        return jsonify({'ok': False, 'error': f"Unknown service '{service}'"}), 404
    breakers[service].reset()
    logger.info("Circuit '%s' reset via API", service)
    return jsonify({'ok': True, 'service': service}), 200
