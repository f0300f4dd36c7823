"""Monitoring and health check endpoints"""
from flask import Blueprint, jsonify

from contentguard.services.error_tracker import error_tracker
from contentguard.services.registry import get_services

monitoring_bp = Blueprint('monitoring', __name__)


@monitoring_bp.route('/health')
def health_check():
    """Liveness plus storage readiness for load balancers and uptime monitoring"""
    storage = get_services().database.status
    stats = error_tracker.get_error_stats()
    # Unauthenticated endpoint: no user ids or request details
    stats['latest'] = [
        {'type': e['type'], 'message': e['message'], 'timestamp': e['timestamp']}
        for e in error_tracker.get_recent_errors(limit=10)
    ]
    return jsonify({
        'status': 'healthy' if all(storage.values()) else 'degraded',
        'service': 'ContentGuard',
        'storage': storage,
        'errors': stats
    })
