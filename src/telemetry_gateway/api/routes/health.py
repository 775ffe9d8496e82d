"""Health check endpoints"""
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from telemetry_gateway.utils.validators import format_timestamp

logger = logging.getLogger(__name__)

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Liveness probe"""
    return jsonify({
        'status': 'healthy',
        'timestamp': format_timestamp(datetime.now(timezone.utc)),
        'version': current_app.extensions['telemetry_gateway'].config.version
    }), 200


@health_bp.route('/health/ready', methods=['GET'])
def readiness_check():
    """Readiness probe; checks that the store answers"""
    gateway = current_app.extensions['telemetry_gateway']
    timestamp = format_timestamp(datetime.now(timezone.utc))

    try:
        gateway.store.ping()
    except Exception as e:
        logger.error(f"Store readiness check failed: {type(e).__name__}")
        return jsonify({
            'status': 'unhealthy',
            'timestamp': timestamp,
            'error': 'Database connection failed',
            'services': {'store': 'disconnected'}
        }), 503

    return jsonify({
        'status': 'ready',
        'timestamp': timestamp,
        'version': gateway.config.version,
        'services': {
            'store': 'connected',
            'collection': gateway.store.collection
        }
    }), 200
