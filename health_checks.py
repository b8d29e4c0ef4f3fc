"""
Health Check & Monitoring Endpoints
Liveness, database and detailed status probes for load balancers and monitoring
"""
import os
import sys
import time
import psutil
from datetime import datetime
from typing import Dict, Any
from flask import Blueprint, jsonify, current_app
import logging

from database.connection import check_db_connection

logger = logging.getLogger(__name__)

SERVICE_NAME = 'marklerapp-crm-backend'
SERVICE_VERSION = '1.0.0'

health_bp = Blueprint('health', __name__)

# Track application start time
START_TIME = time.time()


def get_system_metrics() -> Dict[str, Any]:
    """
    Get basic process metrics

    Returns:
        Dictionary of system metrics, empty if psutil fails
    """
    try:
        process = psutil.Process()

        return {
            'cpu_percent': process.cpu_percent(interval=0.1),
            'memory_mb': round(process.memory_info().rss / 1024 / 1024, 2),
            'memory_percent': round(process.memory_percent(), 2),
            'threads': process.num_threads(),
        }
    except Exception as e:
        logger.warning(f"Failed to get system metrics: {e}")
        return {}


def get_uptime() -> Dict[str, Any]:
    uptime_seconds = time.time() - START_TIME

    return {
        'uptime_seconds': round(uptime_seconds, 2),
        'uptime_minutes': round(uptime_seconds / 60, 2),
        'uptime_hours': round(uptime_seconds / 3600, 2),
        'started_at': datetime.fromtimestamp(START_TIME).isoformat()
    }


def check_database() -> Dict[str, Any]:
    """
    Probe the database with SELECT 1

    Returns:
        {'status': 'UP'|'DOWN', 'response_time_ms': ..., 'error': ...}
    """
    start = time.monotonic()
    try:
        check_db_connection()
        return {
            'status': 'UP',
            'response_time_ms': round((time.monotonic() - start) * 1000, 2)
        }
    except RuntimeError as e:
        return {
            'status': 'DOWN',
            'response_time_ms': round((time.monotonic() - start) * 1000, 2),
            'error': str(e)
        }


def check_optional_services(app) -> Dict[str, bool]:
    """Which optional integrations are configured (not whether they respond)"""
    return {
        'smtp_email': bool(app.config.get('SMTP_HOST')),
        'ollama_ai_summary': bool(app.config.get('OLLAMA_ENABLED')),
        'scheduler': bool(app.config.get('SCHEDULER_ENABLED'))
    }


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Basic liveness probe
    Returns 200 while the process is serving requests
    """
    return jsonify({
        'status': 'UP',
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION
    }), 200


@health_bp.route('/health/db', methods=['GET'])
def database_health():
    """
    Database connectivity probe
    Returns 503 when the database cannot be reached
    """
    database = check_database()
    status_code = 200 if database['status'] == 'UP' else 503
    if status_code != 200:
        logger.error(f"Database health check failed: {database.get('error')}")

    return jsonify({
        'status': database['status'],
        'timestamp': datetime.utcnow().isoformat(),
        'database': database
    }), status_code


@health_bp.route('/health/detailed', methods=['GET'])
def detailed_health():
    """
    Detailed status for monitoring dashboards
    """
    database = check_database()
    overall = 'UP' if database['status'] == 'UP' else 'DEGRADED'

    response = {
        'status': overall,
        'timestamp': datetime.utcnow().isoformat(),
        'service': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'environment': os.environ.get('FLASK_ENV', 'production'),
        'uptime': get_uptime(),
        'system': get_system_metrics(),
        'database': database,
        'services': check_optional_services(current_app),
        'python_version': sys.version.split()[0]
    }

    return jsonify(response), 200 if overall == 'UP' else 503


@health_bp.route('/ping', methods=['GET'])
def ping():
    """
    Simple ping endpoint
    Returns immediate response for basic connectivity tests
    """
    return 'pong', 200


def register_health_checks(app):
    """
    Register health check blueprint with Flask app

    Args:
        app: Flask application instance
    """
    app.register_blueprint(health_bp, url_prefix='/api')
    logger.info("Health check endpoints registered")
    logger.info("Available endpoints: /api/health, /api/health/db, /api/health/detailed, /api/ping")
