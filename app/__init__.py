"""
MarklerApp CRM - Application Package

This package contains the HTTP layer:
- api/: route handlers (Flask Blueprints), one module per resource
- utils/: request helpers shared by the blueprints

The app factory lives in app_init.py at the project root; business logic
lives in the top-level services/ package.
"""

import logging

logger = logging.getLogger(__name__)

from app.api.auth_routes import auth_bp
from app.api.agents import agents_bp
from app.api.clients import clients_bp
from app.api.properties import properties_bp
from app.api.images import images_bp
from app.api.expose import expose_bp
from app.api.matching import matching_bp
from app.api.call_notes import call_notes_bp
from app.api.attachments import attachments_bp
from app.api.gdpr import gdpr_bp
from app.api.dashboard import dashboard_bp

API_PREFIX = '/api/v1'

# (blueprint, mount point); the matching blueprint is registered before the
# property routes so /properties/match/... never reaches /<property_id>
BLUEPRINTS = [
    (auth_bp, '/auth'),
    (agents_bp, '/agents'),
    (clients_bp, '/clients'),
    (matching_bp, '/properties/match'),
    (properties_bp, '/properties'),
    (images_bp, '/properties'),
    (expose_bp, '/properties'),
    (call_notes_bp, '/call-notes'),
    (attachments_bp, '/attachments'),
    (gdpr_bp, '/gdpr'),
    (dashboard_bp, '/dashboard'),
]


def register_blueprints(app):
    """
    Register all API blueprints under /api/v1.

    Args:
        app: Flask application instance
    """
    for blueprint, mount in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=f"{API_PREFIX}{mount}")
    logger.info(f"Registered {len(BLUEPRINTS)} API blueprints under {API_PREFIX}")


__all__ = [
    'register_blueprints', 'API_PREFIX', 'auth_bp', 'agents_bp', 'clients_bp', 'properties_bp',
    'images_bp', 'expose_bp', 'matching_bp', 'call_notes_bp', 'attachments_bp', 'gdpr_bp', 'dashboard_bp'
]
