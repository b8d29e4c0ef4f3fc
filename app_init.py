"""
Application Initialization Module
Properly initializes Flask app with all infrastructure components
"""
import logging

from flask import Flask

from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from database import configure_database, init_db

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """
    Application factory that creates and configures Flask app with all infrastructure

    Args:
        config_name: 'development', 'production' or 'testing'; defaults to FLASK_ENV

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing MarklerApp CRM backend")
    logger.info("=" * 60)
    logger.info(f"Configuration: {config_class.__name__}")
    logger.info(f"Debug mode: {app.debug}")

    initialize_database(app)

    # CORS, headers, error handlers, request logging
    setup_security(app, app.config)

    register_health_checks(app)

    from app import register_blueprints
    register_blueprints(app)

    if app.config.get('SEED_DEMO_DATA'):
        from database.seed import seed_database
        seed_database()

    if app.config.get('SCHEDULER_ENABLED'):
        initialize_scheduler(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def initialize_database(app):
    """
    Bind the engine to DATABASE_URL. SQLite databases get their tables created
    directly; PostgreSQL deployments are migrated with Alembic.
    """
    url = app.config['DATABASE_URL']
    configure_database(url)
    if url.startswith('sqlite'):
        init_db()


def initialize_scheduler(app):
    """Start the background job runner (expired reset-token cleanup)."""
    from services.scheduler import init_scheduler

    scheduler = init_scheduler(app.config)
    app.extensions['scheduler'] = scheduler
    return scheduler
