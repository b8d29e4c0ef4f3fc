"""
WSGI Entry Point for Gunicorn

    gunicorn wsgi:app

The configuration is selected by FLASK_ENV.
"""

from app_init import create_app

app = create_app()
