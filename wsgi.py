"""
WSGI entry point and Flask-Migrate / Alembic CLI target.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade
    flask --app wsgi scan-exception-expirations
"""

from app import create_app

app = create_app()
