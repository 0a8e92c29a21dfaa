"""
AI Governance Platform — SQLAlchemy models package.

The database is an external collaborator: models here only map the rows the
API reads and writes. Business rules live in app.services.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
