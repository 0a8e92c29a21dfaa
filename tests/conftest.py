"""
Shared pytest fixtures for the AI Governance Platform test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - actor_headers: builder for gateway identity headers
    - consultant / executive / marketing: ready-made header sets in ORG
"""

import pytest

from app import create_app
from app.models import db as _db

ORG = "org-acme"
OTHER_ORG = "org-globex"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Actor fixtures ───────────────────────────────────────────────────────


def make_headers(user_id="user-1", role="consultant", org=ORG):
    return {
        "X-User-Id": user_id,
        "X-User-Role": role,
        "X-Organization-Id": org,
    }


@pytest.fixture()
def actor_headers():
    """Return the header builder: actor_headers(user_id, role, org)."""
    return make_headers


@pytest.fixture()
def consultant():
    return make_headers("consultant-1", "consultant")


@pytest.fixture()
def executive():
    return make_headers("exec-1", "executive")


@pytest.fixture()
def marketing():
    return make_headers("mkt-1", "marketing")
