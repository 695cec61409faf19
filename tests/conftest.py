"""
Shared pytest fixtures for the SWOT Planning Workshop test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - plan: Pre-created plan with two groups, via the API
"""

import pytest

from swotplan import create_app
from swotplan.models import db as _db
from swotplan.services import cache_service


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
        # Ids are reused after the tables are recreated; stale summaries must go
        cache_service.clear_all()
        yield
        cache_service.clear_all()
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def plan(client):
    """Create and return a plan with groups "Finance" and "Operations"."""
    res = client.post(
        "/api/v1/plans",
        json={"title": "Strategic Plan 2027", "groups": ["Finance", "Operations"]},
    )
    assert res.status_code == 201
    return res.get_json()
