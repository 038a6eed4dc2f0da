"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database (via app lifespan)
  • rate limiting switched off

The `client` fixture runs the full lifespan (DB init / shutdown) so that
every endpoint works against a fresh, empty database.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from courtbook.main import app


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that points the database at a temp file and disables
    rate limiting, so the app lifespan runs cleanly in isolation.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import courtbook.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))

    # ── Disable rate limiting in tests ────────────────────────────────
    from courtbook.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
def client(_test_env) -> TestClient:
    """
    FastAPI TestClient against a temp DB.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
def court(client) -> dict:
    """An active court created through the API."""
    resp = client.post(
        "/api/courts",
        json={"name": "Centre Court", "surface_type": "hard", "court_type": "indoor"},
    )
    assert resp.status_code == 201
    return resp.json()


@pytest.fixture()
def other_court(client) -> dict:
    resp = client.post(
        "/api/courts",
        json={"name": "Court 2", "surface_type": "clay", "court_type": "outdoor"},
    )
    assert resp.status_code == 201
    return resp.json()
