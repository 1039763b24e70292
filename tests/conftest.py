"""
Shared test fixtures.

Provides:
  • a pinned clock (Tuesday 2026-03-10 09:00, Africa/Tunis)
  • a BookingService wired to test doubles (no SMTP, allow-all gate)
  • a temporary SQLite database for async service tests
  • a FastAPI TestClient with the temp DB, staff auth bypassed and
    the background sweeper disabled

The `client` fixture runs the full lifespan (DB init / shutdown).
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fieldbook.core.clock import FixedClock
from fieldbook.dependencies import get_booking_service, get_current_staff
from fieldbook.main import app
from fieldbook.services.booking import BookingService
from tests.mocks.models import MOCK_STAFF, NOW
from tests.mocks.services import NoopSweeper, RecordingDispatcher, StaticGate


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture()
def gate() -> StaticGate:
    return StaticGate()


@pytest.fixture()
def service(clock, gate, dispatcher) -> BookingService:
    return BookingService(clock=clock, gate=gate, dispatcher=dispatcher)


@pytest.fixture()
def _test_env(monkeypatch, tmp_path):
    """
    Internal fixture that patches the DB path, sweeper and limiter so
    that the app lifespan runs cleanly against a temp database.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import fieldbook.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))

    # ── No background sweeps ──────────────────────────────────────────
    monkeypatch.setattr("fieldbook.main.sweeper", NoopSweeper())

    # ── Disable rate limiting in tests ────────────────────────────────
    from fieldbook.rate_limit import limiter as _limiter
    monkeypatch.setattr(_limiter, "enabled", False)


@pytest.fixture()
async def database(monkeypatch, tmp_path):
    """Initialized temp database for tests that call the service directly."""
    import fieldbook.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "service.db"))
    await db_mod.init_db()
    yield db_mod
    await db_mod.close_db()


@pytest.fixture()
def client(_test_env, service) -> TestClient:
    """
    FastAPI TestClient with the pinned-clock service, temp DB and staff
    auth bypassed.
    """
    async def _mock_current_staff():
        return MOCK_STAFF

    app.dependency_overrides[get_current_staff] = _mock_current_staff
    app.dependency_overrides[get_booking_service] = lambda: service

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()


@pytest.fixture()
def unauthed_client(_test_env, service) -> TestClient:
    """
    TestClient without the staff override – staff endpoints are
    rejected unless a token is provided.
    """
    app.dependency_overrides.clear()
    app.dependency_overrides[get_booking_service] = lambda: service

    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc

    app.dependency_overrides.clear()
