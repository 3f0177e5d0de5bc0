"""Shared test fixtures for Armory-Engine."""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from armory_engine.common.config import ArmorySettings
from armory_engine.common.security import Actor
from armory_engine.engine import ArmoryEngine


API_KEY = "test-service-api-key"
AUDIT_KEY = "test-audit-hmac-key"

ADMIN = Actor(id="admin-1", role="ADMIN")


def make_settings(**overrides) -> ArmorySettings:
    defaults = {
        "db_url": "sqlite+aiosqlite://",
        "api_key": API_KEY,
        "audit_hmac_key": AUDIT_KEY,
        "log_level": "WARNING",
    }
    defaults.update(overrides)
    return ArmorySettings(**defaults)


@pytest.fixture
def api_key():
    return API_KEY


@pytest.fixture
def admin():
    return ADMIN


@pytest.fixture
def when():
    return datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ── Engine-level fixtures ──


@pytest.fixture
async def engine():
    """Engine on a fresh in-memory database."""
    eng = ArmoryEngine(make_settings())
    await eng.start()
    yield eng
    await eng.close()


@pytest.fixture
async def base_a(engine):
    return (await engine.bases.create_base(ADMIN, "Fort Alpha", "North Sector")).unwrap()


@pytest.fixture
async def base_b(engine):
    return (await engine.bases.create_base(ADMIN, "Camp Bravo", "South Sector")).unwrap()


@pytest.fixture
async def soldier(engine, base_a):
    return (await engine.personnel.create_user(
        ADMIN, "j.doe@army.example", "LOGISTICS_OFFICER", base_id=base_a.id,
        first_name="Jane", last_name="Doe",
    )).unwrap()


@pytest.fixture
async def rifle(engine, base_a):
    return (await engine.create_asset(ADMIN, {
        "serial_number": "RF-0001",
        "type": "WEAPON",
        "name": "Service Rifle",
        "base_id": base_a.id,
    })).unwrap()


# ── HTTP fixtures ──


@pytest.fixture
def app():
    """Create a test app with an in-memory DB."""
    from armory_engine.app import create_app
    return create_app(make_settings())


@pytest.fixture
async def client(app):
    # Manually start the engine since ASGITransport doesn't run lifespan
    engine = app.state.engine
    await engine.start()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await engine.close()


@pytest.fixture
def actor_headers():
    def _headers(role: str = "ADMIN", base_id: str | None = None, actor_id: str = "user-1"):
        headers = {
            "X-Armory-Api-Key": API_KEY,
            "X-Armory-Actor-Id": actor_id,
            "X-Armory-Actor-Role": role,
        }
        if base_id is not None:
            headers["X-Armory-Actor-Base"] = base_id
        return headers
    return _headers


@pytest.fixture
def admin_headers(actor_headers):
    return actor_headers("ADMIN", actor_id="admin-1")
