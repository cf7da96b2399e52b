"""
Logistics Service test fixtures

The app runs in-process: a throwaway SQLite file per test stands in for
PostgreSQL and fakeredis stands in for Redis. Tokens are minted with the
same shared secret the middleware verifies.
"""
from datetime import date
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis

from logistics_service.core import optimistic_lock
from logistics_service.core.config import Settings
from logistics_service.core.policy import Principal, Role
from logistics_service.core.security import create_token
from logistics_service.main import create_app
from logistics_service.models.inventory import InventoryLot

# ─── Config ────────────────────────────────────────────────────────────────────
JWT_SECRET = "test-secret"
UNIT_1 = "tieu-doan-1"
UNIT_2 = "tieu-doan-2"


# ─── Fixtures ──────────────────────────────────────────────────────────────────
@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'logistics.db'}",
        JWT_SECRET_KEY=JWT_SECRET,
        METRICS_ENABLED=False,
        LOG_LEVEL="WARNING",
    )


@pytest_asyncio.fixture
async def app(settings):
    redis = fake_aioredis.FakeRedis(decode_responses=True)
    application = create_app(settings, redis_client=redis)
    async with application.router.lifespan_context(application):
        yield application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def db_session(app):
    """Factory for fresh sessions against the app's database."""
    return app.state.db.sessionmaker


def _headers(role: str, sub: str, name: str, unit: str | None = None) -> dict[str, str]:
    claims = {"sub": sub, "name": name, "role": role}
    if unit:
        claims["unit"] = unit
    return {"Authorization": f"Bearer {create_token(claims, JWT_SECRET, 'HS256')}"}


@pytest.fixture
def unit_assistant() -> dict[str, str]:
    return _headers("unitAssistant", "ua-1", "Unit Assistant One", UNIT_1)


@pytest.fixture
def other_unit_assistant() -> dict[str, str]:
    return _headers("unitAssistant", "ua-2", "Unit Assistant Two", UNIT_2)


@pytest.fixture
def brigade_assistant() -> dict[str, str]:
    return _headers("brigadeAssistant", "ba-1", "Brigade Assistant")


@pytest.fixture
def station_manager() -> dict[str, str]:
    return _headers("stationManager", "sm-1", "Station Manager")


@pytest.fixture
def admin() -> dict[str, str]:
    return _headers("admin", "admin-1", "Admin")


@pytest.fixture
def commander() -> dict[str, str]:
    return _headers("commander", "cmd-1", "Commander")


@pytest.fixture
def sleeps(monkeypatch):
    """Capture optimistic-lock backoff delays instead of sleeping them."""
    delays: list[float] = []

    async def fake_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(optimistic_lock, "asyncio", SimpleNamespace(sleep=fake_sleep))
    return delays


@pytest.fixture
def manager_principal() -> Principal:
    return Principal(id="sm-1", name="Station Manager", role=Role.STATION_MANAGER)


@pytest.fixture
def add_lot(db_session):
    """Book a lot straight into the processing station, bypassing the supply workflow."""

    async def _add(product_id: str, quantity: float, expiry_date: date | None) -> str:
        async with db_session() as session:
            async with session.begin():
                lot = InventoryLot(
                    product_id=product_id,
                    quantity=quantity,
                    non_expired_quantity=quantity,
                    unit_price=1000,
                    expiry_date=expiry_date,
                    received_date=date.today(),
                )
                session.add(lot)
            return lot.id

    return _add


@pytest.fixture
def lot_levels(client, station_manager):
    """Non-expired quantity per lot of a product, soonest expiry first."""

    async def _levels(product_id: str) -> list[float]:
        r = await client.get("/api/inventory/lots", params={"productId": product_id}, headers=station_manager)
        assert r.status_code == 200, r.text
        return [lot["nonExpiredQuantity"] for lot in r.json()["data"]]

    return _levels
