"""
Centralized Test Configuration.
"""

import pytest
import httpx
from fastapi import Depends
from httpx import AsyncClient, ASGITransport
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from cargo_backend.app.main import app
from cargo_backend.app.db.session import get_db, Base
from cargo_backend.app.core.config import settings
from cargo_backend.app.core.dependencies import (
    get_distance_engine, get_http_client, get_shipment_port
)
from cargo_backend.app.core.exceptions import CascadeNotificationFailure
from cargo_backend.app.core.redis_client import get_redis
from cargo_backend.app.core.reliability import CircuitBreaker
from cargo_backend.app.services.distance_engine import DistanceEngine
from cargo_backend.app.services.shipment_port import ShipmentStatusPort

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    async def get(self, key):
        if self._closed:
            return None
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        if self._closed:
            return False
        self.store[key] = value
        return True

    async def delete(self, key):
        if self._closed:
            return 0
        if key in self.store:
            del self.store[key]
            return 1
        return 0

    async def exists(self, key):
        if self._closed:
            return 0
        return 1 if key in self.store else 0

    async def flushdb(self):
        if not self._closed:
            self.store = {}

    async def aclose(self):
        self._closed = True
        self.store = {}


# Known addresses served by the fake geocoder
KNOWN_ADDRESSES = {
    "cordoba": (-31.4201, -64.1888),
    "rosario": (-32.9442, -60.6505),
    "villa maria": (-32.4075, -63.2403),
}


class FakeProviders:
    """
    Stand-in for Nominatim and OSRM behind httpx.MockTransport.

    Routing answers with `routing_status` (503 by default, so distances come
    from the haversine fallback and are deterministic).
    """

    def __init__(self):
        self.addresses = dict(KNOWN_ADDRESSES)
        self.routing_status = 503
        self.routing_payload = None
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path.endswith("/search"):
            query = request.url.params.get("q", "").lower()
            if query in self.addresses:
                lat, lon = self.addresses[query]
                return httpx.Response(200, json=[{"lat": str(lat), "lon": str(lon), "display_name": query}])
            return httpx.Response(200, json=[])

        if path.endswith("/reverse"):
            return httpx.Response(200, json={"display_name": "Somewhere, Argentina"})

        if "/route/v1/" in path:
            if self.routing_status == 200:
                return httpx.Response(200, json=self.routing_payload)
            return httpx.Response(self.routing_status, json={"code": "Error"})

        return httpx.Response(404)

    def count(self, fragment: str) -> int:
        return sum(1 for r in self.requests if fragment in r.url.path)


class FakeShipmentPort(ShipmentStatusPort):
    """Records shipment notifications; each kind fails on demand."""

    def __init__(self):
        self.calls = []
        self.fail = False
        self.in_transit_calls = []
        self.fail_in_transit = False

    async def mark_in_transit(self, shipment_id, credential):
        self.in_transit_calls.append({"shipment_id": shipment_id, "credential": credential})
        if self.fail_in_transit:
            raise CascadeNotificationFailure(shipment_id, "shipment service unavailable", event="in-transit")

    async def mark_completed(self, shipment_id, final_cost, final_duration_minutes, credential):
        self.calls.append({
            "shipment_id": shipment_id,
            "final_cost": final_cost,
            "final_duration_minutes": final_duration_minutes,
            "credential": credential,
        })
        if self.fail:
            raise CascadeNotificationFailure(shipment_id, "shipment service unavailable")


@pytest.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def redis_mock():
    return MockRedis()


@pytest.fixture
def fake_providers():
    return FakeProviders()


@pytest.fixture
def shipment_port():
    return FakeShipmentPort()


@pytest.fixture
def provider_client(fake_providers):
    """HTTP client whose requests go to the fake providers."""
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_providers.handler))


@pytest.fixture(autouse=True)
def apply_overrides(session_factory, redis_mock, fake_providers, shipment_port):
    """Point the app at the test database, MockRedis and the fake providers."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return redis_mock

    async def override_get_http_client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake_providers.handler)) as client:
            yield client

    async def override_get_distance_engine(client: httpx.AsyncClient = Depends(get_http_client)):
        return DistanceEngine(client, breaker=CircuitBreaker(failure_threshold=100, reset_timeout=1))

    async def override_get_shipment_port():
        return shipment_port

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[get_http_client] = override_get_http_client
    app.dependency_overrides[get_distance_engine] = override_get_distance_engine
    app.dependency_overrides[get_shipment_port] = override_get_shipment_port
    yield

    app.dependency_overrides = {}


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    """Bearer token as the gateway would forward it."""
    token = jwt.encode({"sub": "operator", "user_id": 7}, settings.secret_key, algorithm=settings.algorithm)
    return {"Authorization": f"Bearer {token}"}


# Shared session for fixture data creation
@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session

