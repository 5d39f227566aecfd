"""Pytest configuration and fixtures for GeoAuthZ tests.

Provides a controllable clock, an in-memory store, a boundary index built
from small rectangles, a loaded engine, an ASGI client and (for
integration tests) a Redis client.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from geoauthz.config import settings
from geoauthz.engine import AuthorizationEngine
from geoauthz.main import app
from geoauthz.models import Group, Role, UserAuthorizationProfile
from geoauthz.regions.boundaries import GeoJSONBoundaryIndex
from geoauthz.regions.directory import Coordinate, RegionDirectory
from geoauthz.store.memory import InMemoryStore

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

# Points inside the rectangles below
POINT_IN_DELHI = Coordinate(lat=28.61, lng=77.21)
POINT_IN_MUMBAI = Coordinate(lat=19.07, lng=72.88)
POINT_IN_KERALA = Coordinate(lat=10.0, lng=76.3)
POINT_IN_OCEAN = Coordinate(lat=-30.0, lng=60.0)


def box(name: str, south: float, west: float, north: float, east: float, key: str = "NAME_1") -> dict:
    return {
        "type": "Feature",
        "properties": {key: name},
        "geometry": {
            "type": "Polygon",
            "coordinates": [[
                [west, south], [east, south], [east, north], [west, north], [west, south],
            ]],
        },
    }


BOUNDARIES = {
    "type": "FeatureCollection",
    "features": [
        box("NCT of Delhi", 28.40, 76.80, 28.90, 77.40),
        box("Mumbai", 18.85, 72.75, 19.30, 73.05, key="name"),
        box("Kerala", 8.20, 74.80, 12.80, 77.40, key="ST_NM"),
    ],
}


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeGeocoder:
    def __init__(self, result: str | None = None, exc: Exception | None = None, delay: float = 0):
        self.result = result
        self.exc = exc
        self.delay = delay
        self.calls = 0

    async def reverse_geocode(self, lat: float, lng: float) -> str | None:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        return self.result


# ── Core fixtures ────────────────────────────────────────────────

@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def boundaries() -> GeoJSONBoundaryIndex:
    return GeoJSONBoundaryIndex.from_geojson(BOUNDARIES)


@pytest.fixture
def regions(boundaries) -> RegionDirectory:
    return RegionDirectory(boundaries=boundaries, timeout=0.5)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest_asyncio.fixture
async def engine(store, regions, clock) -> AuthorizationEngine:
    """Engine with a few users loaded.

    admin     Admin
    mgr       Manager
    u1        Technician, assigned Delhi
    u2        User, member of field-north
    u3        User, no regions
    """
    store.profiles = {
        "admin": UserAuthorizationProfile(user_id="admin", role=Role.ADMIN),
        "mgr": UserAuthorizationProfile(user_id="mgr", role=Role.MANAGER, assigned_regions={"Delhi"}),
        "u1": UserAuthorizationProfile(user_id="u1", role=Role.TECHNICIAN, assigned_regions={"Delhi"}),
        "u2": UserAuthorizationProfile(user_id="u2", role=Role.USER, group_ids={"field-north"}),
        "u3": UserAuthorizationProfile(user_id="u3", role=Role.USER),
    }
    store.groups = {
        "field-north": Group(
            id="field-north",
            name="Field Engineers - North",
            permissions={"gis.infrastructure.use", "gis.infrastructure.delete.any"},
            assigned_regions={"Punjab"},
            members={"u2"},
            created_at=T0,
            updated_at=T0,
        ),
    }
    eng = AuthorizationEngine(store, regions=regions, clock=clock, fail_open=True)
    await eng.load()
    return eng


@pytest_asyncio.fixture
async def client(engine) -> AsyncGenerator[AsyncClient, None]:
    """ASGI client bound to the test engine (lifespan not run)."""
    app.state.engine = engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    del app.state.engine


def as_user(user_id: str) -> dict:
    return {"X-User-Id": user_id}


def fail_writes(monkeypatch, store, *methods: str) -> None:
    """Make the named store write methods raise, as a dropped connection would."""

    async def _fail(*args, **kwargs):
        raise RuntimeError("store write failed")

    for name in methods:
        monkeypatch.setattr(store, name, _fail)


def slow_writes(monkeypatch, store, *methods: str) -> None:
    """Make the named store write methods yield to the event loop first."""
    for name in methods:
        original = getattr(store, name)

        async def _slow(*args, _original=original, **kwargs):
            await asyncio.sleep(0.01)
            return await _original(*args, **kwargs)

        monkeypatch.setattr(store, name, _slow)


# ── Redis Fixtures ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def redis_client():
    """Redis client for integration tests; skips when Redis is not running."""
    import redis.asyncio as redis

    client = redis.from_url(settings.redis_url, decode_responses=True)
    try:
        await client.ping()
    except redis.RedisError:
        await client.aclose()
        pytest.skip("Redis not available")

    yield client

    async for key in client.scan_iter(match="geoauthz-test:*"):
        await client.delete(key)
    await client.aclose()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
    config.addinivalue_line("markers", "regions: Region lookup and geofencing tests")
