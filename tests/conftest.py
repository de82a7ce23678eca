"""Pytest configuration and fixtures.

The app runs against the in-memory flag store and the in-process cache
store unless the environment says otherwise. HTTP tests run the real
lifespan so app.state holds the same components as in production.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("FLAG_STORE_BACKEND", "memory")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TELEMETRY_ENABLED", "false")

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.config import get_settings
from app.core.limiter import limiter
from app.infrastructure.cache import InMemoryCacheStore, QueryCache
from app.infrastructure.persistence.repositories import InMemoryFlagConfigStore
from app.application.services.rollout_engine import RolloutEngine
from app.main import create_app

get_settings.cache_clear()


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def flag_store() -> InMemoryFlagConfigStore:
    return InMemoryFlagConfigStore()


@pytest.fixture
def engine(flag_store: InMemoryFlagConfigStore, clock: FakeClock) -> RolloutEngine:
    return RolloutEngine(store=flag_store, flag_cache_ttl=60, clock=clock)


@pytest.fixture
def kv_store(clock: FakeClock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def query_cache(kv_store: InMemoryCacheStore) -> QueryCache:
    return QueryCache(kv_store, key_prefix="test")


@pytest.fixture
async def app() -> FastAPI:
    """Fresh application with its lifespan running."""
    application = create_app()
    limiter.reset()
    async with application.router.lifespan_context(application):
        yield application


@pytest.fixture
async def client(app: FastAPI) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Token": os.environ["ADMIN_API_TOKEN"]}


@pytest.fixture
def without_admin_token(monkeypatch: pytest.MonkeyPatch):
    """Run the test with ADMIN_API_TOKEN cleared (admin surface disabled)."""
    monkeypatch.setenv("ADMIN_API_TOKEN", "")
    get_settings.cache_clear()
    yield
    monkeypatch.undo()
    get_settings.cache_clear()
