"""Tests for the raw ASGI middleware (request/correlation IDs, caller context, timeout)."""

import asyncio

from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.tenant_context import get_tenant_id, get_user_id
from app.middleware import (
    CallerContextMiddleware,
    CorrelationIDMiddleware,
    RequestIDMiddleware,
    TimeoutMiddleware,
)
from app.middleware.request_id import sanitize_request_id


def _app() -> FastAPI:
    app = FastAPI()

    @app.get("/whoami")
    async def whoami() -> dict:
        return {"tenant_id": get_tenant_id(), "user_id": get_user_id()}

    @app.get("/slow")
    async def slow() -> dict:
        await asyncio.sleep(5)
        return {}

    return app


async def _get(app, path: str, headers: dict | None = None):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        return await client.get(path, headers=headers or {})


def test_sanitize_request_id() -> None:
    assert sanitize_request_id("abc-123") == "abc-123"
    replaced = sanitize_request_id("bad id\nwith newline")
    assert replaced != "bad id\nwith newline"
    assert len(replaced) == 36


async def test_request_and_correlation_ids() -> None:
    app = _app()
    app.add_middleware(CorrelationIDMiddleware)
    app.add_middleware(RequestIDMiddleware)

    response = await _get(app, "/whoami", {"X-Request-ID": "req-1"})
    assert response.headers["X-Request-ID"] == "req-1"
    assert response.headers["X-Correlation-ID"] == "req-1"

    response = await _get(app, "/whoami", {"X-Request-ID": "req-2", "X-Correlation-ID": "corr-9"})
    assert response.headers["X-Correlation-ID"] == "corr-9"


async def test_caller_context_sets_and_resets_ids() -> None:
    app = _app()
    app.add_middleware(CallerContextMiddleware)

    response = await _get(app, "/whoami", {"X-Tenant-ID": "farm-1", "X-User-ID": "u-7"})
    assert response.json() == {"tenant_id": "farm-1", "user_id": "u-7"}
    assert get_tenant_id() is None
    assert get_user_id() is None


async def test_caller_context_ignores_malformed_headers() -> None:
    app = _app()
    app.add_middleware(CallerContextMiddleware)

    response = await _get(app, "/whoami", {"X-Tenant-ID": "farm/../1", "X-User-ID": "x" * 65})
    assert response.json() == {"tenant_id": None, "user_id": None}


async def test_custom_header_names() -> None:
    app = _app()
    app.add_middleware(
        CallerContextMiddleware, tenant_header_name="X-Farm", user_header_name="X-Member"
    )
    response = await _get(app, "/whoami", {"X-Farm": "f1", "X-Member": "m1"})
    assert response.json() == {"tenant_id": "f1", "user_id": "m1"}


async def test_timeout_returns_504() -> None:
    app = _app()
    app.add_middleware(TimeoutMiddleware, timeout_seconds=0.05)

    response = await _get(app, "/slow")
    assert response.status_code == 504
    assert response.json()["error"] == "GATEWAY_TIMEOUT"
