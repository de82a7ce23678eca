"""Presentation-layer dependency injection (composition root).

Per-process components (rollout engine, query cache, performance monitor)
are built in the lifespan and stored on app.state; these dependencies read
them from there. Routes depend only on these functions, not on infra
construction.
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from app.application.services.performance_monitor import PerformanceMonitor
from app.application.services.rollout_engine import RolloutEngine
from app.core.config import get_settings
from app.core.tenant_context import get_tenant_id, get_user_id
from app.domain.enums import CapabilityKey
from app.domain.exceptions import FeatureNotEnabledException
from app.domain.value_objects.core import CallerIdentity
from app.infrastructure.cache.query_cache import QueryCache


def get_rollout_engine(request: Request) -> RolloutEngine:
    """Process-wide RolloutEngine (set in lifespan)."""
    return request.app.state.rollout_engine


def get_query_cache(request: Request) -> QueryCache:
    """Process-wide QueryCache (set in lifespan)."""
    return request.app.state.query_cache


def get_performance_monitor(request: Request) -> PerformanceMonitor:
    """Process-wide PerformanceMonitor (set in lifespan)."""
    return request.app.state.performance_monitor


async def get_caller_identity() -> CallerIdentity:
    """Caller identity from the request context (set by CallerContextMiddleware)."""
    return CallerIdentity(user_id=get_user_id(), tenant_id=get_tenant_id())


async def require_admin_token(
    x_admin_token: Annotated[str | None, Header()] = None,
) -> None:
    """Require X-Admin-Token matching ADMIN_API_TOKEN.

    503 when no token is configured (admin surface disabled), 401 on
    missing or wrong token.
    """
    settings = get_settings()
    if settings.admin_api_token is None or not settings.admin_api_token.get_secret_value():
        raise HTTPException(
            status_code=503,
            detail="Admin API is not configured (ADMIN_API_TOKEN is not set).",
        )
    expected = settings.admin_api_token.get_secret_value()
    if not x_admin_token or not secrets.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=401,
            detail="Invalid or missing admin token",
            headers={"WWW-Authenticate": "X-Admin-Token"},
        )


def _parse_keys(capability_keys: Iterable[str | CapabilityKey]) -> list[CapabilityKey]:
    """Validate keys when the route is declared (typos fail at import)."""
    keys = [CapabilityKey(k) for k in capability_keys]
    if not keys:
        raise ValueError("At least one capability key is required")
    return keys


def require_capability(capability_key: str | CapabilityKey):
    """Dependency factory: reject with 403 unless capability_key is active for the caller."""
    return require_all_capabilities([capability_key])


def require_all_capabilities(capability_keys: Iterable[str | CapabilityKey]):
    """Dependency factory: reject with 403 unless every key is active for the caller."""
    keys = _parse_keys(capability_keys)

    async def _require(
        caller: Annotated[CallerIdentity, Depends(get_caller_identity)],
        engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
    ) -> CallerIdentity:
        missing = [k.value for k in keys if not await engine.resolve(k, caller)]
        if missing:
            raise FeatureNotEnabledException(missing, tenant_id=caller.tenant_id)
        return caller

    return _require


def require_any_capability(capability_keys: Iterable[str | CapabilityKey]):
    """Dependency factory: reject with 403 unless at least one key is active for the caller."""
    keys = _parse_keys(capability_keys)

    async def _require(
        caller: Annotated[CallerIdentity, Depends(get_caller_identity)],
        engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
    ) -> CallerIdentity:
        for key in keys:
            if await engine.resolve(key, caller):
                return caller
        raise FeatureNotEnabledException([k.value for k in keys], tenant_id=caller.tenant_id)

    return _require
