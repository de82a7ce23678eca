"""Route guards built with require_capability / require_all / require_any."""

from typing import Annotated

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.v1.dependencies import (
    require_all_capabilities,
    require_any_capability,
    require_capability,
)
from app.application.services.rollout_engine import RolloutEngine
from app.core.exception_handlers import register_exception_handlers
from app.domain.value_objects.core import CallerIdentity
from app.infrastructure.persistence.repositories import InMemoryFlagConfigStore
from app.middleware import CallerContextMiddleware

ON = "milk_quality_testing"
OFF = "dark_mode_support"


@pytest.fixture
async def guarded_client():
    store = InMemoryFlagConfigStore()
    await store.upsert_flag(ON, {"target_tenant_ids": ["farm-1"]})
    await store.upsert_flag(OFF, {"rollout_percentage": 0})

    app = FastAPI()
    app.state.rollout_engine = RolloutEngine(store=store)
    register_exception_handlers(app)
    app.add_middleware(CallerContextMiddleware)

    @app.get("/quality")
    async def quality(caller: Annotated[CallerIdentity, Depends(require_capability(ON))]):
        return {"tenant_id": caller.tenant_id}

    @app.get("/both")
    async def both(_: Annotated[CallerIdentity, Depends(require_all_capabilities([ON, OFF]))]):
        return {}

    @app.get("/either")
    async def either(_: Annotated[CallerIdentity, Depends(require_any_capability([OFF, ON]))]):
        return {}

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def test_require_capability(guarded_client: AsyncClient) -> None:
    response = await guarded_client.get("/quality", headers={"X-Tenant-ID": "farm-1"})
    assert response.status_code == 200
    assert response.json() == {"tenant_id": "farm-1"}

    response = await guarded_client.get("/quality", headers={"X-Tenant-ID": "farm-2"})
    assert response.status_code == 403
    assert response.json()["error"] == "FEATURE_NOT_ENABLED"
    assert response.json()["details"]["capability_keys"] == [ON]


async def test_require_all(guarded_client: AsyncClient) -> None:
    response = await guarded_client.get("/both", headers={"X-Tenant-ID": "farm-1"})
    assert response.status_code == 403
    assert response.json()["details"]["capability_keys"] == [OFF]


async def test_require_any(guarded_client: AsyncClient) -> None:
    assert (await guarded_client.get("/either", headers={"X-Tenant-ID": "farm-1"})).status_code == 200
    assert (await guarded_client.get("/either", headers={"X-Tenant-ID": "farm-2"})).status_code == 403


def test_unknown_key_fails_at_declaration() -> None:
    with pytest.raises(ValueError):
        require_capability("no_such_capability")
    with pytest.raises(ValueError):
        require_any_capability([])
