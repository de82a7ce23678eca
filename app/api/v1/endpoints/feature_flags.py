"""Feature flag administration API: list, get, update, bulk update, reset.

Every route requires X-Admin-Token (router dependency).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from app.api.v1.dependencies import (
    get_caller_identity,
    get_rollout_engine,
    require_admin_token,
)
from app.application.services.rollout_engine import RolloutEngine
from app.core.limiter import limit_writes
from app.domain.enums import RolloutPhase
from app.domain.value_objects.core import CallerIdentity
from app.schemas.feature_flag import (
    FeatureFlagBulkRequest,
    FeatureFlagBulkResponse,
    FeatureFlagBulkResult,
    FeatureFlagListResponse,
    FeatureFlagPatch,
    FeatureFlagResponse,
    RolloutStatsResponse,
)

router = APIRouter(dependencies=[Depends(require_admin_token)])


@router.get("", response_model=FeatureFlagListResponse)
async def list_feature_flags(
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)],
    phase: RolloutPhase | None = Query(default=None),
    enabled: bool | None = Query(
        default=None, description="Filter by resolved state for the caller headers"
    ),
):
    """List every capability with its effective configuration and resolved state."""
    resolved = await engine.list_flags(caller)
    if phase is not None:
        resolved = [r for r in resolved if r.flag.phase == phase]
    if enabled is not None:
        resolved = [r for r in resolved if r.active == enabled]
    return FeatureFlagListResponse(
        flags=[FeatureFlagResponse.from_flag(r.flag, r.source, r.active) for r in resolved],
        stats=RolloutStatsResponse.from_stats(await engine.rollout_stats()),
    )


@router.get("/{key}", response_model=FeatureFlagResponse)
async def get_feature_flag(
    key: str,
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)],
):
    """Return one flag (400 for unknown keys)."""
    resolved = await engine.resolve_flag(key, caller)
    return FeatureFlagResponse.from_flag(resolved.flag, resolved.source, resolved.active)


@router.put("/{key}", response_model=FeatureFlagResponse)
@limit_writes
async def update_feature_flag(
    request: Request,
    key: str,
    body: FeatureFlagPatch,
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
):
    """Overwrite the sent fields of one flag; visible to the next resolve."""
    flag = await engine.update(key, body.to_patch())
    return FeatureFlagResponse.from_flag(flag)


@router.post("/bulk", response_model=FeatureFlagBulkResponse)
@limit_writes
async def bulk_update_feature_flags(
    request: Request,
    body: FeatureFlagBulkRequest,
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
):
    """Apply each update independently and report per-key success or failure."""
    results = await engine.bulk_update((item.key, item.to_patch()) for item in body.updates)
    succeeded = sum(1 for r in results if r.success)
    return FeatureFlagBulkResponse(
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=[
            FeatureFlagBulkResult(
                key=r.key,
                success=r.success,
                error=r.error,
                flag=FeatureFlagResponse.from_flag(r.flag) if r.flag is not None else None,
            )
            for r in results
        ],
    )


@router.delete("/{key}", response_model=FeatureFlagResponse)
@limit_writes
async def reset_feature_flag(
    request: Request,
    key: str,
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
):
    """Reset a flag to its built-in default."""
    flag = await engine.reset(key)
    return FeatureFlagResponse.from_flag(flag, source="default")
