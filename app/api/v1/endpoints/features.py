"""Caller-facing capability checks (tenant and user from X-Tenant-ID / X-User-ID)."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.v1.dependencies import get_caller_identity, get_rollout_engine
from app.application.services.rollout_engine import RolloutEngine
from app.domain.value_objects.core import CallerIdentity
from app.schemas.feature_flag import EnabledFeaturesResponse, FeatureStatusResponse

router = APIRouter()


@router.get("", response_model=EnabledFeaturesResponse)
async def list_enabled_features(
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)],
):
    """Capabilities active for the caller."""
    return EnabledFeaturesResponse(
        tenant_id=caller.tenant_id,
        user_id=caller.user_id,
        features=await engine.enabled_capabilities(caller),
    )


@router.get("/{key}", response_model=FeatureStatusResponse)
async def get_feature_status(
    key: str,
    engine: Annotated[RolloutEngine, Depends(get_rollout_engine)],
    caller: Annotated[CallerIdentity, Depends(get_caller_identity)],
):
    """Whether one capability is active for the caller."""
    return FeatureStatusResponse(key=key, enabled=await engine.resolve(key, caller))
