"""Health check endpoints. Used for liveness and readiness probes."""

from fastapi import APIRouter, Request

from app.core.config import get_settings
from app.schemas.health import HealthResponse, ReadinessResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get("/ready", response_model=ReadinessResponse)
def readiness_check(request: Request) -> ReadinessResponse:
    """Report component state. Always 200: degraded stores only slow the service down."""
    kv_store = getattr(request.app.state, "kv_store", None)
    connected = kv_store is not None and kv_store.is_available()
    return ReadinessResponse(
        cache_store="connected" if connected else "degraded",
        flag_store_backend=get_settings().flag_store_backend,
    )
