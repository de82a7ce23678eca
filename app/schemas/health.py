"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class ReadinessResponse(BaseModel):
    """Response for GET /health/ready.

    The service is ready whenever it runs: an unreachable cache or flag
    store only degrades behaviour (always-miss, built-in defaults).
    """

    status: str = Field(default="ok", description="Readiness status")
    cache_store: str = Field(..., description="connected | degraded")
    flag_store_backend: str
