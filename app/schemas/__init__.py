"""Pydantic request/response schemas for the API."""

from app.schemas.cache import CacheInvalidateRequest, CacheInvalidateResponse
from app.schemas.feature_flag import (
    EnabledFeaturesResponse,
    FeatureFlagBulkRequest,
    FeatureFlagBulkResponse,
    FeatureFlagListResponse,
    FeatureFlagPatch,
    FeatureFlagResponse,
    FeatureStatusResponse,
)
from app.schemas.health import HealthResponse, ReadinessResponse
from app.schemas.performance import PerformanceResponse

__all__ = [
    "CacheInvalidateRequest",
    "CacheInvalidateResponse",
    "EnabledFeaturesResponse",
    "FeatureFlagBulkRequest",
    "FeatureFlagBulkResponse",
    "FeatureFlagListResponse",
    "FeatureFlagPatch",
    "FeatureFlagResponse",
    "FeatureStatusResponse",
    "HealthResponse",
    "PerformanceResponse",
    "ReadinessResponse",
]
