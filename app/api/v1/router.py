"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from app.api.v1.dependencies (no manual component construction).
"""

from fastapi import APIRouter

from app.api.v1.endpoints import cache, feature_flags, features, health, performance

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(features.router, prefix="/features", tags=["features"])
api_router.include_router(
    feature_flags.router, prefix="/admin/feature-flags", tags=["admin-feature-flags"]
)
api_router.include_router(
    performance.router, prefix="/admin/performance", tags=["admin-performance"]
)
api_router.include_router(cache.router, prefix="/admin/cache", tags=["admin-cache"])
