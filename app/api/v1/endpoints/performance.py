"""Performance administration API: aggregated timings and cache statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import (
    get_performance_monitor,
    get_query_cache,
    require_admin_token,
)
from app.application.services.performance_monitor import PerformanceMonitor
from app.core.limiter import limit_writes
from app.infrastructure.cache.query_cache import QueryCache
from app.schemas.performance import (
    CacheStatsResponse,
    OperationMetricsResponse,
    PerformanceResponse,
)

router = APIRouter(dependencies=[Depends(require_admin_token)])


def _snapshot(monitor: PerformanceMonitor, cache: QueryCache) -> PerformanceResponse:
    return PerformanceResponse(
        slow_threshold_ms=monitor.slow_threshold_ms,
        operations={
            name: OperationMetricsResponse(
                count=m.count,
                total_ms=m.total_ms,
                avg_ms=m.avg_ms,
                min_ms=m.min_ms,
                max_ms=m.max_ms,
            )
            for name, m in sorted(monitor.metrics().items())
        },
        cache=CacheStatsResponse.from_stats(cache.stats()),
    )


@router.get("", response_model=PerformanceResponse)
async def get_performance_metrics(
    monitor: Annotated[PerformanceMonitor, Depends(get_performance_monitor)],
    cache: Annotated[QueryCache, Depends(get_query_cache)],
):
    """Per-operation timing aggregates and query cache counters."""
    return _snapshot(monitor, cache)


@router.delete("", response_model=PerformanceResponse)
@limit_writes
async def reset_performance_metrics(
    request: Request,
    monitor: Annotated[PerformanceMonitor, Depends(get_performance_monitor)],
    cache: Annotated[QueryCache, Depends(get_query_cache)],
):
    """Reset timing aggregates and cache counters; returns the cleared snapshot."""
    monitor.reset()
    cache.reset_stats()
    return _snapshot(monitor, cache)
