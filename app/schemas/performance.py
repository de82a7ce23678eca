"""Performance and cache statistics API schemas."""

from pydantic import BaseModel, Field

from app.application.dtos.performance import CacheStats


class OperationMetricsResponse(BaseModel):
    """Aggregated timings for one operation (milliseconds)."""

    count: int
    total_ms: float
    avg_ms: float
    min_ms: float
    max_ms: float


class CacheStatsResponse(BaseModel):
    """Query cache counters."""

    hits: int
    misses: int
    sets: int
    errors: int
    invalidated_keys: int
    hit_rate: float = Field(..., ge=0.0, le=1.0)

    @classmethod
    def from_stats(cls, stats: CacheStats) -> "CacheStatsResponse":
        return cls(
            hits=stats.hits,
            misses=stats.misses,
            sets=stats.sets,
            errors=stats.errors,
            invalidated_keys=stats.invalidated_keys,
            hit_rate=round(stats.hit_rate, 4),
        )


class PerformanceResponse(BaseModel):
    """Response for GET /admin/performance."""

    slow_threshold_ms: float
    operations: dict[str, OperationMetricsResponse]
    cache: CacheStatsResponse
