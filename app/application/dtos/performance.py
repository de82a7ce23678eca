"""DTOs for performance and cache statistics."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OperationMetrics:
    """Aggregated timings for one operation name (milliseconds)."""

    count: int
    total_ms: float
    avg_ms: float
    min_ms: float
    max_ms: float


@dataclass(frozen=True)
class CacheStats:
    """Query cache counters since process start or last reset."""

    hits: int
    misses: int
    sets: int
    errors: int
    invalidated_keys: int

    @property
    def hit_rate(self) -> float:
        """Return hits / (hits + misses), 0.0 when there were no lookups."""
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0
