"""In-process performance monitor: per-operation timing aggregates.

Observability only: wrapping a call never changes its result or exception.
Each timed operation also runs inside an OpenTelemetry span (no-op when
telemetry is not configured).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from threading import Lock
from typing import Any, TypeVar

from app.application.dtos.performance import OperationMetrics
from app.shared.telemetry.tracing import TracedOperation

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Aggregate:
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0


class PerformanceMonitor:
    """Accumulates PerformanceSample timings per operation name.

    Thread-safe. Samples above slow_threshold_ms are logged as warnings.
    Never persisted; reset() clears everything.
    """

    def __init__(self, slow_threshold_ms: float = 1000.0) -> None:
        self.slow_threshold_ms = slow_threshold_ms
        self._metrics: dict[str, _Aggregate] = {}
        self._lock = Lock()

    def record(self, operation: str, duration_ms: float) -> None:
        """Record one sample for operation."""
        with self._lock:
            agg = self._metrics.setdefault(operation, _Aggregate())
            agg.count += 1
            agg.total_ms += duration_ms
            agg.min_ms = min(agg.min_ms, duration_ms)
            agg.max_ms = max(agg.max_ms, duration_ms)
        if duration_ms > self.slow_threshold_ms:
            logger.warning(
                "Slow operation detected: %s took %.2fms", operation, duration_ms
            )

    @contextmanager
    def track(self, operation: str) -> Iterator[None]:
        """Time the enclosed block (recorded on success and on error)."""
        start = time.perf_counter()
        try:
            with TracedOperation(f"perf.{operation}", {"operation": operation}):
                yield
        finally:
            self.record(operation, (time.perf_counter() - start) * 1000)

    async def timed(self, operation: str, fn: Callable[[], T | Awaitable[T]]) -> T:
        """Call fn (sync or returning an awaitable), record its duration, return its result.

        Args:
            operation: Name the sample is aggregated under.
            fn: Zero-argument callable.

        Returns:
            Whatever fn returns (awaited if needed). Exceptions propagate unchanged.
        """
        with self.track(operation):
            result = fn()
            if inspect.isawaitable(result):
                result = await result
            return result

    def monitored(self, operation: str | None = None) -> Callable:
        """Decorator: time every call of a sync or async function.

        Args:
            operation: Sample name (defaults to the function's qualified name).
        """

        def decorator(func: Callable) -> Callable:
            name = operation or func.__qualname__

            @wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self.track(name):
                    return await func(*args, **kwargs)

            @wraps(func)
            def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
                with self.track(name):
                    return func(*args, **kwargs)

            if asyncio.iscoroutinefunction(func):
                return async_wrapper
            return sync_wrapper

        return decorator

    def metrics(self) -> dict[str, OperationMetrics]:
        """Return a snapshot of aggregates keyed by operation name."""
        with self._lock:
            return {
                name: OperationMetrics(
                    count=agg.count,
                    total_ms=agg.total_ms,
                    avg_ms=agg.total_ms / agg.count,
                    min_ms=agg.min_ms,
                    max_ms=agg.max_ms,
                )
                for name, agg in self._metrics.items()
                if agg.count
            }

    def reset(self) -> None:
        """Drop all samples."""
        with self._lock:
            self._metrics.clear()
