"""Span helpers for rollout and cache operations.

All helpers work against the global tracer provider and degrade to no-ops
when telemetry was never set up.
"""

import asyncio
from collections.abc import Callable, Mapping
from functools import wraps
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

AttributeValue = str | int | float | bool

# Only these kwarg names are copied onto spans by @traced; identifiers and
# cache coordinates, never payloads or computed values.
_SAFE_SPAN_ATTR_KEYS = frozenset({
    "capability_key", "key", "tenant_id", "user_id", "data_class",
    "tag", "tags", "phase", "percentage", "ttl", "ttl_seconds", "operation",
})

_tracer = trace.get_tracer(__name__)


def _safe_attributes(kwargs: Mapping[str, Any]) -> dict[str, str]:
    return {
        f"arg.{name}": str(value)
        for name, value in kwargs.items()
        if name in _SAFE_SPAN_ATTR_KEYS and value is not None
    }


def _record_error(span: trace.Span, exc: BaseException) -> None:
    span.set_status(Status(StatusCode.ERROR, str(exc)))
    span.record_exception(exc)


def traced(
    operation_name: str | None = None,
    attributes: Mapping[str, AttributeValue] | None = None,
) -> Callable:
    """Decorator: run a sync or async function inside a span.

    Allowlisted keyword arguments (capability_key, tenant_id, data_class...)
    are recorded as arg.<name> attributes.
    """

    def decorator(func: Callable) -> Callable:
        span_name = operation_name or f"{func.__module__}.{func.__qualname__}"

        def _start(kwargs: Mapping[str, Any]):
            return _tracer.start_as_current_span(
                span_name,
                attributes={**(attributes or {}), **_safe_attributes(kwargs)},
                record_exception=False,
                set_status_on_exception=False,
            )

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _start(kwargs) as span:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise

        @wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _start(kwargs) as span:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    _record_error(span, e)
                    raise

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def add_span_attributes(**attributes: AttributeValue) -> None:
    """Add attributes to the current span (if one is recording)."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(attributes)


def get_trace_id() -> str | None:
    """Return the current trace ID as 32-char hex, or None."""
    ctx = trace.get_current_span().get_span_context()
    return format(ctx.trace_id, "032x") if ctx.is_valid else None


class TracedOperation:
    """Context manager running a block inside a span made current for its duration.

    Exceptions mark the span as error and propagate unchanged.
    """

    def __init__(
        self, operation_name: str, attributes: Mapping[str, AttributeValue] | None = None
    ) -> None:
        self.operation_name = operation_name
        self.attributes = dict(attributes or {})
        self._scope: Any = None
        self.span: trace.Span | None = None

    def __enter__(self) -> "TracedOperation":
        self._scope = _tracer.start_as_current_span(
            self.operation_name,
            attributes=self.attributes,
            record_exception=False,
            set_status_on_exception=False,
        )
        self.span = self._scope.__enter__()
        return self

    def __exit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        if self.span is not None and exc_val is not None:
            _record_error(self.span, exc_val)
        self._scope.__exit__(exc_type, exc_val, exc_tb)

    async def __aenter__(self) -> "TracedOperation":
        return self.__enter__()

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)
