"""Shared telemetry: logging setup, OpenTelemetry config, and tracing helpers."""

from app.shared.telemetry.logging import setup_logging
from app.shared.telemetry.telemetry import TelemetryConfig, get_telemetry, set_telemetry
from app.shared.telemetry.tracing import (
    TracedOperation,
    add_span_attributes,
    get_trace_id,
    traced,
)

__all__ = [
    "setup_logging",
    "TelemetryConfig",
    "get_telemetry",
    "set_telemetry",
    "traced",
    "add_span_attributes",
    "get_trace_id",
    "TracedOperation",
]
