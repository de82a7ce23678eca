"""OpenTelemetry distributed tracing configuration.

Exports over OTLP (gRPC); Jaeger is reached through its OTLP port (4317).
Instrumentation covers FastAPI, the Redis client used by the query cache,
and the SQLAlchemy engine of the postgres flag store.
"""

import logging
import threading
from collections.abc import Callable

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

EXPORTERS = ("console", "otlp", "jaeger", "none")
JAEGER_OTLP_PORT = 4317


def _build_exporter(
    exporter_type: str, otlp_endpoint: str | None, jaeger_endpoint: str | None
) -> SpanExporter | None:
    """Span exporter for exporter_type; None for "none". Falls back to console."""
    if exporter_type == "none":
        return None
    if exporter_type == "otlp" and otlp_endpoint:
        logger.info("Using OTLP span exporter: %s", otlp_endpoint)
        return OTLPSpanExporter(
            endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
        )
    if exporter_type == "jaeger" and jaeger_endpoint:
        endpoint = f"{jaeger_endpoint}:{JAEGER_OTLP_PORT}"
        logger.info("Using OTLP span exporter for Jaeger: %s", endpoint)
        return OTLPSpanExporter(endpoint=endpoint, insecure=True)
    if exporter_type != "console":
        logger.warning(
            "Exporter '%s' unknown or missing its endpoint, using console", exporter_type
        )
    return ConsoleSpanExporter()


class TelemetryConfig:
    """OpenTelemetry tracing for one service process.

    setup_telemetry() installs the global tracer provider; the instrument_*
    methods are no-ops until it succeeded.
    """

    def __init__(
        self,
        service_name: str,
        service_version: str,
        enabled: bool = True,
        environment: str = "development",
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.enabled = enabled
        self.environment = environment
        self.tracer_provider: TracerProvider | None = None

    def setup_telemetry(
        self,
        exporter_type: str = "console",
        otlp_endpoint: str | None = None,
        jaeger_endpoint: str | None = None,
        sample_rate: float = 1.0,
    ) -> TracerProvider | None:
        """Create the tracer provider and register it globally.

        Args:
            exporter_type: One of EXPORTERS.
            otlp_endpoint: OTLP gRPC endpoint (e.g. http://localhost:4317).
            jaeger_endpoint: Jaeger host; OTLP port is appended.
            sample_rate: Trace sampling ratio 0.0-1.0.

        Returns:
            TracerProvider, or None if disabled or setup failed. Telemetry
            failures never prevent the service from starting.
        """
        if not self.enabled:
            logger.info("Telemetry disabled")
            return None
        try:
            resource = Resource(
                attributes={
                    SERVICE_NAME: self.service_name,
                    SERVICE_VERSION: self.service_version,
                    "deployment.environment": self.environment,
                }
            )
            provider = TracerProvider(
                resource=resource, sampler=TraceIdRatioBased(sample_rate)
            )
            exporter = _build_exporter(exporter_type, otlp_endpoint, jaeger_endpoint)
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
            trace.set_tracer_provider(provider)
            self.tracer_provider = provider
            logger.info(
                "OpenTelemetry initialized: service=%s, version=%s, exporter=%s",
                self.service_name,
                self.service_version,
                exporter_type,
            )
            return provider
        except Exception as e:
            logger.exception("Failed to initialize telemetry: %s", e)
            return None

    def _instrument(self, name: str, instrument: Callable[[TracerProvider], None]) -> None:
        if not self.enabled or self.tracer_provider is None:
            return
        try:
            instrument(self.tracer_provider)
            logger.info("%s instrumentation enabled", name)
        except Exception as e:
            logger.exception("Failed to instrument %s: %s", name, e)

    def instrument_fastapi(self, app: FastAPI) -> None:
        """Trace every request except health probes."""
        self._instrument(
            "FastAPI",
            lambda provider: FastAPIInstrumentor.instrument_app(
                app, tracer_provider=provider, excluded_urls="/api/v1/health"
            ),
        )

    def instrument_redis(self) -> None:
        """Trace cache store commands."""
        self._instrument(
            "Redis", lambda provider: RedisInstrumentor().instrument(tracer_provider=provider)
        )

    def instrument_sqlalchemy(self, engine: AsyncEngine | None) -> None:
        """Trace flag store queries (no-op when the engine was never created)."""
        if engine is None:
            return
        self._instrument(
            "SQLAlchemy",
            lambda provider: SQLAlchemyInstrumentor().instrument(
                engine=engine.sync_engine, tracer_provider=provider
            ),
        )

    def instrument_logging(self) -> None:
        """Add trace_id/span_id to log records."""
        self._instrument(
            "Logging",
            lambda provider: LoggingInstrumentor().instrument(
                tracer_provider=provider, set_logging_format=True
            ),
        )

    def shutdown(self) -> None:
        """Flush remaining spans and shut the provider down."""
        if self.tracer_provider is None:
            return
        try:
            self.tracer_provider.shutdown()
            logger.info("Telemetry shutdown complete")
        except Exception as e:
            logger.exception("Error during telemetry shutdown: %s", e)


_telemetry: TelemetryConfig | None = None
_telemetry_lock = threading.RLock()


def get_telemetry() -> TelemetryConfig | None:
    """Return the process telemetry instance (None until startup set it)."""
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: TelemetryConfig | None) -> None:
    """Set (or clear, with None) the process telemetry instance."""
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry
