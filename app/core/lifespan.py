"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). Used by main.py;
no business logic here, only wiring of the per-process components
(flag store, rollout engine, key-value store, query cache, performance
monitor, telemetry) onto app.state.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.application.interfaces.repositories import IFlagConfigStore
from app.application.interfaces.services import IKeyValueStore
from app.application.services.performance_monitor import PerformanceMonitor
from app.application.services.rollout_engine import RolloutEngine
from app.core.config import Settings, get_settings
from app.infrastructure.cache import CachePolicy, InMemoryCacheStore, QueryCache

logger = logging.getLogger(__name__)


def _build_flag_store(settings: Settings) -> IFlagConfigStore:
    if settings.flag_store_backend == "postgres":
        from app.infrastructure.persistence.database import get_session_factory
        from app.infrastructure.persistence.repositories import SqlFlagConfigStore

        return SqlFlagConfigStore(get_session_factory())
    from app.infrastructure.persistence.repositories import InMemoryFlagConfigStore

    return InMemoryFlagConfigStore()


async def _build_kv_store(settings: Settings) -> IKeyValueStore:
    if settings.redis_enabled:
        from app.infrastructure.cache.redis_cache import CacheService

        cache = CacheService()
        await cache.connect()
        return cache
    logger.info("Redis disabled; query cache uses the in-process store")
    return InMemoryCacheStore()


def _setup_telemetry(app: FastAPI, settings: Settings) -> None:
    from app.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

    telemetry = TelemetryConfig(
        service_name=settings.app_name,
        service_version=settings.app_version,
        enabled=True,
        environment=settings.environment,
    )
    telemetry.setup_telemetry(
        exporter_type=settings.telemetry_exporter,
        otlp_endpoint=settings.telemetry_otlp_endpoint,
        jaeger_endpoint=settings.telemetry_jaeger_endpoint,
        sample_rate=settings.telemetry_sample_rate,
    )
    set_telemetry(telemetry)
    telemetry.instrument_fastapi(app)
    telemetry.instrument_logging()
    if settings.redis_enabled:
        telemetry.instrument_redis()
    if settings.flag_store_backend == "postgres":
        from app.infrastructure.persistence import database

        telemetry.instrument_sqlalchemy(database.engine)
    logger.info("Telemetry initialized")


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: telemetry (if enabled, so Redis/SQL clients are
    instrumented), flag store + rollout engine, key-value store + query
    cache. Shutdown order: key-value store disconnect, telemetry shutdown,
    SQL engine dispose.
    """
    settings = get_settings()

    # ---- Startup ----
    flag_store = _build_flag_store(settings)
    if settings.telemetry_enabled:
        _setup_telemetry(app, settings)

    monitor = PerformanceMonitor(slow_threshold_ms=settings.slow_operation_threshold_ms)
    app.state.performance_monitor = monitor
    app.state.rollout_engine = RolloutEngine(
        store=flag_store,
        flag_cache_ttl=settings.feature_flag_cache_ttl,
        strict_keys=settings.strict_capability_keys,
        overrides=settings.feature_overrides,
    )
    kv_store = await _build_kv_store(settings)
    app.state.kv_store = kv_store
    app.state.query_cache = QueryCache(
        kv_store,
        policy=CachePolicy.from_settings(settings),
        monitor=monitor,
        key_prefix=settings.cache_key_prefix,
    )
    logger.info(
        "Rollout engine and query cache ready (flag store: %s, cache store: %s)",
        settings.flag_store_backend,
        type(kv_store).__name__,
    )

    yield

    # ---- Shutdown ----
    disconnect = getattr(app.state.kv_store, "disconnect", None)
    if disconnect is not None:
        await disconnect()
        logger.info("Cache disconnected")

    from app.shared.telemetry.telemetry import get_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()

    from app.infrastructure.persistence import database

    await database.dispose_engine()
