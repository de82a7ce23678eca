"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend-specific requirements (e.g. DATABASE_URL for the
postgres flag store) are validated at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_FLAG_STORE_BACKENDS = ("memory", "postgres")
_UNKNOWN_FLAG_POLICIES = ("raise", "disable")


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults; validate_backends rejects
    unsupported backend/policy values and a postgres flag store without
    DATABASE_URL.
    """

    # App
    app_name: str = "dairy-rollout-cache"
    app_version: str = "1.0.0"
    debug: bool = False
    # DEBUG, INFO, WARNING...; unset means DEBUG when debug is on, else INFO
    log_level: str | None = None
    # development | staging | production
    environment: str = "development"

    # Flag configuration store: "memory" (process-local) or "postgres" (SQLAlchemy + Alembic)
    flag_store_backend: str = "memory"
    database_url: str = ""
    database_echo: bool = False
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_command_timeout: int | None = None

    # Administrative surface: X-Admin-Token must match this value.
    admin_api_token: SecretStr | None = None

    # Caller identity headers (identity resolution itself is upstream).
    tenant_header_name: str = "X-Tenant-ID"
    user_header_name: str = "X-User-ID"

    # Request / middleware
    request_timeout_seconds: int = 60
    request_id_header: str = "X-Request-ID"
    correlation_id_header: str = "X-Correlation-ID"

    # Redis (key-value store for the query cache)
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    cache_key_prefix: str = "mtk"

    # TTL policy per data class (seconds)
    cache_ttl_list: int = 300  # 5 minutes
    cache_ttl_stats: int = 600  # 10 minutes
    cache_ttl_dashboard: int = 180  # 3 minutes
    cache_ttl_analytics: int = 900  # 15 minutes
    cache_ttl_profile: int = 3600  # 1 hour
    cache_ttl_default: int = 300

    # Feature flags
    feature_flag_cache_ttl: int = 300
    # JSON map, e.g. FEATURE_OVERRIDES='{"dark_mode_support": true}'
    feature_overrides: dict[str, bool] = {}
    # "raise" or "disable"; None = raise outside production, disable in production.
    unknown_flag_policy: str | None = None

    # Performance monitoring
    slow_operation_threshold_ms: float = 1000.0

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_jaeger_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_backends(self) -> "Settings":
        """Validate flag store backend and unknown-flag policy.

        - Postgres: DATABASE_URL required.
        - unknown_flag_policy: must be 'raise', 'disable' or unset.
        """
        if self.flag_store_backend not in _FLAG_STORE_BACKENDS:
            raise ValueError(
                f"flag_store_backend must be one of {_FLAG_STORE_BACKENDS}, "
                f"got: {self.flag_store_backend!r}"
            )
        if self.flag_store_backend == "postgres" and not self.database_url:
            raise ValueError(
                "DATABASE_URL is required when flag_store_backend is 'postgres'. "
                "Set in environment or .env file."
            )
        if (
            self.unknown_flag_policy is not None
            and self.unknown_flag_policy not in _UNKNOWN_FLAG_POLICIES
        ):
            raise ValueError(
                f"unknown_flag_policy must be one of {_UNKNOWN_FLAG_POLICIES}, "
                f"got: {self.unknown_flag_policy!r}"
            )
        return self

    @property
    def strict_capability_keys(self) -> bool:
        """Return True when unknown capability keys should raise instead of resolving False."""
        if self.unknown_flag_policy is not None:
            return self.unknown_flag_policy == "raise"
        return self.environment != "production"


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
