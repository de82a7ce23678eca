"""Domain exceptions for the rollout and query-cache layer.

Defines domain-level exceptions that represent contract violations and
degraded-configuration states. These exceptions are independent of
infrastructure concerns. Presentation layer maps them to HTTP responses in
exception handlers.
"""

from typing import Any


class DairyException(Exception):
    """Base exception for all application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, capability_key).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses.

        Returns:
            Dict with keys error (error_code), message, and details.
        """
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(DairyException):
    """Raised when input validation fails (e.g. invalid format or range)."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field or attribute that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class UnknownCapabilityKeyException(DairyException):
    """Raised when a capability key outside the known catalogue is used.

    A programmer error at the call site. The rollout engine raises it in
    strict mode (non-production by default) and resolves the key as disabled
    otherwise.
    """

    def __init__(self, capability_key: str) -> None:
        """Initialize with the unknown key.

        Args:
            capability_key: The key that is not part of the catalogue.
        """
        super().__init__(
            f"Unknown capability key: {capability_key}",
            "UNKNOWN_CAPABILITY_KEY",
            {"capability_key": capability_key},
        )


class FeatureNotEnabledException(DairyException):
    """Raised by the request pipeline when a capability is not active for the caller."""

    def __init__(
        self,
        capability_keys: list[str],
        tenant_id: str | None = None,
    ) -> None:
        """Initialize with the capabilities that were required.

        Args:
            capability_keys: Capability keys that were not active.
            tenant_id: Optional tenant the check ran for.
        """
        if len(capability_keys) == 1:
            message = f"Feature {capability_keys[0]} is not enabled for your account"
        else:
            message = f"{len(capability_keys)} feature(s) are not enabled for your account"
        details: dict[str, Any] = {"capability_keys": capability_keys}
        if tenant_id:
            details["tenant_id"] = tenant_id
        super().__init__(message, "FEATURE_NOT_ENABLED", details)


class ConfigurationUnavailableException(DairyException):
    """Raised by stores when configuration or the key-value store cannot be reached.

    Never surfaced to end callers: the rollout engine falls back to built-in
    defaults and the query cache falls back to always-miss.
    """

    def __init__(self, store: str, reason: str) -> None:
        """Initialize with the unavailable store and reason.

        Args:
            store: Store name (e.g. 'flag_store', 'redis').
            reason: Human-readable reason.
        """
        super().__init__(
            f"{store} unavailable: {reason}",
            "CONFIGURATION_UNAVAILABLE",
            {"store": store, "reason": reason},
        )


class SqlNotConfiguredException(DairyException):
    """Raised when the SQL flag store is requested but no database is configured."""

    def __init__(self) -> None:
        super().__init__(
            "SQL database not configured. Set FLAG_STORE_BACKEND=postgres and DATABASE_URL.",
            "SQL_NOT_CONFIGURED",
            {},
        )
