"""Persistence repositories. Re-exports for dependency injection."""

from app.infrastructure.persistence.repositories.feature_flag_repo import (
    InMemoryFlagConfigStore,
    SqlFlagConfigStore,
)

__all__ = [
    "InMemoryFlagConfigStore",
    "SqlFlagConfigStore",
]
