"""Service interfaces (ports) for the application layer.

Protocols define contracts for infrastructure services (DIP).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol


class IKeyValueStore(Protocol):
    """Key-value store consumed by the query cache (e.g. Redis).

    Values are JSON-serializable. Implementations should return None/False/0
    rather than raise when the backend is unreachable; callers still guard
    against errors and degrade to a cache miss.
    """

    def is_available(self) -> bool:
        """Return True if the store is connected and usable."""

    async def get(self, key: str) -> Any:
        """Return cached value or None."""

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL in seconds. Returns True on success."""

    async def delete(self, key: str) -> bool:
        """Delete key. Returns True if a live key was removed."""

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Delete keys. Returns count deleted."""

    async def keys_matching(self, pattern: str) -> list[str]:
        """Return keys matching a glob pattern."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete keys matching a glob pattern. Returns count deleted."""

    async def add_to_set(self, key: str, members: Iterable[str], ttl: int) -> bool:
        """Add members to the set at key and extend its TTL to at least ttl seconds."""

    async def pop_set_members(self, key: str) -> set[str]:
        """Atomically remove the set at key and return its members (empty when absent)."""
