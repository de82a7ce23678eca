"""In-process key-value store with TTL (IKeyValueStore).

Used when Redis is disabled (local development, tests). Values are stored
JSON-encoded so they behave like the Redis store: callers always get a
fresh copy and non-serializable values are rejected on set(). Not shared
between processes.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    expires_at: float
    payload: str | None = None
    members: set[str] = field(default_factory=set)


class InMemoryCacheStore:
    """Dict-backed store with lazy expiry and glob key matching."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def is_available(self) -> bool:
        return True

    def _live(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry

    def _purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, e in self._entries.items() if now >= e.expires_at]:
            del self._entries[key]

    async def get(self, key: str) -> Any | None:
        entry = self._live(key)
        if entry is None or entry.payload is None:
            return None
        return json.loads(entry.payload)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        payload = json.dumps(value)
        self._entries[key] = _Entry(expires_at=self._clock() + ttl, payload=payload)
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        return True

    async def delete(self, key: str) -> bool:
        if self._live(key) is None:
            return False
        del self._entries[key]
        return True

    async def delete_many(self, keys: Iterable[str]) -> int:
        deleted = 0
        for key in keys:
            if self._live(key) is not None:
                del self._entries[key]
                deleted += 1
        return deleted

    async def keys_matching(self, pattern: str) -> list[str]:
        self._purge_expired()
        return [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]

    async def delete_pattern(self, pattern: str) -> int:
        return await self.delete_many(await self.keys_matching(pattern))

    async def add_to_set(self, key: str, members: Iterable[str], ttl: int) -> bool:
        entry = self._live(key)
        expires_at = self._clock() + ttl
        if entry is None or entry.payload is not None:
            entry = _Entry(expires_at=expires_at)
            self._entries[key] = entry
        entry.members.update(members)
        entry.expires_at = max(entry.expires_at, expires_at)
        return True

    async def pop_set_members(self, key: str) -> set[str]:
        entry = self._live(key)
        if entry is None or entry.payload is not None:
            return set()
        del self._entries[key]
        return entry.members
