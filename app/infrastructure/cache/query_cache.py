"""Get-or-compute query cache with tag-based invalidation.

Entries are stored in the key-value store as {"v": value} so that a
computed None is distinguishable from a miss. Each tag owns a set at
{prefix}:tag:{tag} listing the keys stored with it; invalidating the tag
atomically takes the set and deletes the keys it listed. Keys registered
after that land in a fresh set for the next invalidation.

The cache is an optimization only. Every store failure degrades to a miss
(compute and return, skip the write). Errors raised by compute_fn always
propagate and are never cached.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any, TypeVar

from app.application.dtos.performance import CacheStats
from app.application.interfaces.services import IKeyValueStore
from app.application.services.performance_monitor import PerformanceMonitor
from app.infrastructure.cache import keys
from app.infrastructure.cache.policy import CachePolicy
from app.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ENVELOPE_FIELD = "v"


class QueryCache:
    """Tenant-scoped read-through cache over an IKeyValueStore.

    Args:
        store: Key-value store; None behaves like an always-unavailable store.
        policy: TTL per data class (defaults to 300s for everything).
        monitor: Optional PerformanceMonitor used by cached_query().
        key_prefix: Namespace for every key this cache writes.
    """

    def __init__(
        self,
        store: IKeyValueStore | None,
        policy: CachePolicy | None = None,
        monitor: PerformanceMonitor | None = None,
        key_prefix: str = "mtk",
    ) -> None:
        self.store = store
        self.policy = policy or CachePolicy()
        self.monitor = monitor
        self.key_prefix = key_prefix
        self._hits = 0
        self._misses = 0
        self._sets = 0
        self._errors = 0
        self._invalidated = 0

    # Key derivation

    def derive_key(self, tenant_id: str, data_class: str | Enum, params: Any = None) -> str:
        """Deterministic key for (tenant, data class, canonical params).

        Raises:
            ValueError: If tenant_id or data_class is empty or malformed, or
                params hold a value without a stable JSON form.
        """
        return keys.query_key(self.key_prefix, tenant_id, data_class, params)

    @staticmethod
    def tenant_tag(tenant_id: str, data_class: str | Enum) -> str:
        """Tag shared by every read of data_class for tenant_id."""
        return keys.tenant_tag(tenant_id, data_class)

    # Read path

    async def get_or_compute(
        self,
        cache_key: str,
        ttl_seconds: int,
        tags: Iterable[str],
        compute_fn: Callable[[], T | Awaitable[T]],
    ) -> T:
        """Return the cached value for cache_key, or compute, store and return it.

        Args:
            cache_key: Non-empty key (see derive_key()).
            ttl_seconds: Positive TTL for the stored entry.
            tags: Tags to register the key under (may be empty).
            compute_fn: Zero-argument callable, sync or returning an awaitable.
                Called at most once per call to get_or_compute.

        Returns:
            Cached or freshly computed value.

        Raises:
            ValueError: If cache_key is empty or ttl_seconds is not a positive int.
            Exception: Whatever compute_fn raises, unchanged.
        """
        if not cache_key:
            raise ValueError("cache_key must be a non-empty string")
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be a positive integer")
        tag_list = sorted(set(tags))
        if any(not t for t in tag_list):
            raise ValueError("tags must be non-empty strings")

        found, value = await self._lookup(cache_key)
        if found:
            self._hits += 1
            return value
        self._misses += 1

        result = compute_fn()
        if inspect.isawaitable(result):
            result = await result

        await self._store(cache_key, result, ttl_seconds, tag_list)
        return result

    async def cached_query(
        self,
        tenant_id: str,
        data_class: str | Enum,
        params: Any,
        compute_fn: Callable[[], T | Awaitable[T]],
        ttl: int | None = None,
        extra_tags: Iterable[str] = (),
    ) -> T:
        """Tenant-scoped get_or_compute with key, TTL and tags derived from the data class.

        The entry is tagged {tenant_id}:{data_class} plus extra_tags. Timing is
        recorded under "cache.{data_class}" when a monitor is attached.
        """
        cache_key = self.derive_key(tenant_id, data_class, params)
        ttl_seconds = ttl if ttl is not None else self.policy.ttl_for(data_class)
        tags = {self.tenant_tag(tenant_id, data_class), *extra_tags}

        def _call() -> Awaitable[T]:
            return self.get_or_compute(cache_key, ttl_seconds, tags, compute_fn)

        if self.monitor is None:
            return await _call()
        return await self.monitor.timed(f"cache.{keys.data_class_name(data_class)}", _call)

    def _usable(self) -> bool:
        if self.store is None:
            return False
        try:
            return self.store.is_available()
        except Exception:
            logger.warning("Cache store availability check failed", exc_info=True)
            self._errors += 1
            return False

    async def _lookup(self, cache_key: str) -> tuple[bool, Any]:
        if not self._usable():
            return False, None
        try:
            raw = await self.store.get(cache_key)
        except Exception:
            logger.warning("Cache get failed for %s; treating as miss", cache_key, exc_info=True)
            self._errors += 1
            return False, None
        if raw is None:
            return False, None
        if not isinstance(raw, dict) or _ENVELOPE_FIELD not in raw:
            logger.debug("Ignoring unrecognised cache payload at %s", cache_key)
            return False, None
        return True, raw[_ENVELOPE_FIELD]

    async def _register(self, cache_key: str, tags: list[str], ttl_seconds: int) -> bool:
        for tag in tags:
            if not await self.store.add_to_set(
                keys.tag_key(self.key_prefix, tag), [cache_key], ttl_seconds
            ):
                logger.warning("Cache tag %s not registered for %s", tag, cache_key)
                return False
        return True

    async def _store(self, cache_key: str, value: Any, ttl_seconds: int, tags: list[str]) -> None:
        if not self._usable():
            return
        # Tags are registered before and after the write: an invalidation that
        # takes a tag index in between finds the key re-indexed afterwards.
        try:
            if not await self._register(cache_key, tags, ttl_seconds):
                return
            stored = await self.store.set(cache_key, {_ENVELOPE_FIELD: value}, ttl=ttl_seconds)
            if stored and tags and not await self._register(cache_key, tags, ttl_seconds):
                await self.store.delete(cache_key)
                return
        except (TypeError, ValueError):
            logger.warning("Cache value for %s is not serializable; returned uncached", cache_key)
            return
        except Exception:
            logger.warning("Cache set failed for %s", cache_key, exc_info=True)
            self._errors += 1
            return
        if stored:
            self._sets += 1

    # Invalidation

    async def invalidate(self, tag: str) -> int:
        """Delete every entry stored with tag. Returns the number of keys removed.

        A tag with no entries is a no-op. Store failures are logged and
        reported as 0.
        """
        index_key = keys.tag_key(self.key_prefix, tag)
        return await self._invalidate_index(index_key, label=tag)

    async def invalidate_tags(self, tags: Iterable[str]) -> int:
        total = 0
        for tag in tags:
            total += await self.invalidate(tag)
        return total

    async def invalidate_data_class(self, tenant_id: str, data_class: str | Enum) -> int:
        """Invalidate the {tenant_id}:{data_class} tag."""
        return await self.invalidate(self.tenant_tag(tenant_id, data_class))

    async def invalidate_key(self, cache_key: str) -> bool:
        """Delete a single entry. Returns False only when the store call failed."""
        if not cache_key:
            raise ValueError("cache_key must be a non-empty string")
        if not self._usable():
            return False
        try:
            removed = await self.store.delete(cache_key)
        except Exception:
            logger.warning("Cache delete failed for %s", cache_key, exc_info=True)
            self._errors += 1
            return False
        self._invalidated += int(removed)
        return True

    async def invalidate_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns count deleted."""
        if not pattern:
            raise ValueError("pattern must be a non-empty string")
        if not self._usable():
            return 0
        try:
            removed = await self.store.delete_pattern(pattern)
        except Exception:
            logger.warning("Cache pattern delete failed for %s", pattern, exc_info=True)
            self._errors += 1
            return 0
        self._invalidated += removed
        return removed

    @traced("cache.invalidate_tenant")
    async def invalidate_tenant(self, tenant_id: str) -> int:
        """Delete every entry of tenant_id: all tenant tags, then any untagged tenant keys."""
        add_span_attributes(tenant_id=tenant_id)
        tag_pattern = keys.tenant_tag_pattern(self.key_prefix, tenant_id)
        query_pattern = keys.tenant_query_pattern(self.key_prefix, tenant_id)
        if not self._usable():
            return 0
        try:
            index_keys = await self.store.keys_matching(tag_pattern)
        except Exception:
            logger.warning("Cache scan failed for %s", tag_pattern, exc_info=True)
            self._errors += 1
            index_keys = []
        total = 0
        for index_key in index_keys:
            total += await self._invalidate_index(index_key, label=index_key)
        total += await self.invalidate_pattern(query_pattern)
        logger.info("Cache invalidated for tenant %s (%s keys)", tenant_id, total)
        return total

    async def _invalidate_index(self, index_key: str, label: str) -> int:
        if not self._usable():
            return 0
        try:
            members = await self.store.pop_set_members(index_key)
            removed = await self.store.delete_many(members) if members else 0
        except Exception:
            logger.warning("Cache invalidation failed for %s", label, exc_info=True)
            self._errors += 1
            return 0
        if removed:
            logger.debug("Cache INVALIDATE tag %s (%s keys)", label, removed)
        self._invalidated += removed
        return removed

    # Statistics

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            sets=self._sets,
            errors=self._errors,
            invalidated_keys=self._invalidated,
        )

    def reset_stats(self) -> None:
        self._hits = self._misses = self._sets = self._errors = self._invalidated = 0
