"""Tests for QueryCache: get-or-compute, tags, tenant isolation and degradation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.application.services.performance_monitor import PerformanceMonitor
from app.domain.enums import DataClass
from app.infrastructure.cache import CachePolicy, InMemoryCacheStore, QueryCache


class Counter:
    """compute_fn that counts its calls."""

    def __init__(self, value):
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


def failing_store() -> MagicMock:
    """Store that reports itself available but fails every call."""
    store = MagicMock()
    store.is_available.return_value = True
    for name in ("get", "set", "delete", "delete_many", "keys_matching",
                 "delete_pattern", "add_to_set", "pop_set_members"):
        setattr(store, name, AsyncMock(side_effect=ConnectionError("store down")))
    return store


class TestGetOrCompute:
    async def test_compute_once_then_hit_then_invalidate(self, query_cache: QueryCache) -> None:
        fn = Counter([{"id": 1}])

        assert await query_cache.get_or_compute("animals:t1:p1", 300, {"t1:animals"}, fn) == [{"id": 1}]
        assert fn.calls == 1
        assert await query_cache.get_or_compute("animals:t1:p1", 300, {"t1:animals"}, fn) == [{"id": 1}]
        assert fn.calls == 1

        assert await query_cache.invalidate("t1:animals") == 1
        assert await query_cache.get_or_compute("animals:t1:p1", 300, {"t1:animals"}, fn) == [{"id": 1}]
        assert fn.calls == 2

    async def test_always_failing_store_still_returns_values(self) -> None:
        cache = QueryCache(failing_store())
        fn = Counter({"total": 7})
        for _ in range(3):
            assert await cache.get_or_compute("k", 60, {"t1:milk_stats"}, fn) == {"total": 7}
        assert fn.calls == 3
        assert cache.stats().errors >= 3
        assert cache.stats().sets == 0

    async def test_unavailable_store_is_always_miss(self) -> None:
        store = MagicMock()
        store.is_available.return_value = False
        cache = QueryCache(store)
        fn = Counter(1)
        await cache.get_or_compute("k", 60, (), fn)
        await cache.get_or_compute("k", 60, (), fn)
        assert fn.calls == 2
        store.get.assert_not_called()

    async def test_no_store(self) -> None:
        fn = Counter("x")
        assert await QueryCache(None).get_or_compute("k", 60, (), fn) == "x"

    async def test_failed_compute_propagates_and_is_not_cached(self, query_cache: QueryCache) -> None:
        def boom():
            raise RuntimeError("db error")

        with pytest.raises(RuntimeError, match="db error"):
            await query_cache.get_or_compute("k", 60, {"t1:x"}, boom)

        fn = Counter(5)
        assert await query_cache.get_or_compute("k", 60, {"t1:x"}, fn) == 5
        assert fn.calls == 1

    async def test_none_is_cached(self, query_cache: QueryCache) -> None:
        fn = Counter(None)
        assert await query_cache.get_or_compute("k", 60, (), fn) is None
        assert await query_cache.get_or_compute("k", 60, (), fn) is None
        assert fn.calls == 1

    async def test_async_compute(self, query_cache: QueryCache) -> None:
        calls = []

        async def compute():
            calls.append(1)
            return {"async": True}

        assert await query_cache.get_or_compute("k", 60, (), compute) == {"async": True}
        assert await query_cache.get_or_compute("k", 60, (), compute) == {"async": True}
        assert len(calls) == 1

    async def test_entry_expires_after_ttl(self, query_cache: QueryCache, clock) -> None:
        fn = Counter(1)
        await query_cache.get_or_compute("k", 10, (), fn)
        clock.advance(11)
        await query_cache.get_or_compute("k", 10, (), fn)
        assert fn.calls == 2

    async def test_unserializable_value_is_returned_uncached(self, query_cache: QueryCache) -> None:
        value = {1, 2, 3}
        fn = Counter(value)
        assert await query_cache.get_or_compute("k", 60, (), fn) == value
        assert await query_cache.get_or_compute("k", 60, (), fn) == value
        assert fn.calls == 2
        assert query_cache.stats().errors == 0

    async def test_value_not_stored_when_tag_registration_fails(self) -> None:
        store = InMemoryCacheStore()
        store.add_to_set = AsyncMock(return_value=False)
        cache = QueryCache(store)
        fn = Counter(1)
        await cache.get_or_compute("k", 60, {"t1:x"}, fn)
        assert await store.get("k") is None

    @pytest.mark.parametrize("ttl", [0, -5, True, 1.5])
    async def test_invalid_ttl(self, query_cache: QueryCache, ttl) -> None:
        with pytest.raises(ValueError):
            await query_cache.get_or_compute("k", ttl, (), Counter(1))

    async def test_empty_key(self, query_cache: QueryCache) -> None:
        with pytest.raises(ValueError):
            await query_cache.get_or_compute("", 60, (), Counter(1))

    async def test_empty_tag(self, query_cache: QueryCache) -> None:
        with pytest.raises(ValueError):
            await query_cache.get_or_compute("k", 60, {""}, Counter(1))


class TestCachedQuery:
    async def test_tenants_never_share_entries(self, query_cache: QueryCache) -> None:
        a, b = Counter(["cow-a"]), Counter(["cow-b"])
        params = {"page": 1}
        assert await query_cache.cached_query("t1", DataClass.ANIMAL_LIST, params, a) == ["cow-a"]
        assert await query_cache.cached_query("t2", DataClass.ANIMAL_LIST, params, b) == ["cow-b"]
        assert (a.calls, b.calls) == (1, 1)

    async def test_param_order_does_not_matter(self, query_cache: QueryCache) -> None:
        fn = Counter(1)
        await query_cache.cached_query("t1", "animal_list", {"a": 1, "b": 2}, fn)
        await query_cache.cached_query("t1", "animal_list", {"b": 2, "a": 1}, fn)
        assert fn.calls == 1

    async def test_invalidate_data_class_is_tenant_scoped(self, query_cache: QueryCache) -> None:
        t1, t2 = Counter(1), Counter(2)
        await query_cache.cached_query("t1", DataClass.MILK_STATS, None, t1)
        await query_cache.cached_query("t2", DataClass.MILK_STATS, None, t2)

        assert await query_cache.invalidate_data_class("t1", DataClass.MILK_STATS) == 1
        await query_cache.cached_query("t1", DataClass.MILK_STATS, None, t1)
        await query_cache.cached_query("t2", DataClass.MILK_STATS, None, t2)
        assert (t1.calls, t2.calls) == (2, 1)

    async def test_extra_tags(self, query_cache: QueryCache) -> None:
        fn = Counter(1)
        await query_cache.cached_query("t1", "dashboard_data", None, fn, extra_tags=["herd-9"])
        assert await query_cache.invalidate("herd-9") == 1

    async def test_ttl_from_policy(self, kv_store: InMemoryCacheStore, clock) -> None:
        cache = QueryCache(kv_store, policy=CachePolicy({"dashboard_data": 30}, default_ttl=600))
        fn = Counter(1)
        await cache.cached_query("t1", DataClass.DASHBOARD_DATA, None, fn)
        clock.advance(31)
        await cache.cached_query("t1", DataClass.DASHBOARD_DATA, None, fn)
        assert fn.calls == 2

    async def test_records_timing_in_monitor(self, kv_store: InMemoryCacheStore) -> None:
        monitor = PerformanceMonitor()
        cache = QueryCache(kv_store, monitor=monitor)
        await cache.cached_query("t1", DataClass.ANALYTICS, None, Counter(1))
        assert monitor.metrics()["cache.analytics"].count == 1

    @pytest.mark.parametrize("tenant_id", ["", "t:1", "t*", "a" * 65])
    async def test_malformed_tenant_rejected(self, query_cache: QueryCache, tenant_id: str) -> None:
        with pytest.raises(ValueError):
            await query_cache.cached_query(tenant_id, "animal_list", None, Counter(1))


class TestInvalidation:
    async def test_invalidate_unknown_tag_is_noop(self, query_cache: QueryCache) -> None:
        assert await query_cache.invalidate("t1:nothing") == 0

    async def test_invalidate_tenant(self, query_cache: QueryCache) -> None:
        for dc in ("animal_list", "milk_stats", "analytics"):
            await query_cache.cached_query("t1", dc, None, Counter(dc))
        await query_cache.cached_query("t10", "animal_list", None, Counter("other"))

        assert await query_cache.invalidate_tenant("t1") == 3

        other = Counter("fresh")
        assert await query_cache.cached_query("t10", "animal_list", None, other) == "other"
        assert other.calls == 0

    async def test_invalidate_key(self, query_cache: QueryCache) -> None:
        fn = Counter(1)
        await query_cache.get_or_compute("k", 60, (), fn)
        assert await query_cache.invalidate_key("k") is True
        await query_cache.get_or_compute("k", 60, (), fn)
        assert fn.calls == 2

    async def test_invalidate_key_reports_store_failure(self) -> None:
        assert await QueryCache(failing_store()).invalidate_key("k") is False

    async def test_invalidate_pattern(self, query_cache: QueryCache) -> None:
        await query_cache.get_or_compute("test:x:1", 60, (), Counter(1))
        await query_cache.get_or_compute("test:x:2", 60, (), Counter(2))
        assert await query_cache.invalidate_pattern("test:x:*") == 2

    async def test_invalidation_errors_degrade_to_zero(self) -> None:
        cache = QueryCache(failing_store())
        assert await cache.invalidate("t1:x") == 0
        assert await cache.invalidate_tenant("t1") == 0
        assert cache.stats().errors >= 2


class TestStats:
    async def test_counters_and_reset(self, query_cache: QueryCache) -> None:
        fn = Counter(1)
        await query_cache.get_or_compute("k", 60, {"t1:x"}, fn)
        await query_cache.get_or_compute("k", 60, {"t1:x"}, fn)
        await query_cache.invalidate("t1:x")

        stats = query_cache.stats()
        assert (stats.hits, stats.misses, stats.sets, stats.invalidated_keys) == (1, 1, 1, 1)
        assert stats.hit_rate == 0.5

        query_cache.reset_stats()
        assert query_cache.stats().hit_rate == 0.0
        assert query_cache.stats().sets == 0


class GatedStore(InMemoryCacheStore):
    """In-process store that parks the first call of one method for one key."""

    def __init__(self, method: str, key: str) -> None:
        super().__init__()
        self.method = method
        self.key = key
        self.parked = asyncio.Event()
        self.release = asyncio.Event()

    async def _gate(self, method: str, key: str) -> None:
        if method == self.method and key == self.key and not self.release.is_set():
            self.parked.set()
            await self.release.wait()

    async def pop_set_members(self, key: str) -> set[str]:
        await self._gate("pop_set_members", key)
        return await super().pop_set_members(key)

    async def set(self, key: str, value, ttl: int = 300) -> bool:
        await self._gate("set", key)
        return await super().set(key, value, ttl)


class TestConcurrentInvalidation:
    async def test_key_registered_while_invalidation_is_in_flight(self) -> None:
        store = GatedStore("pop_set_members", "test:tag:t1:animals")
        cache = QueryCache(store, key_prefix="test")
        first, second = Counter(1), Counter(2)
        await cache.get_or_compute("k1", 300, {"t1:animals"}, first)

        invalidation = asyncio.create_task(cache.invalidate("t1:animals"))
        await store.parked.wait()
        await cache.get_or_compute("k2", 300, {"t1:animals"}, second)
        store.release.set()
        await invalidation

        await cache.invalidate("t1:animals")
        await cache.get_or_compute("k2", 300, {"t1:animals"}, second)
        assert second.calls == 2

    async def test_value_written_after_its_index_was_taken_is_reindexed(self) -> None:
        store = GatedStore("set", "k2")
        cache = QueryCache(store, key_prefix="test")
        fn = Counter(2)

        write = asyncio.create_task(cache.get_or_compute("k2", 300, {"t1:animals"}, fn))
        await store.parked.wait()
        assert await cache.invalidate("t1:animals") == 0
        store.release.set()
        await write

        assert await cache.invalidate("t1:animals") == 1
        await cache.get_or_compute("k2", 300, {"t1:animals"}, fn)
        assert fn.calls == 2

    async def test_value_dropped_when_reregistration_fails(self) -> None:
        store = InMemoryCacheStore()
        store.add_to_set = AsyncMock(side_effect=[True, False])
        cache = QueryCache(store)
        await cache.get_or_compute("k", 60, {"t1:x"}, Counter(1))
        assert await store.get("k") is None
        assert cache.stats().sets == 0
