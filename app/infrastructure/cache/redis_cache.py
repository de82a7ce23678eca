"""Redis-backed key-value store for the query cache.

Provides async Redis caching with TTL support, tag sets and SCAN-based
pattern deletion. Values are JSON-serialized. Key format lives in
app.infrastructure.cache.keys (DRY).
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import redis.asyncio as redis

from app.core.config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SCAN_CHUNK_SIZE = 500


class CacheService:
    """Async Redis key-value store with TTL support (IKeyValueStore).

    Uses app.core.config for connection settings. Call connect() at startup
    and disconnect() at shutdown. Connection and timeout errors trigger one
    reconnect attempt; on persistent failure every call degrades to its
    empty result (None, False, 0) instead of raising.
    """

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize cache service.

        Args:
            redis_client: Optional Redis client for testing or DI.
        """
        self.redis = redis_client
        self.settings = get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self.redis is not None:
            return
        try:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=(
                    self.settings.redis_password.get_secret_value()
                    if self.settings.redis_password
                    else None
                ),
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            await self.redis.ping()
            self._connected = True
            logger.info(
                "Redis cache connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis connection failed: %s. Cache disabled.", e)
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache disconnected")

    async def _reconnect(self) -> bool:
        """Attempt to reconnect after disconnect. Returns True if reconnected."""
        if self.redis is None:
            return False
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error while closing stale Redis connection")
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _execute(
        self,
        description: str,
        operation: Callable[[redis.Redis], Awaitable[T]],
        default: T,
    ) -> T:
        """Run operation against Redis, reconnecting once on connection errors.

        Args:
            description: Log label (e.g. "get mtk:q:...").
            operation: Callable receiving the live client.
            default: Returned when Redis is unavailable or the command fails.
        """
        if not self.is_available() or self.redis is None:
            return default
        try:
            return await operation(self.redis)
        except (redis.ConnectionError, redis.TimeoutError):
            if await self._reconnect() and self.redis is not None:
                try:
                    return await operation(self.redis)
                except redis.RedisError:
                    logger.exception("Cache %s error after reconnect", description)
                    return default
            logger.warning("Cache %s unavailable (Redis disconnected)", description)
            return default
        except redis.RedisError:
            logger.exception("Cache %s error", description)
            return default

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-deserialized) or None if missing/unavailable.

        Args:
            key: Cache key (use app.infrastructure.cache.keys builders).

        Returns:
            Cached value or None.
        """

        async def _get(client: redis.Redis) -> Any | None:
            value = await client.get(key)
            if value is None:
                logger.debug("Cache MISS: %s", key)
                return None
            logger.debug("Cache HIT: %s", key)
            return json.loads(value)

        return await self._execute(f"get {key}", _get, None)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL. Returns True on success.

        Args:
            key: Cache key.
            value: Value to cache (JSON-serializable).
            ttl: Time-to-live in seconds (default 300).

        Returns:
            True if stored, False otherwise.

        Raises:
            TypeError: If value is not JSON-serializable.
        """
        serialized = json.dumps(value)

        async def _set(client: redis.Redis) -> bool:
            await client.setex(key, ttl, serialized)
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
            return True

        return await self._execute(f"set {key}", _set, False)

    async def delete(self, key: str) -> bool:
        """Remove key from cache. Returns True if a key was removed."""

        async def _delete(client: redis.Redis) -> bool:
            removed = await client.unlink(key)
            logger.debug("Cache DELETE: %s", key)
            return bool(removed)

        return await self._execute(f"delete {key}", _delete, False)

    async def delete_many(self, keys: Iterable[str]) -> int:
        """UNLINK keys in batches. Returns number of keys deleted."""
        key_list = list(keys)
        if not key_list:
            return 0

        async def _delete_many(client: redis.Redis) -> int:
            async with client.pipeline(transaction=False) as pipe:
                for start in range(0, len(key_list), _SCAN_CHUNK_SIZE):
                    pipe.unlink(*key_list[start : start + _SCAN_CHUNK_SIZE])
                results = await pipe.execute()
            return sum(int(r or 0) for r in results)

        return await self._execute(f"delete_many ({len(key_list)} keys)", _delete_many, 0)

    async def keys_matching(self, pattern: str) -> list[str]:
        """Return keys matching pattern using SCAN (never KEYS)."""

        async def _scan(client: redis.Redis) -> list[str]:
            return [key async for key in client.scan_iter(match=pattern, count=_SCAN_CHUNK_SIZE)]

        return await self._execute(f"scan {pattern}", _scan, [])

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern using SCAN + batched UNLINK (non-blocking).

        Uses scan_iter to avoid KEYS blocking; collects keys in chunks and
        UNLINKs each chunk to minimize round-trips and keep deletion async on server.

        Args:
            pattern: Redis SCAN match pattern (e.g. mtk:q:tenant-123:*).

        Returns:
            Number of keys deleted.
        """

        async def _flush(client: redis.Redis, chunk: list[str]) -> int:
            async with client.pipeline(transaction=False) as pipe:
                pipe.unlink(*chunk)
                results = await pipe.execute()
            return sum(int(r or 0) for r in results)

        async def _delete_pattern(client: redis.Redis) -> int:
            deleted = 0
            chunk: list[str] = []
            async for key in client.scan_iter(match=pattern, count=_SCAN_CHUNK_SIZE):
                chunk.append(key)
                if len(chunk) >= _SCAN_CHUNK_SIZE:
                    deleted += await _flush(client, chunk)
                    chunk = []
            if chunk:
                deleted += await _flush(client, chunk)
            if deleted > 0:
                logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
            return deleted

        return await self._execute(f"delete_pattern {pattern}", _delete_pattern, 0)

    async def add_to_set(self, key: str, members: Iterable[str], ttl: int) -> bool:
        """SADD members to key and extend the set TTL to at least ttl seconds.

        One MULTI/EXEC round trip: EXPIRE NX gives a new set its TTL and
        EXPIRE GT only ever lengthens it (Redis 7+), so the set never expires
        before the entries it indexes.
        """
        member_list = list(members)
        if not member_list:
            return True

        async def _add(client: redis.Redis) -> bool:
            async with client.pipeline(transaction=True) as pipe:
                pipe.sadd(key, *member_list)
                pipe.expire(key, ttl, nx=True)
                pipe.expire(key, ttl, gt=True)
                await pipe.execute()
            return True

        return await self._execute(f"sadd {key}", _add, False)

    async def pop_set_members(self, key: str) -> set[str]:
        """Read and remove the set at key in one MULTI/EXEC (empty when absent or unavailable).

        Members added after the transaction land in a fresh set.
        """

        async def _pop(client: redis.Redis) -> set[str]:
            async with client.pipeline(transaction=True) as pipe:
                pipe.smembers(key)
                pipe.unlink(key)
                members, _ = await pipe.execute()
            return set(members or ())

        return await self._execute(f"pop set {key}", _pop, set())
