"""Cache: key-value stores, key builders, TTL policy and the query cache.

CacheService (Redis) and InMemoryCacheStore implement IKeyValueStore; key
format is in keys.py (DRY).
"""

from app.infrastructure.cache.memory_cache import InMemoryCacheStore
from app.infrastructure.cache.policy import CachePolicy
from app.infrastructure.cache.query_cache import QueryCache
from app.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CachePolicy",
    "CacheService",
    "InMemoryCacheStore",
    "QueryCache",
]
