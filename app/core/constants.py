"""Core constants: cache key segments and shared literal values.

Single source of truth for cache key structure (DRY). Used by
app.infrastructure.cache.keys and the query cache.
"""

# Key segments placed after the configured prefix (settings.cache_key_prefix).
CACHE_SEGMENT_QUERY = "q"
CACHE_SEGMENT_TAG = "tag"

# Delimiter for composite keys and tenant-namespaced tags
CACHE_KEY_SEP = ":"

# Identity used for rollout bucketing when the caller has neither user nor tenant.
ANONYMOUS_IDENTITY = "anonymous"

# Number of rollout buckets (percentages map onto 0..99).
ROLLOUT_BUCKETS = 100
