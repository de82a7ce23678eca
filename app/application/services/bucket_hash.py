"""Rollout bucketing: stable string hash + percentage bucket."""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod

from app.core.constants import ROLLOUT_BUCKETS

_FNV32_OFFSET_BASIS = 0x811C9DC5
_FNV32_PRIME = 0x01000193
_UINT32_MASK = 0xFFFFFFFF


class BucketHashAlgorithm(ABC):
    """Abstract stable hash (OCP). Must not depend on process, platform or seed."""

    @abstractmethod
    def hash(self, data: str) -> int:
        """Return a non-negative integer hash of the UTF-8 encoded input."""
        ...


class FNV1aAlgorithm(BucketHashAlgorithm):
    """32-bit FNV-1a (default)."""

    def hash(self, data: str) -> int:
        h = _FNV32_OFFSET_BASIS
        for byte in data.encode("utf-8"):
            h ^= byte
            h = (h * _FNV32_PRIME) & _UINT32_MASK
        return h


class SHA256Algorithm(BucketHashAlgorithm):
    """First 32 bits of SHA-256."""

    def hash(self, data: str) -> int:
        return int(hashlib.sha256(data.encode("utf-8")).hexdigest()[:8], 16)


class BucketHasher:
    """Single source of truth for rollout bucket computation.

    The bucket depends only on (capability_key, identity), so a caller keeps
    the same bucket across requests, processes and restarts. Raising a
    percentage from p1 to p2 keeps every caller with bucket < p1 inside.
    """

    def __init__(
        self,
        algorithm: BucketHashAlgorithm | None = None,
        buckets: int = ROLLOUT_BUCKETS,
    ) -> None:
        self.algorithm = algorithm or FNV1aAlgorithm()
        self.buckets = buckets

    def bucket(self, capability_key: str, identity: str) -> int:
        """Return the bucket (0..buckets-1) for identity under capability_key."""
        return self.algorithm.hash(f"{capability_key}:{identity}") % self.buckets

    def in_rollout(self, capability_key: str, identity: str, percentage: int) -> bool:
        """Return True if identity's bucket falls below percentage."""
        if percentage <= 0:
            return False
        if percentage >= self.buckets:
            return True
        return self.bucket(capability_key, identity) < percentage
