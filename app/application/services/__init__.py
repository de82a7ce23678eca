"""Application services: rollout bucketing, rollout engine, performance monitor."""

from app.application.services.bucket_hash import (
    BucketHashAlgorithm,
    BucketHasher,
    FNV1aAlgorithm,
    SHA256Algorithm,
)
from app.application.services.performance_monitor import PerformanceMonitor
from app.application.services.rollout_engine import RolloutEngine

__all__ = [
    "BucketHashAlgorithm",
    "BucketHasher",
    "FNV1aAlgorithm",
    "PerformanceMonitor",
    "RolloutEngine",
    "SHA256Algorithm",
]
