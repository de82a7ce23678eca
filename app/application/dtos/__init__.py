"""Application DTOs: read-models and results passed between layers."""

from app.application.dtos.feature_flag import (
    FlagUpdateResult,
    PhaseStats,
    ResolvedFlag,
    RolloutStats,
)
from app.application.dtos.performance import CacheStats, OperationMetrics

__all__ = [
    "CacheStats",
    "FlagUpdateResult",
    "OperationMetrics",
    "PhaseStats",
    "ResolvedFlag",
    "RolloutStats",
]
