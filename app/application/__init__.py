"""Application layer: interfaces, DTOs and services (rollout engine, performance monitor).

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (flag stores, key-value stores).
"""

from app.application.interfaces import IFlagConfigStore, IKeyValueStore
from app.application.services.performance_monitor import PerformanceMonitor
from app.application.services.rollout_engine import RolloutEngine

__all__ = [
    "IFlagConfigStore",
    "IKeyValueStore",
    "PerformanceMonitor",
    "RolloutEngine",
]
