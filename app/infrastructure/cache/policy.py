"""TTL policy per cacheable data class."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum

from app.core.config import Settings
from app.domain.enums import DataClass


class CachePolicy:
    """Maps data classes to TTLs (seconds); unknown classes use default_ttl."""

    def __init__(self, ttls: Mapping[str, int] | None = None, default_ttl: int = 300) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._ttls: dict[str, int] = dict(ttls or {})
        for name, ttl in self._ttls.items():
            if ttl <= 0:
                raise ValueError(f"TTL for data class {name!r} must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> CachePolicy:
        return cls(
            ttls={
                DataClass.ANIMAL_LIST.value: settings.cache_ttl_list,
                DataClass.MILK_STATS.value: settings.cache_ttl_stats,
                DataClass.HEALTH_RECORDS.value: settings.cache_ttl_list,
                DataClass.DASHBOARD_DATA.value: settings.cache_ttl_dashboard,
                DataClass.ANALYTICS.value: settings.cache_ttl_analytics,
                DataClass.USER_PROFILE.value: settings.cache_ttl_profile,
            },
            default_ttl=settings.cache_ttl_default,
        )

    def ttl_for(self, data_class: str | Enum) -> int:
        name = data_class.value if isinstance(data_class, Enum) else data_class
        return self._ttls.get(name, self.default_ttl)

    def as_dict(self) -> dict[str, int]:
        return dict(self._ttls)
