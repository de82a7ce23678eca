"""Rollout engine: decides whether a capability is active for a caller.

Resolution order for one capability and caller:
    1. Effective flag: environment override, else stored record, else the
       built-in default (also used when the store fails).
    2. Caller user ID in target_user_ids -> active.
    3. Caller tenant ID in target_tenant_ids -> active.
    4. rollout_percentage >= 100 -> enabled_default.
    5. rollout_percentage <= 0 -> inactive.
    6. Deterministic bucket of (key, identity) below rollout_percentage.

Effective flags (not per-caller answers) are cached in process for
flag_cache_ttl seconds and dropped on every administrative write.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from app.application.dtos.feature_flag import (
    FlagUpdateResult,
    PhaseStats,
    ResolvedFlag,
    RolloutStats,
)
from app.application.interfaces.repositories import IFlagConfigStore
from app.application.services.bucket_hash import BucketHasher
from app.domain.default_flags import DEFAULT_FLAGS, PHASE_ROLLOUT_ORDER, default_flag
from app.domain.entities.capability_flag import CapabilityFlag
from app.domain.enums import CapabilityKey, RolloutPhase
from app.domain.exceptions import (
    ConfigurationUnavailableException,
    DairyException,
    UnknownCapabilityKeyException,
)
from app.domain.value_objects.core import CallerIdentity
from app.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)

SOURCE_STORE = "store"
SOURCE_DEFAULT = "default"
SOURCE_OVERRIDE = "override"


@dataclass(frozen=True)
class _CachedFlag:
    flag: CapabilityFlag
    source: str
    expires_at: float


class RolloutEngine:
    """Capability resolution with per-process flag cache (one instance per process).

    Args:
        store: Flag configuration store; None means built-in defaults only.
        hasher: Bucket hasher (FNV-1a over "{key}:{identity}" by default).
        flag_cache_ttl: Seconds an effective flag stays cached.
        strict_keys: Raise UnknownCapabilityKeyException for unknown keys in
            resolve(); when False they resolve inactive with a warning.
        overrides: capability key -> bool forcing a flag fully on or off.
        clock: Monotonic clock (injectable for tests).
    """

    def __init__(
        self,
        store: IFlagConfigStore | None = None,
        hasher: BucketHasher | None = None,
        flag_cache_ttl: float = 300,
        strict_keys: bool = True,
        overrides: Mapping[str, bool] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._hasher = hasher or BucketHasher()
        self._flag_cache_ttl = flag_cache_ttl
        self._strict_keys = strict_keys
        self._overrides = dict(overrides or {})
        self._clock = clock
        self._cache: dict[CapabilityKey, _CachedFlag] = {}
        # Bumped on every invalidation; a store read only caches its result
        # when the token it started with is still current.
        self._generations: dict[CapabilityKey, int] = {}
        self._epoch = 0
        unknown = sorted(k for k in self._overrides if CapabilityKey.parse(k) is None)
        if unknown:
            logger.warning("Ignoring overrides for unknown capability keys: %s", ", ".join(unknown))

    # Keys

    @staticmethod
    def _require_key(capability_key: str | CapabilityKey) -> CapabilityKey:
        key = CapabilityKey.parse(capability_key)
        if key is None:
            raise UnknownCapabilityKeyException(_key_name(capability_key))
        return key

    # Effective flags

    def _token(self, key: CapabilityKey) -> tuple[int, int]:
        return self._epoch, self._generations.get(key, 0)

    def _remember(
        self, key: CapabilityKey, flag: CapabilityFlag, source: str, token: tuple[int, int], now: float
    ) -> None:
        if self._token(key) == token:
            self._cache[key] = _CachedFlag(flag, source, now + self._flag_cache_ttl)

    async def get_flag(self, capability_key: str | CapabilityKey) -> tuple[CapabilityFlag, str]:
        """Return (effective flag, source) for a known key.

        Never raises for store failures: they are logged and the built-in
        default is returned without being cached, so the next call retries
        the store.

        Raises:
            UnknownCapabilityKeyException: If the key is not in the catalogue.
        """
        key = self._require_key(capability_key)
        now = self._clock()
        cached = self._cache.get(key)
        if cached is not None and now < cached.expires_at:
            return cached.flag, cached.source

        token = self._token(key)
        if key.value in self._overrides:
            flag, source = default_flag(key, self._overrides), SOURCE_OVERRIDE
        elif self._store is None:
            flag, source = DEFAULT_FLAGS[key], SOURCE_DEFAULT
        else:
            try:
                stored = await self._store.get_flag(key.value)
            except Exception as e:
                logger.warning(
                    "Flag store unavailable for %s; using built-in default: %s", key.value, e
                )
                return DEFAULT_FLAGS[key], SOURCE_DEFAULT
            if stored is None:
                flag, source = DEFAULT_FLAGS[key], SOURCE_DEFAULT
            else:
                flag, source = stored, SOURCE_STORE

        self._remember(key, flag, source, token, now)
        return flag, source

    async def _load_stored(self) -> None:
        """Cache every expired store-backed flag with a single list_flags() call."""
        if self._store is None:
            return
        now = self._clock()
        missing = [
            key
            for key in CapabilityKey
            if key.value not in self._overrides
            and (key not in self._cache or now >= self._cache[key].expires_at)
        ]
        if not missing:
            return
        tokens = {key: self._token(key) for key in missing}
        try:
            stored = {flag.key: flag for flag in await self._store.list_flags()}
        except Exception as e:
            logger.warning("Flag store listing unavailable; reading flags one by one: %s", e)
            return
        for key in missing:
            flag = stored.get(key.value)
            if flag is None:
                self._remember(key, DEFAULT_FLAGS[key], SOURCE_DEFAULT, tokens[key], now)
            else:
                self._remember(key, flag, SOURCE_STORE, tokens[key], now)

    def evaluate(self, flag: CapabilityFlag, caller: CallerIdentity) -> bool:
        """Apply target and percentage rules of flag to caller (no I/O)."""
        if flag.targets_user(caller.user_id):
            return True
        if flag.targets_tenant(caller.tenant_id):
            return True
        if flag.rollout_percentage >= 100:
            return flag.enabled_default
        if flag.rollout_percentage <= 0:
            return False
        return self._hasher.in_rollout(
            flag.key, caller.bucketing_identity, flag.rollout_percentage
        )

    async def resolve(
        self, capability_key: str | CapabilityKey, caller: CallerIdentity | None = None
    ) -> bool:
        """Return True if the capability is active for caller.

        Raises:
            UnknownCapabilityKeyException: Only for unknown keys in strict mode.
        """
        caller = caller or CallerIdentity()
        if CapabilityKey.parse(capability_key) is None:
            if self._strict_keys:
                raise UnknownCapabilityKeyException(_key_name(capability_key))
            logger.warning("Unknown capability key %r resolved as disabled", capability_key)
            return False
        flag, _ = await self.get_flag(capability_key)
        return self.evaluate(flag, caller)

    async def resolve_flag(
        self, capability_key: str | CapabilityKey, caller: CallerIdentity | None = None
    ) -> ResolvedFlag:
        """Effective flag, its source and whether it is active for caller.

        Raises:
            UnknownCapabilityKeyException: If the key is not in the catalogue.
        """
        flag, source = await self.get_flag(capability_key)
        return ResolvedFlag(flag=flag, active=self.evaluate(flag, caller or CallerIdentity()), source=source)

    async def list_flags(self, caller: CallerIdentity | None = None) -> list[ResolvedFlag]:
        """Resolve every catalogue key for caller, in catalogue order."""
        await self._load_stored()
        return [await self.resolve_flag(key, caller) for key in CapabilityKey]

    async def enabled_capabilities(self, caller: CallerIdentity | None = None) -> list[str]:
        """Keys active for caller."""
        return [r.flag.key for r in await self.list_flags(caller) if r.active]

    async def is_phase_enabled(
        self, phase: RolloutPhase | str, caller: CallerIdentity | None = None
    ) -> bool:
        """Return True if any capability of phase is active for caller."""
        phase = RolloutPhase(phase)
        for key in PHASE_ROLLOUT_ORDER[phase]:
            if await self.resolve(key, caller):
                return True
        return False

    async def rollout_stats(self) -> RolloutStats:
        """Catalogue-wide counts of flags reachable by at least some callers, per phase."""
        await self._load_stored()
        phases = {phase.value: [0, 0] for phase in RolloutPhase}
        total = enabled = 0
        for key in CapabilityKey:
            flag, _ = await self.get_flag(key)
            live = _is_live(flag)
            total += 1
            enabled += int(live)
            if flag.phase is not None:
                phases[flag.phase.value][0] += 1
                phases[flag.phase.value][1] += int(live)
        return RolloutStats(
            total=total,
            enabled=enabled,
            phases={name: PhaseStats(total=t, enabled=e) for name, (t, e) in phases.items()},
        )

    # Administration

    def _writable_store(self) -> IFlagConfigStore:
        if self._store is None:
            raise ConfigurationUnavailableException("flag_store", "no configuration store configured")
        return self._store

    async def _current(self, key: CapabilityKey) -> CapabilityFlag:
        stored = await self._writable_store().get_flag(key.value)
        return stored or DEFAULT_FLAGS[key]

    @traced("rollout.update")
    async def update(
        self, capability_key: str | CapabilityKey, patch: Mapping[str, Any]
    ) -> CapabilityFlag:
        """Overwrite stored fields of one flag and drop its cache entry.

        Fields absent from patch keep their stored (or built-in default) value.

        Raises:
            UnknownCapabilityKeyException: If the key is not in the catalogue.
            ValidationException: If patch has unknown fields or invalid values.
            ConfigurationUnavailableException: If no store is configured.
        """
        key = self._require_key(capability_key)
        store = self._writable_store()
        current = await self._current(key)
        updated = current.apply_patch(patch)
        stored = await store.upsert_flag(key.value, updated.to_fields())
        self.invalidate(key)
        logger.info("Capability flag updated: %s (%s)", key.value, ", ".join(sorted(patch)))
        return stored

    async def bulk_update(
        self, patches: Iterable[tuple[str, Mapping[str, Any]]]
    ) -> list[FlagUpdateResult]:
        """Apply each (key, patch) independently; one failure never blocks the others."""
        results: list[FlagUpdateResult] = []
        for key, patch in patches:
            try:
                flag = await self.update(key, patch)
            except DairyException as e:
                results.append(FlagUpdateResult(key=_key_name(key), success=False, error=e.message))
            except Exception as e:
                logger.warning("Bulk flag update failed for %s: %s", key, e, exc_info=True)
                results.append(FlagUpdateResult(key=_key_name(key), success=False, error=str(e)))
            else:
                results.append(FlagUpdateResult(key=_key_name(key), success=True, flag=flag))
        return results

    @traced("rollout.reset")
    async def reset(self, capability_key: str | CapabilityKey) -> CapabilityFlag:
        """Store the built-in default over the stored record.

        Raises:
            UnknownCapabilityKeyException: If the key is not in the catalogue.
            ConfigurationUnavailableException: If no store is configured.
        """
        key = self._require_key(capability_key)
        stored = await self._writable_store().upsert_flag(key.value, DEFAULT_FLAGS[key].to_fields())
        self.invalidate(key)
        logger.info("Capability flag reset to default: %s", key.value)
        return stored

    async def set_rollout_percentage(
        self, capability_key: str | CapabilityKey, percentage: int
    ) -> CapabilityFlag:
        return await self.update(capability_key, {"rollout_percentage": percentage})

    async def enable_for_users(
        self, capability_key: str | CapabilityKey, user_ids: Iterable[str]
    ) -> CapabilityFlag:
        """Add user_ids to the flag's target users (existing targets are kept)."""
        flag = await self._current(self._require_key(capability_key))
        targets = sorted(flag.target_user_ids | set(user_ids))
        return await self.update(capability_key, {"target_user_ids": targets})

    async def enable_for_tenants(
        self, capability_key: str | CapabilityKey, tenant_ids: Iterable[str]
    ) -> CapabilityFlag:
        """Add tenant_ids to the flag's target tenants (existing targets are kept)."""
        flag = await self._current(self._require_key(capability_key))
        targets = sorted(flag.target_tenant_ids | set(tenant_ids))
        return await self.update(capability_key, {"target_tenant_ids": targets})

    # Cache

    def invalidate(self, capability_key: str | CapabilityKey) -> None:
        """Drop the cached effective flag for one key."""
        key = CapabilityKey.parse(capability_key)
        if key is not None:
            self._generations[key] = self._generations.get(key, 0) + 1
            self._cache.pop(key, None)

    def clear_cache(self) -> None:
        """Drop every cached effective flag."""
        self._epoch += 1
        self._cache.clear()


def _key_name(capability_key: str | CapabilityKey) -> str:
    return capability_key.value if isinstance(capability_key, CapabilityKey) else str(capability_key)


def _is_live(flag: CapabilityFlag) -> bool:
    """True if some caller can resolve the flag active."""
    if flag.target_user_ids or flag.target_tenant_ids:
        return True
    if flag.rollout_percentage >= 100:
        return flag.enabled_default
    return flag.rollout_percentage > 0
