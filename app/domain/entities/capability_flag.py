"""Capability flag domain entity.

Represents one toggleable feature and its rollout configuration,
independent of persistence. Stores exchange it as a plain field dict
(to_fields / from_fields).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from app.domain.enums import RiskLevel, RolloutPhase
from app.domain.exceptions import ValidationException

# Fields an administrative patch may set. Anything else is rejected.
PATCHABLE_FIELDS = frozenset({
    "enabled_default",
    "rollout_percentage",
    "description",
    "target_user_ids",
    "target_tenant_ids",
    "phase",
    "dependencies",
    "risk_level",
})


def _as_id_set(value: Iterable[str] | None, field_name: str) -> frozenset[str]:
    """Normalize an optional iterable of identifiers to a frozenset (None -> empty)."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        raise ValidationException(f"{field_name} must be a list of identifiers", field=field_name)
    return frozenset(str(v) for v in value if v)


@dataclass(frozen=True)
class CapabilityFlag:
    """Domain entity for a capability flag.

    Target sets are authoritative for matching identities: a caller listed in
    target_user_ids or target_tenant_ids resolves active regardless of
    rollout_percentage. Empty sets mean "no override". Validation runs on
    construction.
    """

    key: str
    enabled_default: bool = False
    rollout_percentage: int = 0
    description: str = ""
    target_user_ids: frozenset[str] = field(default_factory=frozenset)
    target_tenant_ids: frozenset[str] = field(default_factory=frozenset)
    phase: RolloutPhase | None = None
    dependencies: tuple[str, ...] = ()
    risk_level: RiskLevel | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate flag rules. Raises ValidationException if invalid."""
        if not self.key:
            raise ValidationException("Capability key is required", field="key")
        if isinstance(self.rollout_percentage, bool) or not isinstance(
            self.rollout_percentage, int
        ):
            raise ValidationException(
                "rollout_percentage must be an integer", field="rollout_percentage"
            )
        if not 0 <= self.rollout_percentage <= 100:
            raise ValidationException(
                "rollout_percentage must be between 0 and 100",
                field="rollout_percentage",
            )

    def targets_user(self, user_id: str | None) -> bool:
        """Return True if user_id is present and explicitly targeted."""
        return bool(user_id) and user_id in self.target_user_ids

    def targets_tenant(self, tenant_id: str | None) -> bool:
        """Return True if tenant_id is present and explicitly targeted."""
        return bool(tenant_id) and tenant_id in self.target_tenant_ids

    def apply_patch(self, patch: Mapping[str, Any]) -> CapabilityFlag:
        """Return a copy with patch fields overwritten.

        Args:
            patch: Mapping of field name to new value (subset of PATCHABLE_FIELDS).

        Returns:
            New validated CapabilityFlag.

        Raises:
            ValidationException: If patch contains unknown fields or invalid values.
        """
        unknown = sorted(set(patch) - PATCHABLE_FIELDS)
        if unknown:
            raise ValidationException(
                f"Unknown flag field(s): {', '.join(unknown)}", field=unknown[0]
            )
        merged = self.to_fields()
        merged.update(patch)
        return CapabilityFlag.from_fields(self.key, merged)

    def to_fields(self) -> dict[str, Any]:
        """Return JSON-serializable fields (without key), sorted target lists for stable output."""
        return {
            "enabled_default": self.enabled_default,
            "rollout_percentage": self.rollout_percentage,
            "description": self.description,
            "target_user_ids": sorted(self.target_user_ids),
            "target_tenant_ids": sorted(self.target_tenant_ids),
            "phase": self.phase.value if self.phase else None,
            "dependencies": list(self.dependencies),
            "risk_level": self.risk_level.value if self.risk_level else None,
        }

    @classmethod
    def from_fields(cls, key: str, fields: Mapping[str, Any]) -> CapabilityFlag:
        """Build a flag from a store/patch field dict. Missing fields take defaults.

        Raises:
            ValidationException: If a value cannot be converted.
        """
        try:
            phase = fields.get("phase")
            risk_level = fields.get("risk_level")
            return cls(
                key=key,
                enabled_default=bool(fields.get("enabled_default", False)),
                rollout_percentage=fields.get("rollout_percentage", 0),
                description=fields.get("description") or "",
                target_user_ids=_as_id_set(fields.get("target_user_ids"), "target_user_ids"),
                target_tenant_ids=_as_id_set(
                    fields.get("target_tenant_ids"), "target_tenant_ids"
                ),
                phase=RolloutPhase(phase) if phase else None,
                dependencies=tuple(fields.get("dependencies") or ()),
                risk_level=RiskLevel(risk_level) if risk_level else None,
            )
        except ValueError as e:
            raise ValidationException(f"Invalid flag field value: {e}") from e

    def with_overrides(self, **changes: Any) -> CapabilityFlag:
        """Return a copy with the given attributes replaced (validated)."""
        return replace(self, **changes)
