"""Feature flag API schemas."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.application.dtos.feature_flag import RolloutStats
from app.domain.entities.capability_flag import CapabilityFlag
from app.domain.enums import RiskLevel, RolloutPhase

# Patch fields that may be explicitly cleared with null.
_NULLABLE_FIELDS = frozenset({"phase", "risk_level"})


class FeatureFlagPatch(BaseModel):
    """Request body for updating a flag (partial). Unknown fields are rejected (422)."""

    model_config = ConfigDict(extra="forbid")

    enabled_default: bool | None = None
    rollout_percentage: int | None = Field(default=None, ge=0, le=100)
    description: str | None = Field(default=None, max_length=500)
    target_user_ids: list[str] | None = Field(default=None, max_length=10_000)
    target_tenant_ids: list[str] | None = Field(default=None, max_length=10_000)
    phase: RolloutPhase | None = None
    dependencies: list[str] | None = Field(default=None, max_length=50)
    risk_level: RiskLevel | None = None

    def to_patch(self) -> dict[str, Any]:
        """Fields the client actually sent, JSON-ready; null only kept where clearable."""
        data = self.model_dump(exclude_unset=True, mode="json", exclude={"key"})
        return {k: v for k, v in data.items() if v is not None or k in _NULLABLE_FIELDS}


class FeatureFlagBulkItem(FeatureFlagPatch):
    """One entry of a bulk update: the capability key plus its patch."""

    key: str = Field(..., min_length=1, max_length=100)


class FeatureFlagBulkRequest(BaseModel):
    """Request body for POST /admin/feature-flags/bulk."""

    model_config = ConfigDict(extra="forbid")

    updates: list[FeatureFlagBulkItem] = Field(..., min_length=1, max_length=100)


class FeatureFlagResponse(BaseModel):
    """Flag detail. source/active are set when the flag was resolved for a caller."""

    key: str
    enabled_default: bool
    rollout_percentage: int
    description: str
    target_user_ids: list[str]
    target_tenant_ids: list[str]
    phase: RolloutPhase | None = None
    dependencies: list[str] = Field(default_factory=list)
    risk_level: RiskLevel | None = None
    source: str | None = None
    active: bool | None = None

    @classmethod
    def from_flag(
        cls, flag: CapabilityFlag, source: str | None = None, active: bool | None = None
    ) -> "FeatureFlagResponse":
        return cls(key=flag.key, source=source, active=active, **flag.to_fields())


class PhaseStatsResponse(BaseModel):
    total: int
    enabled: int


class RolloutStatsResponse(BaseModel):
    """Catalogue-wide rollout summary."""

    total: int
    enabled: int
    phases: dict[str, PhaseStatsResponse]

    @classmethod
    def from_stats(cls, stats: RolloutStats) -> "RolloutStatsResponse":
        return cls(
            total=stats.total,
            enabled=stats.enabled,
            phases={
                name: PhaseStatsResponse(total=p.total, enabled=p.enabled)
                for name, p in stats.phases.items()
            },
        )


class FeatureFlagListResponse(BaseModel):
    """Response for GET /admin/feature-flags."""

    flags: list[FeatureFlagResponse]
    stats: RolloutStatsResponse


class FeatureFlagBulkResult(BaseModel):
    """Outcome of one bulk entry."""

    key: str
    success: bool
    error: str | None = None
    flag: FeatureFlagResponse | None = None


class FeatureFlagBulkResponse(BaseModel):
    """Per-key report for a bulk update."""

    total: int
    succeeded: int
    failed: int
    results: list[FeatureFlagBulkResult]


class EnabledFeaturesResponse(BaseModel):
    """Capabilities active for the calling tenant/user."""

    tenant_id: str | None
    user_id: str | None
    features: list[str]


class FeatureStatusResponse(BaseModel):
    """Whether one capability is active for the caller."""

    key: str
    enabled: bool
