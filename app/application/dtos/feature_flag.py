"""DTOs for rollout engine use cases (no dependency on ORM or HTTP)."""

from dataclasses import dataclass, field

from app.domain.entities.capability_flag import CapabilityFlag


@dataclass(frozen=True)
class ResolvedFlag:
    """A flag as the engine sees it plus whether it is active for one caller.

    source is "store" when the configuration store had a record, "override"
    when an environment override forced the flag and "default" when the
    built-in default was used.
    """

    flag: CapabilityFlag
    active: bool
    source: str


@dataclass(frozen=True)
class FlagUpdateResult:
    """Outcome of one patch in a bulk update."""

    key: str
    success: bool
    flag: CapabilityFlag | None = None
    error: str | None = None


@dataclass(frozen=True)
class PhaseStats:
    """Enabled/total counts for one rollout phase."""

    total: int
    enabled: int


@dataclass(frozen=True)
class RolloutStats:
    """Catalogue-wide rollout summary (enabled = reachable by at least some callers)."""

    total: int
    enabled: int
    phases: dict[str, PhaseStats] = field(default_factory=dict)
