"""Domain value objects for the rollout and query-cache layer.

Value objects are immutable types that represent domain concepts with
self-validation. They have no identity, only value.
"""

from dataclasses import dataclass

from app.core.constants import ANONYMOUS_IDENTITY


@dataclass(frozen=True)
class CallerIdentity:
    """Resolution context for a capability check (SRP: who is asking).

    Constructed per request and never persisted. Empty strings are treated as
    absent so "" and None bucket identically.
    """

    user_id: str | None = None
    tenant_id: str | None = None

    def __post_init__(self) -> None:
        # Normalize "" to None (frozen: go through object.__setattr__).
        if not self.user_id:
            object.__setattr__(self, "user_id", None)
        if not self.tenant_id:
            object.__setattr__(self, "tenant_id", None)

    @property
    def bucketing_identity(self) -> str:
        """Identity used for percentage bucketing: user, then tenant, then 'anonymous'."""
        return self.user_id or self.tenant_id or ANONYMOUS_IDENTITY
