"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference domain entities only; no infrastructure imports.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.domain.entities.capability_flag import CapabilityFlag


# Flag configuration store interface
class IFlagConfigStore(Protocol):
    """Protocol for the capability flag configuration store (DIP).

    Implementations may raise on connectivity failures; the rollout engine
    treats any error from get_flag as "configuration unavailable".
    """

    async def get_flag(self, key: str) -> CapabilityFlag | None:
        """Return the stored flag for key, or None when no record exists."""

    async def upsert_flag(self, key: str, fields: Mapping[str, Any]) -> CapabilityFlag:
        """Create or overwrite the stored fields for key; return the stored flag."""

    async def list_flags(self) -> list[CapabilityFlag]:
        """Return every stored flag (records only; built-in defaults are not included)."""
