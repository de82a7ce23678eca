"""Domain entities.

Pure domain models; no ORM or persistence concerns.
"""

from app.domain.entities.capability_flag import PATCHABLE_FIELDS, CapabilityFlag

__all__ = ["CapabilityFlag", "PATCHABLE_FIELDS"]
