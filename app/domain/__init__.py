"""Domain layer: entities, value objects, enums, built-in flag defaults, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.entities import CapabilityFlag
from app.domain.enums import CapabilityKey, DataClass, RiskLevel, RolloutPhase
from app.domain.exceptions import (
    ConfigurationUnavailableException,
    DairyException,
    FeatureNotEnabledException,
    UnknownCapabilityKeyException,
    ValidationException,
)
from app.domain.value_objects import CallerIdentity

__all__ = [
    # Entities
    "CapabilityFlag",
    # Enums
    "CapabilityKey",
    "DataClass",
    "RiskLevel",
    "RolloutPhase",
    # Exceptions
    "ConfigurationUnavailableException",
    "DairyException",
    "FeatureNotEnabledException",
    "UnknownCapabilityKeyException",
    "ValidationException",
    # Value objects
    "CallerIdentity",
]
