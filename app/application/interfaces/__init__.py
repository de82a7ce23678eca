"""Application interfaces (ports): repository and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from app.infrastructure.
"""

from app.application.interfaces.repositories import IFlagConfigStore
from app.application.interfaces.services import IKeyValueStore

__all__ = ["IFlagConfigStore", "IKeyValueStore"]
