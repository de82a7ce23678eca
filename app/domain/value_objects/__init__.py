"""Domain value objects (immutable, self-validating)."""

from app.domain.value_objects.core import CallerIdentity

__all__ = ["CallerIdentity"]
