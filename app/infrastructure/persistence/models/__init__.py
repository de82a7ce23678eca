"""ORM models. Import here so Alembic autogenerate sees every table."""

from app.infrastructure.persistence.models.feature_flag import FeatureFlag

__all__ = ["FeatureFlag"]
