"""FeatureFlag ORM model. One row per capability key with a stored override."""

from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import TimestampMixin


class FeatureFlag(TimestampMixin, Base):
    """Feature flag. Table: feature_flag. Primary key is the capability key.

    phase, dependencies and risk_level live in the metadata JSON column.
    """

    __tablename__ = "feature_flag"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    enabled_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rollout_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    target_user_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    target_tenant_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    flag_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    __table_args__ = (
        CheckConstraint(
            "rollout_percentage >= 0 AND rollout_percentage <= 100",
            name="ck_feature_flag_rollout_percentage",
        ),
    )
