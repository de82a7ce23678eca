"""add feature_flag table

Revision ID: 3f9a1c7d2b10
Revises:
Create Date: 2026-10-19 09:12:41.508113

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c7d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema - add feature_flag table for stored capability flags."""
    op.create_table(
        "feature_flag",
        sa.Column("key", sa.String(length=100), nullable=False),
        sa.Column("enabled_default", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("rollout_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("target_user_ids", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("target_tenant_ids", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("metadata", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("key"),
        sa.CheckConstraint(
            "rollout_percentage >= 0 AND rollout_percentage <= 100",
            name="ck_feature_flag_rollout_percentage",
        ),
    )


def downgrade() -> None:
    """Downgrade schema - remove feature_flag table."""
    op.drop_table("feature_flag")
