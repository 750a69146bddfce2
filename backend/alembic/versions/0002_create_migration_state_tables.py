"""Create legacy key mapping and lesson checkpoint tables.

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create legacy_key_mappings and migration_checkpoints tables."""
    op.create_table(
        "legacy_key_mappings",
        sa.Column("entity_kind", sa.String(length=32), nullable=False),
        sa.Column("legacy_id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("target_id", sa.BigInteger(), nullable=False),
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
        # One target row per legacy entity, across workers
        sa.PrimaryKeyConstraint("entity_kind", "legacy_id"),
    )

    op.create_table(
        "migration_checkpoints",
        sa.Column("lesson_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("run_id", sa.String(length=36), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("lesson_id"),
    )
    op.create_index(
        op.f("ix_migration_checkpoints_status"), "migration_checkpoints", ["status"]
    )


def downgrade() -> None:
    """Drop legacy_key_mappings and migration_checkpoints tables."""
    op.drop_index(
        op.f("ix_migration_checkpoints_status"), table_name="migration_checkpoints"
    )
    op.drop_table("migration_checkpoints")
    op.drop_table("legacy_key_mappings")
