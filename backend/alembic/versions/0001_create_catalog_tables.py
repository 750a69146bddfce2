"""Create target catalog tables and the translation sequence counter.

Revision ID: 0001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
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
    ]


def upgrade() -> None:
    """Create translation, collection, content unit and file tables."""
    sequences = op.create_table(
        "translation_sequences",
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("last_value", sa.BigInteger(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("name"),
    )
    op.bulk_insert(sequences, [{"name": "string_translations", "last_value": 0}])

    op.create_table(
        "string_translations",
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("language", sa.String(length=3), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", "language"),
    )

    op.create_table(
        "collections",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("uid", sa.String(length=8), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("name_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "properties",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("uid", name="uq_collections_uid"),
    )
    op.create_index(op.f("ix_collections_type"), "collections", ["type"])
    op.create_index(op.f("ix_collections_name_id"), "collections", ["name_id"])

    op.create_table(
        "content_units",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("uid", sa.String(length=8), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("description_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "properties",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("uid", name="uq_content_units_uid"),
    )
    op.create_index(op.f("ix_content_units_type"), "content_units", ["type"])
    op.create_index(
        op.f("ix_content_units_description_id"), "content_units", ["description_id"]
    )

    op.create_table(
        "collections_content_units",
        sa.Column("collection_id", sa.BigInteger(), nullable=False),
        sa.Column("content_unit_id", sa.BigInteger(), nullable=False),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        sa.PrimaryKeyConstraint("collection_id", "content_unit_id"),
        sa.ForeignKeyConstraint(
            ["collection_id"],
            ["collections.id"],
            name="fk_collections_content_units_collection_id",
        ),
        sa.ForeignKeyConstraint(
            ["content_unit_id"],
            ["content_units.id"],
            name="fk_collections_content_units_content_unit_id",
        ),
    )
    op.create_index(
        op.f("ix_collections_content_units_content_unit_id"),
        "collections_content_units",
        ["content_unit_id"],
    )

    op.create_table(
        "files",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("uid", sa.String(length=8), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("file_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("size", sa.BigInteger(), nullable=True),
        sa.Column("language", sa.String(length=3), nullable=True),
        sa.Column("content_unit_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "properties",
            postgresql.JSONB(astext_type=sa.Text()),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["content_unit_id"],
            ["content_units.id"],
            name="fk_files_content_unit_id",
        ),
        sa.UniqueConstraint("uid", name="uq_files_uid"),
    )
    op.create_index(op.f("ix_files_name"), "files", ["name"])
    op.create_index(op.f("ix_files_content_unit_id"), "files", ["content_unit_id"])


def downgrade() -> None:
    """Drop target catalog tables."""
    op.drop_index(op.f("ix_files_content_unit_id"), table_name="files")
    op.drop_index(op.f("ix_files_name"), table_name="files")
    op.drop_table("files")
    op.drop_index(
        op.f("ix_collections_content_units_content_unit_id"),
        table_name="collections_content_units",
    )
    op.drop_table("collections_content_units")
    op.drop_index(op.f("ix_content_units_description_id"), table_name="content_units")
    op.drop_index(op.f("ix_content_units_type"), table_name="content_units")
    op.drop_table("content_units")
    op.drop_index(op.f("ix_collections_name_id"), table_name="collections")
    op.drop_index(op.f("ix_collections_type"), table_name="collections")
    op.drop_table("collections")
    op.drop_table("string_translations")
    op.drop_table("translation_sequences")
