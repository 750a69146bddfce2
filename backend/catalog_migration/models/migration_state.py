"""Durable migration state: legacy key mappings and lesson checkpoints.

- legacy_key_mappings remembers which target row was created for each
  (entity kind, legacy id) pair; it is what makes re-runs idempotent
- migration_checkpoints records the outcome of each lesson so an
  interrupted run can resume
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from catalog_migration.core.database import Base


class LegacyKeyMapping(Base):
    """Maps a legacy (kind, id) key to the target row created for it."""

    __tablename__ = "legacy_key_mappings"

    entity_kind: Mapped[str] = mapped_column(String(32), primary_key=True)

    legacy_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    target_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return (
            f"<LegacyKeyMapping(entity_kind={self.entity_kind!r}, "
            f"legacy_id={self.legacy_id!r}, target_id={self.target_id!r})>"
        )


class MigrationCheckpoint(Base):
    """Outcome of the last migration attempt of one legacy lesson.

    Attributes:
        lesson_id: Legacy virtual lesson id
        status: 'migrated', 'partial' or 'failed'
        run_id: Run that wrote the checkpoint
        error: Failure reason for 'failed' lessons
        updated_at: When the checkpoint was written
    """

    __tablename__ = "migration_checkpoints"

    lesson_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    run_id: Mapped[str] = mapped_column(String(36), nullable=False)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        onupdate=lambda: datetime.now(UTC),
    )

    def __repr__(self) -> str:
        return f"<MigrationCheckpoint(lesson_id={self.lesson_id!r}, status={self.status!r})>"
