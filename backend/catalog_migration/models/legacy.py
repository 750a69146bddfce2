"""Legacy kmedia catalog models (read-only).

The legacy catalog is a tree:
- virtual_lessons: top-level catalog unit (maps to a Collection)
- containers: lesson parts grouping file assets (map to ContentUnits)
- file_assets: one row per physical file (map to Files)

Localized descriptions live in side tables keyed by the composite
(parent id, lang_id) pair. Parent references are plain integer columns
without foreign key constraints, so orphans are possible and must be
detected by the reader.
"""

from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_migration.core.database import LegacyBase


class VirtualLesson(LegacyBase):
    """A virtual lesson (e.g. one morning lesson)."""

    __tablename__ = "virtual_lessons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    film_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<VirtualLesson(id={self.id!r}, film_date={self.film_date!r})>"


class Container(LegacyBase):
    """A lesson part grouping file assets."""

    __tablename__ = "containers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    filmdate: Mapped[date | None] = mapped_column(Date, nullable=True)
    lang_id: Mapped[str | None] = mapped_column(String(3), nullable=True)
    virtual_lesson_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    secure: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<Container(id={self.id!r}, virtual_lesson_id={self.virtual_lesson_id!r})>"


class ContainerDescription(LegacyBase):
    """Localized description of a container, one row per language."""

    __tablename__ = "container_descriptions"

    container_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lang_id: Mapped[str] = mapped_column(String(3), primary_key=True)
    container_desc: Mapped[str | None] = mapped_column(Text, nullable=True)


class FileAsset(LegacyBase):
    """A single file belonging to a container."""

    __tablename__ = "file_assets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    uid: Mapped[str | None] = mapped_column(String(8), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    lang_id: Mapped[str | None] = mapped_column(String(3), nullable=True)
    asset_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    container_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<FileAsset(id={self.id!r}, name={self.name!r}, container_id={self.container_id!r})>"


class FileAssetDescription(LegacyBase):
    """Localized description of a file asset, one row per language."""

    __tablename__ = "file_asset_descriptions"

    file_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lang_id: Mapped[str] = mapped_column(String(3), primary_key=True)
    filedesc: Mapped[str | None] = mapped_column(Text, nullable=True)
