"""MDBFile model for physical files of the target catalog.

Carries the file metadata served by the admin search endpoint:
uid, name and the original file creation timestamp.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_migration.core.database import Base, BigIntId, JSONType

if TYPE_CHECKING:
    from catalog_migration.models.content_unit import ContentUnit


class MDBFile(Base):
    """Target catalog file.

    Attributes:
        id: Auto-increment primary key
        uid: 8 character public identifier
        name: File name as stored
        file_created_at: When the physical file was created (from the legacy asset)
        size: File size in bytes (nullable)
        language: Legacy language code of the file (nullable)
        content_unit_id: Owning content unit
        properties: JSON metadata, including the legacy 'kmedia_id'
        created_at: Timestamp when the row was created
        updated_at: Timestamp when the row was last updated
    """

    __tablename__ = "files"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    uid: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    file_created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    language: Mapped[str | None] = mapped_column(String(3), nullable=True)

    content_unit_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("content_units.id"),
        nullable=False,
        index=True,
    )

    properties: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

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

    content_unit: Mapped["ContentUnit"] = relationship(
        "ContentUnit", back_populates="files"
    )

    def __repr__(self) -> str:
        return f"<MDBFile(id={self.id!r}, uid={self.uid!r}, name={self.name!r})>"
