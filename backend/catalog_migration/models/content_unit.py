"""ContentUnit model.

A content unit is one logical piece of content (e.g. a lesson part).
It belongs to zero or more collections and owns zero or more files.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_migration.core.database import Base, BigIntId, JSONType

if TYPE_CHECKING:
    from catalog_migration.models.collection import CollectionContentUnit
    from catalog_migration.models.mdb_file import MDBFile


class ContentUnit(Base):
    """Target catalog content unit.

    Attributes:
        id: Auto-increment primary key
        uid: 8 character public identifier
        type: Content unit type name (e.g. 'LESSON_PART')
        description_id: Sequence id of the localized description (nullable)
        properties: JSON metadata, including the legacy 'kmedia_id'
        created_at: Timestamp when the unit was created
        updated_at: Timestamp when the unit was last updated
    """

    __tablename__ = "content_units"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    uid: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)

    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    description_id: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, index=True
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

    collection_links: Mapped[list["CollectionContentUnit"]] = relationship(
        "CollectionContentUnit", back_populates="content_unit"
    )

    files: Mapped[list["MDBFile"]] = relationship(
        "MDBFile",
        back_populates="content_unit",
        order_by="MDBFile.id",
    )

    def __repr__(self) -> str:
        return f"<ContentUnit(id={self.id!r}, uid={self.uid!r}, type={self.type!r})>"
