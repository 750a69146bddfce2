"""Collection and CollectionContentUnit models.

A Collection groups content units (e.g. all parts of one daily lesson).
Its name is a reference into string_translations, never raw text.
The collection <-> content unit link is many-to-many with a position.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_migration.core.database import Base, BigIntId, JSONType

if TYPE_CHECKING:
    from catalog_migration.models.content_unit import ContentUnit


class Collection(Base):
    """Target catalog collection.

    Attributes:
        id: Auto-increment primary key
        uid: 8 character public identifier
        type: Collection type name (e.g. 'DAILY_LESSON')
        name_id: Sequence id of the localized name
        properties: JSON metadata, including the legacy 'kmedia_id'
        created_at: Timestamp when the collection was created
        updated_at: Timestamp when the collection was last updated
    """

    __tablename__ = "collections"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    uid: Mapped[str] = mapped_column(String(8), nullable=False, unique=True)

    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    name_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)

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

    content_unit_links: Mapped[list["CollectionContentUnit"]] = relationship(
        "CollectionContentUnit",
        back_populates="collection",
        order_by="CollectionContentUnit.position",
    )

    def __repr__(self) -> str:
        return f"<Collection(id={self.id!r}, uid={self.uid!r}, type={self.type!r})>"


class CollectionContentUnit(Base):
    """Ordered link between a collection and a content unit."""

    __tablename__ = "collections_content_units"

    collection_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("collections.id"),
        primary_key=True,
    )

    content_unit_id: Mapped[int] = mapped_column(
        BigIntId,
        ForeignKey("content_units.id"),
        primary_key=True,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    collection: Mapped["Collection"] = relationship(
        "Collection", back_populates="content_unit_links"
    )
    content_unit: Mapped["ContentUnit"] = relationship(
        "ContentUnit", back_populates="collection_links"
    )

    def __repr__(self) -> str:
        return (
            f"<CollectionContentUnit(collection_id={self.collection_id!r}, "
            f"content_unit_id={self.content_unit_id!r}, position={self.position!r})>"
        )
