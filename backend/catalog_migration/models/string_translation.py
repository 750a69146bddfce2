"""StringTranslation and TranslationSequence models.

A logical string is identified by a sequence id shared across languages:
- string_translations holds one row per (sequence id, language)
- translation_sequences holds the durable counter that issues sequence ids
"""

from datetime import UTC, datetime

from sqlalchemy import BigInteger, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from catalog_migration.core.database import Base

STRING_TRANSLATIONS_SEQUENCE = "string_translations"


class StringTranslation(Base):
    """Localized text for one language of a logical string.

    Attributes:
        id: Sequence id, shared by every language of the same string
        language: Legacy three-letter language code (e.g. 'HEB')
        text: The localized text
        created_at: Timestamp when the row was first written
        updated_at: Timestamp when the text last changed
    """

    __tablename__ = "string_translations"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    language: Mapped[str] = mapped_column(String(3), primary_key=True)

    text: Mapped[str] = mapped_column(Text, nullable=False)

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
        return f"<StringTranslation(id={self.id!r}, language={self.language!r})>"


class TranslationSequence(Base):
    """Durable monotonic counter for translation sequence ids."""

    __tablename__ = "translation_sequences"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)

    last_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TranslationSequence(name={self.name!r}, last_value={self.last_value!r})>"
