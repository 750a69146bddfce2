"""TranslationSequenceAllocator: the single authority for translation sequence ids.

A logical string (a collection name, a content unit description) is one
sequence id shared by all of its languages. Ids come from a durable
counter row in translation_sequences, incremented under a row lock in the
caller's transaction, so ids are strictly increasing across runs and an id
rolled back with its transaction was never stored anywhere.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters
- Include sequence ids and language codes in all logs
- Log dangling sequence references at WARNING level
- Raise store connectivity failures as DurabilityError
"""

from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager

from sqlalchemy import func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.errors import DanglingSequenceError, DurabilityError
from catalog_migration.core.logging import db_logger, get_logger
from catalog_migration.models.string_translation import (
    STRING_TRANSLATIONS_SEQUENCE,
    StringTranslation,
    TranslationSequence,
)

logger = get_logger(__name__)


class TranslationSequenceAllocator:
    """Allocates sequence ids and stores language-keyed texts against them.

    Example usage:
        allocator = TranslationSequenceAllocator(session)

        name_id = await allocator.set_translations(None, {"ENG": "Morning lesson"})
        await allocator.set_translation(name_id, "HEB", "שיעור בוקר")
    """

    def __init__(
        self,
        session: AsyncSession,
        sequence_name: str = STRING_TRANSLATIONS_SEQUENCE,
    ) -> None:
        """Initialize the allocator.

        Args:
            session: Target store session; allocation joins its transaction
            sequence_name: Name of the durable counter row
        """
        self.session = session
        self.sequence_name = sequence_name

    @asynccontextmanager
    async def _durable(self, operation: str) -> AsyncGenerator[None, None]:
        """Translate lost-store failures into DurabilityError."""
        try:
            yield
        except (OperationalError, InterfaceError) as e:
            db_logger.transaction_failure(
                e,
                table=StringTranslation.__tablename__,
                context=operation,
            )
            raise DurabilityError(f"Translation store unavailable during {operation}: {e}") from e

    async def next_sequence_id(self) -> int:
        """Increment the durable counter and return the new value.

        If the counter row is missing it is created from the highest id
        already stored, so ids never go backwards.

        The row lock is held until the caller's transaction ends. Concurrent
        lessons therefore allocate one at a time, each waiting for the
        previous lesson to commit.
        """
        async with self._durable("sequence allocation"):
            counter = (
                await self.session.execute(
                    select(TranslationSequence)
                    .where(TranslationSequence.name == self.sequence_name)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
            ).scalar_one_or_none()

            if counter is None:
                highest = await self.session.scalar(
                    select(func.coalesce(func.max(StringTranslation.id), 0))
                )
                counter = TranslationSequence(
                    name=self.sequence_name, last_value=int(highest or 0)
                )
                self.session.add(counter)
                logger.info(
                    "Translation sequence counter created",
                    extra={"sequence": self.sequence_name, "start": counter.last_value},
                )

            counter.last_value += 1
            await self.session.flush()

        logger.debug("Sequence id allocated", extra={"sequence_id": counter.last_value})
        return counter.last_value

    async def set_translation(
        self, sequence_id: int | None, language: str, text: str
    ) -> int:
        """Store one language's text, allocating a sequence id when None.

        Other languages of the same sequence id are never touched.

        Raises:
            DanglingSequenceError: If sequence_id has no stored translations
        """
        return await self._write(sequence_id, {language: text})

    async def set_translations(
        self, sequence_id: int | None, texts: Mapping[str, str]
    ) -> int | None:
        """Store texts for several languages under one sequence id.

        Returns the sequence id unchanged (possibly None) when there is
        nothing to store.

        Raises:
            DanglingSequenceError: If sequence_id has no stored translations
        """
        if not texts:
            return sequence_id
        return await self._write(sequence_id, texts)

    async def _write(self, sequence_id: int | None, texts: Mapping[str, str]) -> int:
        if sequence_id is None:
            sequence_id = await self.next_sequence_id()
            async with self._durable("translation insert"):
                for language, text in texts.items():
                    self.session.add(
                        StringTranslation(id=sequence_id, language=language, text=text)
                    )
                await self.session.flush()
            logger.debug(
                "Translations created",
                extra={"sequence_id": sequence_id, "languages": sorted(texts)},
            )
            return sequence_id

        async with self._durable("translation update"):
            existing = {
                row.language: row
                for row in (
                    await self.session.execute(
                        select(StringTranslation).where(
                            StringTranslation.id == sequence_id
                        )
                    )
                ).scalars()
            }
            if not existing:
                logger.warning(
                    "Dangling translation sequence",
                    extra={"sequence_id": sequence_id, "languages": sorted(texts)},
                )
                raise DanglingSequenceError(sequence_id, next(iter(texts)))

            changed: list[str] = []
            for language, text in texts.items():
                row = existing.get(language)
                if row is None:
                    self.session.add(
                        StringTranslation(id=sequence_id, language=language, text=text)
                    )
                    changed.append(language)
                elif row.text != text:
                    row.text = text
                    changed.append(language)
            if changed:
                await self.session.flush()

        logger.debug(
            "Translations updated",
            extra={"sequence_id": sequence_id, "changed_languages": changed},
        )
        return sequence_id

    async def get_translations(self, sequence_id: int) -> dict[str, str]:
        """All stored texts of a sequence id, keyed by language."""
        result = await self.session.execute(
            select(StringTranslation.language, StringTranslation.text).where(
                StringTranslation.id == sequence_id
            )
        )
        return {row.language: row.text for row in result}
