"""CatalogUpsertEngine: idempotent writes of target catalog entities.

Every draft is written under its legacy key. The durable legacy key map
decides between create and update, which is what makes a re-run over an
unchanged source a no-op instead of a duplicate.

Guards against duplicate targets:
- An in-process per-key asyncio.Lock serializes lookup-then-insert
- The primary key of legacy_key_mappings rejects a second mapping written
  by another worker; the loser switches to updating the winner's row

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters
- Include legacy keys and target ids in all logs
- Log re-pointed mappings and dangling sequence retries at WARNING level
- Log integrity violations with the parent key
"""

import asyncio
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.errors import (
    DanglingSequenceError,
    ReferentialIntegrityError,
)
from catalog_migration.core.logging import get_logger, migration_logger
from catalog_migration.models.collection import Collection, CollectionContentUnit
from catalog_migration.models.content_unit import ContentUnit
from catalog_migration.models.mdb_file import MDBFile
from catalog_migration.repositories.legacy_key import LegacyKeyRepository
from catalog_migration.schemas.catalog import (
    CollectionDraft,
    ContentUnitDraft,
    EntityDraft,
    MDBFileDraft,
)
from catalog_migration.schemas.legacy_key import LegacyKey
from catalog_migration.services.translation import TranslationSequenceAllocator

logger = get_logger(__name__)

TargetRow = Collection | ContentUnit | MDBFile

_MODELS: dict[type, type[TargetRow]] = {
    CollectionDraft: Collection,
    ContentUnitDraft: ContentUnit,
    MDBFileDraft: MDBFile,
}


class KeyedLock:
    """One asyncio.Lock per key, dropped once nobody holds or waits for it."""

    def __init__(self) -> None:
        self._locks: dict[LegacyKey, asyncio.Lock] = {}
        self._users: dict[LegacyKey, int] = {}

    @asynccontextmanager
    async def hold(self, key: LegacyKey) -> AsyncGenerator[None, None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of one upsert."""

    target_id: int
    created: bool


class CatalogUpsertEngine:
    """Creates or updates target rows keyed by legacy key.

    Example usage:
        engine = CatalogUpsertEngine(session, TranslationSequenceAllocator(session))
        result = await engine.upsert(draft, draft.legacy_key)
        if result.created:
            ...
    """

    def __init__(
        self,
        session: AsyncSession,
        allocator: TranslationSequenceAllocator | None = None,
        locks: KeyedLock | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            session: Target store session; the caller owns the transaction
            allocator: Translation allocator sharing the same session
            locks: Per-key locks shared by every engine of a run
        """
        self.session = session
        self.allocator = allocator or TranslationSequenceAllocator(session)
        self.locks = locks or KeyedLock()
        self.keys = LegacyKeyRepository(session)

    async def upsert(
        self, draft: EntityDraft, legacy_key: LegacyKey | None = None
    ) -> UpsertResult:
        """Write a draft, creating the target row on first sight of its key.

        Args:
            draft: Target entity draft from the mapper
            legacy_key: Legacy key to upsert under (defaults to draft.legacy_key)

        Returns:
            UpsertResult with the target id and whether it was created

        Raises:
            ReferentialIntegrityError: Parent not migrated or constraint violated
            DanglingSequenceError: Translation update failed twice
        """
        key = legacy_key or draft.legacy_key
        logger.debug("Upserting entity", extra={"legacy_key": str(key)})

        async with self.locks.hold(key):
            target_id = await self.keys.get(key)
            if target_id is not None:
                row = await self.session.get(_MODELS[type(draft)], target_id)
                if row is not None:
                    await self._update(row, draft, key)
                    return UpsertResult(target_id=row.id, created=False)

                logger.warning(
                    "Mapped target row missing, re-pointing legacy key",
                    extra={"legacy_key": str(key), "target_id": target_id},
                )

            try:
                async with self.session.begin_nested():
                    row = await self._create(draft, key)
                    await self.keys.record(key, row.id)
            except IntegrityError as e:
                # Another worker may have recorded this key first
                winner_id = await self.keys.get(key)
                winner = (
                    await self.session.get(_MODELS[type(draft)], winner_id)
                    if winner_id is not None and winner_id != target_id
                    else None
                )
                if winner is None:
                    raise ReferentialIntegrityError(
                        key,
                        f"insert rejected: {e.orig}",
                        getattr(draft, "parent_key", None),
                    ) from e
                logger.info(
                    "Lost insert race, updating existing row",
                    extra={"legacy_key": str(key), "target_id": winner.id},
                )
                await self._update(winner, draft, key)
                return UpsertResult(target_id=winner.id, created=False)

        logger.debug(
            "Entity created",
            extra={"legacy_key": str(key), "target_id": row.id},
        )
        return UpsertResult(target_id=row.id, created=True)

    async def _create(self, draft: EntityDraft, key: LegacyKey) -> TargetRow:
        row: TargetRow
        if isinstance(draft, CollectionDraft):
            name_id = await self.allocator.set_translations(None, draft.names)
            assert name_id is not None
            row = Collection(
                uid=draft.uid,
                type=draft.type,
                name_id=name_id,
                properties=dict(draft.properties),
            )
            self.session.add(row)
            await self.session.flush()
        elif isinstance(draft, ContentUnitDraft):
            collection_id = await self._parent_id(key, draft.parent_key, Collection)
            row = ContentUnit(
                uid=draft.uid,
                type=draft.type,
                description_id=await self.allocator.set_translations(
                    None, draft.descriptions
                ),
                properties=dict(draft.properties),
            )
            self.session.add(row)
            await self.session.flush()
            await self._link(collection_id, row.id, draft.position)
        else:
            content_unit_id = await self._parent_id(key, draft.parent_key, ContentUnit)
            row = MDBFile(
                uid=draft.uid,
                name=draft.name,
                file_created_at=draft.file_created_at,
                size=draft.size,
                language=draft.language,
                content_unit_id=content_unit_id,
                properties=dict(draft.properties),
            )
            self.session.add(row)
            await self.session.flush()
        return row

    async def _update(self, row: TargetRow, draft: EntityDraft, key: LegacyKey) -> None:
        if isinstance(draft, CollectionDraft):
            assert isinstance(row, Collection)
            name_id = await self._translations(key, row.name_id, draft.names)
            assert name_id is not None
            row.name_id = name_id
            row.type = draft.type
        elif isinstance(draft, ContentUnitDraft):
            assert isinstance(row, ContentUnit)
            collection_id = await self._parent_id(key, draft.parent_key, Collection)
            # No descriptions left keeps the existing reference as is
            row.description_id = await self._translations(
                key, row.description_id, draft.descriptions
            )
            row.type = draft.type
            await self._link(collection_id, row.id, draft.position)
        else:
            assert isinstance(row, MDBFile)
            row.content_unit_id = await self._parent_id(
                key, draft.parent_key, ContentUnit
            )
            row.uid = draft.uid
            row.name = draft.name
            row.file_created_at = draft.file_created_at
            row.size = draft.size
            row.language = draft.language

        merged = _merge_properties(row.properties, draft.properties)
        if merged != row.properties:
            row.properties = merged

        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ReferentialIntegrityError(
                key, f"update rejected: {e.orig}", getattr(draft, "parent_key", None)
            ) from e
        logger.debug(
            "Entity updated",
            extra={"legacy_key": str(key), "target_id": row.id},
        )

    async def _translations(
        self, key: LegacyKey, sequence_id: int | None, texts: Mapping[str, str]
    ) -> int | None:
        try:
            return await self.allocator.set_translations(sequence_id, texts)
        except DanglingSequenceError:
            if sequence_id is None:
                raise
            migration_logger.dangling_sequence_retry(str(key), sequence_id)
            return await self.allocator.set_translations(None, texts)

    async def _parent_id(
        self, key: LegacyKey, parent_key: LegacyKey, model: type[TargetRow]
    ) -> int:
        parent_id = await self.keys.get(parent_key)
        if parent_id is None or await self.session.get(model, parent_id) is None:
            logger.warning(
                "Parent not migrated",
                extra={"legacy_key": str(key), "parent_key": str(parent_key)},
            )
            raise ReferentialIntegrityError(
                key, f"parent {parent_key} has not been migrated", parent_key
            )
        return parent_id

    async def _link(self, collection_id: int, content_unit_id: int, position: int) -> None:
        link = await self.session.get(
            CollectionContentUnit, (collection_id, content_unit_id)
        )
        if link is None:
            self.session.add(
                CollectionContentUnit(
                    collection_id=collection_id,
                    content_unit_id=content_unit_id,
                    position=position,
                )
            )
        elif link.position != position:
            link.position = position
        await self.session.flush()


def _merge_properties(
    current: Mapping[str, Any] | None, incoming: Mapping[str, Any]
) -> dict[str, Any]:
    """Overlay migrated properties on top of whatever the row already holds."""
    return {**(current or {}), **incoming}
