"""Tests for the idempotent upsert engine.

Tests cover:
- Create on first sight, update in place on repeat sight
- Parent resolution and referential integrity failures
- Re-pointing a mapping whose target row disappeared
- Dangling translation sequences retried as fresh allocations
- Per-key locking
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.errors import ReferentialIntegrityError
from catalog_migration.models.collection import Collection, CollectionContentUnit
from catalog_migration.models.content_unit import ContentUnit
from catalog_migration.models.mdb_file import MDBFile
from catalog_migration.models.string_translation import StringTranslation
from catalog_migration.repositories.legacy_key import LegacyKeyRepository
from catalog_migration.schemas.catalog import (
    CollectionDraft,
    ContentUnitDraft,
    MDBFileDraft,
)
from catalog_migration.schemas.legacy_key import LegacyKey
from catalog_migration.services.upsert import CatalogUpsertEngine, KeyedLock

LESSON = LegacyKey.lesson(1)
CONTAINER = LegacyKey.container(10)
ASSET = LegacyKey.file_asset(100)


def collection_draft(name: str = "Morning lesson 2016-03-14") -> CollectionDraft:
    return CollectionDraft(
        legacy_key=LESSON,
        uid="COLL0001",
        names={"ENG": name},
        properties={"kmedia_id": 1},
    )


def unit_draft(descriptions: dict[str, str] | None = None, position: int = 1) -> ContentUnitDraft:
    return ContentUnitDraft(
        legacy_key=CONTAINER,
        parent_key=LESSON,
        uid="UNIT0001",
        position=position,
        descriptions={"HEB": "שיעור"} if descriptions is None else descriptions,
        properties={"kmedia_id": 10},
    )


def file_draft(name: str = "lesson.mp3", uid: str = "FILE0001") -> MDBFileDraft:
    return MDBFileDraft(
        legacy_key=ASSET,
        parent_key=CONTAINER,
        uid=uid,
        name=name,
        file_created_at=datetime(2016, 3, 14, 7, 30),
        size=1024,
        language="HEB",
        properties={"kmedia_id": 100},
    )


async def _count(session: AsyncSession, model: type) -> int:
    return await session.scalar(select(func.count()).select_from(model)) or 0


@pytest.fixture
def engine(db_session: AsyncSession) -> CatalogUpsertEngine:
    return CatalogUpsertEngine(db_session)


class TestCreate:
    """Tests for first sight of a legacy key."""

    @pytest.mark.asyncio
    async def test_creates_hierarchy(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        collection = await engine.upsert(collection_draft(), LESSON)
        unit = await engine.upsert(unit_draft(), CONTAINER)
        file = await engine.upsert(file_draft(), ASSET)

        assert collection.created and unit.created and file.created

        link = await db_session.get(
            CollectionContentUnit, (collection.target_id, unit.target_id)
        )
        assert link is not None
        assert link.position == 1

        row = await db_session.get(MDBFile, file.target_id)
        assert row is not None
        assert row.content_unit_id == unit.target_id
        assert row.properties == {"kmedia_id": 100}

    @pytest.mark.asyncio
    async def test_records_mapping(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        result = await engine.upsert(collection_draft())
        assert await LegacyKeyRepository(db_session).get(LESSON) == result.target_id

    @pytest.mark.asyncio
    async def test_no_descriptions_no_sequence(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        await engine.upsert(collection_draft())
        result = await engine.upsert(unit_draft(descriptions={}))

        unit = await db_session.get(ContentUnit, result.target_id)
        assert unit is not None
        assert unit.description_id is None


class TestUpdate:
    """Tests for repeat sight of a legacy key."""

    @pytest.mark.asyncio
    async def test_second_upsert_returns_same_id(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        first = await engine.upsert(collection_draft())
        second = await engine.upsert(collection_draft())

        assert second.target_id == first.target_id
        assert second.created is False
        assert await _count(db_session, Collection) == 1

    @pytest.mark.asyncio
    async def test_description_updated_in_place(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        await engine.upsert(collection_draft())
        first = await engine.upsert(unit_draft({"HEB": "ישן", "ENG": "Old"}))
        unit = await db_session.get(ContentUnit, first.target_id)
        assert unit is not None
        sequence_id = unit.description_id

        await engine.upsert(unit_draft({"HEB": "חדש", "ENG": "Old"}))

        assert unit.description_id == sequence_id
        heb = await db_session.get(StringTranslation, (sequence_id, "HEB"))
        eng = await db_session.get(StringTranslation, (sequence_id, "ENG"))
        assert heb is not None and heb.text == "חדש"
        assert eng is not None and eng.text == "Old"

    @pytest.mark.asyncio
    async def test_position_and_file_metadata_refreshed(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        collection = await engine.upsert(collection_draft())
        unit = await engine.upsert(unit_draft(position=1))
        await engine.upsert(file_draft(name="old.mp3"))

        await engine.upsert(unit_draft(position=5))
        result = await engine.upsert(file_draft(name="new.mp3"))

        link = await db_session.get(
            CollectionContentUnit, (collection.target_id, unit.target_id)
        )
        assert link is not None and link.position == 5
        row = await db_session.get(MDBFile, result.target_id)
        assert row is not None and row.name == "new.mp3"
        assert await _count(db_session, MDBFile) == 1

    @pytest.mark.asyncio
    async def test_existing_properties_are_kept(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        result = await engine.upsert(collection_draft())
        row = await db_session.get(Collection, result.target_id)
        assert row is not None
        row.properties = {**row.properties, "pattern": "lesson"}
        await db_session.flush()

        await engine.upsert(collection_draft())

        assert row.properties == {"kmedia_id": 1, "pattern": "lesson"}


class TestReferentialIntegrity:
    """Tests for parent resolution failures."""

    @pytest.mark.asyncio
    async def test_parent_not_migrated(self, engine: CatalogUpsertEngine) -> None:
        with pytest.raises(ReferentialIntegrityError) as exc_info:
            await engine.upsert(unit_draft())

        assert exc_info.value.legacy_key == CONTAINER
        assert exc_info.value.parent_key == LESSON

    @pytest.mark.asyncio
    async def test_uid_conflict_is_reported(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        await engine.upsert(collection_draft())
        await engine.upsert(unit_draft())
        await engine.upsert(file_draft(uid="SAMEUID1"))

        other = MDBFileDraft(
            legacy_key=LegacyKey.file_asset(101),
            parent_key=CONTAINER,
            uid="SAMEUID1",
            name="other.mp3",
        )
        with pytest.raises(ReferentialIntegrityError):
            await engine.upsert(other)

        assert await _count(db_session, MDBFile) == 1
        assert await LegacyKeyRepository(db_session).get(other.legacy_key) is None


class TestRecovery:
    """Tests for mappings and sequences that no longer resolve."""

    @pytest.mark.asyncio
    async def test_missing_target_row_is_repointed(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        await engine.upsert(collection_draft())
        await engine.upsert(unit_draft())
        first = await engine.upsert(file_draft())

        await db_session.execute(delete(MDBFile).where(MDBFile.id == first.target_id))
        db_session.expunge_all()

        second = await engine.upsert(file_draft())

        assert second.created is True
        assert await LegacyKeyRepository(db_session).get(ASSET) == second.target_id
        assert await _count(db_session, MDBFile) == 1

    @pytest.mark.asyncio
    async def test_dangling_sequence_gets_fresh_allocation(
        self, engine: CatalogUpsertEngine, db_session: AsyncSession
    ) -> None:
        result = await engine.upsert(collection_draft("Old name"))
        row = await db_session.get(Collection, result.target_id)
        assert row is not None
        old_name_id = row.name_id

        await db_session.execute(
            delete(StringTranslation).where(StringTranslation.id == old_name_id)
        )

        await engine.upsert(collection_draft("New name"))

        assert row.name_id > old_name_id
        text = await db_session.get(StringTranslation, (row.name_id, "ENG"))
        assert text is not None and text.text == "New name"


class TestKeyedLock:
    """Tests for per-key locking."""

    @pytest.mark.asyncio
    async def test_same_key_is_serialized(self) -> None:
        locks = KeyedLock()
        events: list[str] = []

        async def worker(name: str) -> None:
            async with locks.hold(LESSON):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self) -> None:
        locks = KeyedLock()
        inside = asyncio.Event()

        async def holder() -> None:
            async with locks.hold(LESSON):
                await inside.wait()

        task = asyncio.create_task(holder())
        await asyncio.sleep(0)
        async with locks.hold(CONTAINER):
            inside.set()
        await task

    @pytest.mark.asyncio
    async def test_locks_are_released(self) -> None:
        locks = KeyedLock()
        async with locks.hold(LESSON):
            assert len(locks) == 1
        assert len(locks) == 0
