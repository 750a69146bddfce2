"""Tests for the legacy catalog reader.

Tests cover:
- Paged lesson enumeration in id order
- Subtree loading with ordered containers and assets
- Description resolution (blank texts and unknown languages dropped)
- Orphan detection
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_migration.core.errors import StructuralError
from catalog_migration.models.legacy import (
    Container,
    ContainerDescription,
    FileAsset,
    VirtualLesson,
)
from catalog_migration.repositories.source import LegacyCatalogReader
from catalog_migration.schemas.legacy_key import LegacyKey
from conftest import add_rows

LANGUAGES = ["HEB", "ENG", "RUS"]


@pytest.fixture
def reader(legacy_catalog: async_sessionmaker[AsyncSession]) -> LegacyCatalogReader:
    return LegacyCatalogReader(legacy_catalog, LANGUAGES, page_size=2)


class TestIterLessons:
    """Tests for lesson enumeration."""

    @pytest.mark.asyncio
    async def test_pages_through_all_lessons(
        self,
        reader: LegacyCatalogReader,
        legacy_catalog: async_sessionmaker[AsyncSession],
    ) -> None:
        await add_rows(legacy_catalog, *(VirtualLesson(id=i) for i in (5, 3, 2, 4)))

        ids = [ref.id async for ref in reader.iter_lessons()]

        assert ids == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_exact_page_multiple(
        self,
        reader: LegacyCatalogReader,
        legacy_catalog: async_sessionmaker[AsyncSession],
    ) -> None:
        await add_rows(legacy_catalog, VirtualLesson(id=2))

        assert [ref.id async for ref in reader.iter_lessons()] == [1, 2]

    @pytest.mark.asyncio
    async def test_single_lesson(self, reader: LegacyCatalogReader) -> None:
        refs = [ref async for ref in reader.iter_lessons(1)]

        assert len(refs) == 1
        assert refs[0].id == 1
        assert refs[0].film_date is not None

    @pytest.mark.asyncio
    async def test_missing_single_lesson(self, reader: LegacyCatalogReader) -> None:
        with pytest.raises(StructuralError) as exc_info:
            [ref async for ref in reader.iter_lessons(999)]

        assert exc_info.value.legacy_key == LegacyKey.lesson(999)


class TestLoadLesson:
    """Tests for subtree loading."""

    @pytest.mark.asyncio
    async def test_loads_subtree(self, reader: LegacyCatalogReader) -> None:
        lesson = await reader.load_lesson(1)

        assert [c.id for c in lesson.containers] == [10, 20]
        first = lesson.containers[0]
        assert [a.id for a in first.file_assets] == [100, 101]
        assert first.descriptions == {"HEB": "שיעור חלק א", "ENG": "Lesson part 1"}
        assert first.file_assets[0].descriptions == {"HEB": "אודיו"}
        assert lesson.containers[1].file_assets == ()

    @pytest.mark.asyncio
    async def test_missing_lesson(self, reader: LegacyCatalogReader) -> None:
        with pytest.raises(StructuralError):
            await reader.load_lesson(999)

    @pytest.mark.asyncio
    async def test_containers_without_position_go_last(
        self,
        reader: LegacyCatalogReader,
        legacy_catalog: async_sessionmaker[AsyncSession],
    ) -> None:
        await add_rows(
            legacy_catalog,
            Container(id=5, virtual_lesson_id=1, position=None),
            Container(id=30, virtual_lesson_id=1, position=0),
        )

        lesson = await reader.load_lesson(1)

        assert [c.id for c in lesson.containers] == [30, 10, 20, 5]

    @pytest.mark.asyncio
    async def test_blank_and_foreign_descriptions_dropped(
        self,
        legacy_catalog: async_sessionmaker[AsyncSession],
    ) -> None:
        await add_rows(
            legacy_catalog,
            ContainerDescription(container_id=20, lang_id="RUS", container_desc="   "),
            ContainerDescription(container_id=20, lang_id="SPA", container_desc="Lección"),
        )
        reader = LegacyCatalogReader(legacy_catalog, LANGUAGES)

        lesson = await reader.load_lesson(1)

        assert lesson.containers[1].descriptions == {"HEB": "שיעור חלק ב"}

    @pytest.mark.asyncio
    async def test_descriptions_filter_languages(self, reader: LegacyCatalogReader) -> None:
        lesson = await reader.load_lesson(1)
        container = lesson.containers[0]

        assert reader.descriptions(container, ["ENG", "RUS"]) == {"ENG": "Lesson part 1"}
        assert reader.description(container, "RUS") is None


class TestFindOrphans:
    """Tests for orphan detection."""

    @pytest.mark.asyncio
    async def test_clean_catalog(self, reader: LegacyCatalogReader) -> None:
        assert await reader.find_orphans() == []

    @pytest.mark.asyncio
    async def test_reports_missing_parents(
        self,
        reader: LegacyCatalogReader,
        legacy_catalog: async_sessionmaker[AsyncSession],
    ) -> None:
        await add_rows(
            legacy_catalog,
            Container(id=40, virtual_lesson_id=77),
            FileAsset(id=400, name="orphan.mp3", container_id=88),
        )

        issues = await reader.find_orphans()

        assert [issue.key for issue in issues] == [
            LegacyKey.container(40),
            LegacyKey.file_asset(400),
        ]
        assert "77" in issues[0].reason
        assert "88" in issues[1].reason
