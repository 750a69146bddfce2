"""Unit tests for the entity mapper.

Tests cover:
- Lesson -> collection naming and properties
- Container -> content unit descriptions (absent languages stay absent)
- File asset -> file metadata carried through unchanged
- uid carry-through and derivation
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from catalog_migration.schemas.catalog import (
    CT_DAILY_LESSON,
    CT_LESSON_PART,
    CollectionDraft,
    ContentUnitDraft,
    MDBFileDraft,
)
from catalog_migration.schemas.legacy_key import LegacyKey
from catalog_migration.schemas.source import ContainerNode, FileAssetNode, LessonNode
from catalog_migration.services.mapper import EntityMapper, target_uid
from catalog_migration.utils.uid import derive_uid


@pytest.fixture
def mapper() -> EntityMapper:
    return EntityMapper(name_language="ENG", name_template="Morning lesson {film_date}")


@pytest.fixture
def asset() -> FileAssetNode:
    return FileAssetNode(
        id=100,
        container_id=10,
        name="heb_o_rav_2016-03-14_lesson.mp3",
        uid="aB3dE5gH",
        language="HEB",
        asset_type="mp3",
        size=1024,
        created_at=datetime(2016, 3, 14, 7, 30),
    )


@pytest.fixture
def container(asset: FileAssetNode) -> ContainerNode:
    return ContainerNode(
        id=10,
        lesson_id=1,
        name="lesson_part_1",
        film_date=date(2016, 3, 14),
        language="HEB",
        position=3,
        descriptions={"HEB": "שיעור", "ENG": "Lesson"},
        file_assets=(asset,),
    )


@pytest.fixture
def lesson(container: ContainerNode) -> LessonNode:
    return LessonNode(id=1, film_date=date(2016, 3, 14), containers=(container,))


class TestMapLesson:
    """Tests for lesson -> collection mapping."""

    def test_collection_draft(self, mapper: EntityMapper, lesson: LessonNode) -> None:
        draft = mapper.map(lesson)

        assert isinstance(draft, CollectionDraft)
        assert draft.legacy_key == LegacyKey.lesson(1)
        assert draft.type == CT_DAILY_LESSON
        assert draft.names == {"ENG": "Morning lesson 2016-03-14"}
        assert draft.properties == {"kmedia_id": 1, "film_date": "2016-03-14"}

    def test_name_ignores_containers(self, mapper: EntityMapper, lesson: LessonNode) -> None:
        """The name comes from the lesson itself, not its containers."""
        bare = LessonNode(id=1, film_date=date(2016, 3, 14))
        assert mapper.map(bare).names == mapper.map(lesson).names

    def test_name_falls_back_to_created_at(self, mapper: EntityMapper) -> None:
        node = LessonNode(id=7, created_at=datetime(2015, 1, 2, 6, 0))
        assert mapper.map_lesson(node).names["ENG"] == "Morning lesson 2015-01-02"

    def test_name_without_dates(self, mapper: EntityMapper) -> None:
        node = LessonNode(id=7)
        assert mapper.map_lesson(node).names["ENG"] == "Morning lesson #7"

    def test_uid_is_derived(self, mapper: EntityMapper, lesson: LessonNode) -> None:
        assert mapper.map(lesson).uid == derive_uid("virtual_lesson", 1)


class TestMapContainer:
    """Tests for container -> content unit mapping."""

    def test_content_unit_draft(self, mapper: EntityMapper, container: ContainerNode) -> None:
        draft = mapper.map(container, {"HEB": "שיעור", "ENG": "Lesson"})

        assert isinstance(draft, ContentUnitDraft)
        assert draft.legacy_key == LegacyKey.container(10)
        assert draft.parent_key == LegacyKey.lesson(1)
        assert draft.type == CT_LESSON_PART
        assert draft.position == 3
        assert draft.descriptions == {"HEB": "שיעור", "ENG": "Lesson"}
        assert draft.properties["kmedia_id"] == 10
        assert draft.properties["lang"] == "HEB"

    def test_missing_language_is_omitted(
        self, mapper: EntityMapper, container: ContainerNode
    ) -> None:
        """A missing RUS description produces no RUS entry, not an empty string."""
        draft = mapper.map(container, {"HEB": "שיעור"})
        assert "RUS" not in draft.descriptions
        assert "" not in draft.descriptions.values()

    def test_empty_text_is_dropped(self, mapper: EntityMapper, container: ContainerNode) -> None:
        draft = mapper.map(container, {"HEB": "שיעור", "RUS": ""})
        assert draft.descriptions == {"HEB": "שיעור"}

    def test_no_descriptions(self, mapper: EntityMapper, container: ContainerNode) -> None:
        assert mapper.map(container).descriptions == {}

    def test_container_without_assets_still_maps(self, mapper: EntityMapper) -> None:
        node = ContainerNode(id=20, lesson_id=1)
        draft = mapper.map(node)
        assert isinstance(draft, ContentUnitDraft)
        assert draft.position == 0


class TestMapFileAsset:
    """Tests for file asset -> file mapping."""

    def test_metadata_carried_through(self, mapper: EntityMapper, asset: FileAssetNode) -> None:
        draft = mapper.map(asset)

        assert isinstance(draft, MDBFileDraft)
        assert draft.parent_key == LegacyKey.container(10)
        assert draft.uid == "aB3dE5gH"
        assert draft.name == asset.name
        assert draft.file_created_at == asset.created_at
        assert draft.size == 1024
        assert draft.language == "HEB"
        assert draft.properties == {"kmedia_id": 100, "asset_type": "mp3"}

    def test_descriptions_stored_in_properties(
        self, mapper: EntityMapper, asset: FileAssetNode
    ) -> None:
        draft = mapper.map(asset, {"HEB": "אודיו", "ENG": ""})

        assert draft.properties["descriptions"] == {"HEB": "אודיו"}

    def test_missing_uid_is_derived(self, mapper: EntityMapper) -> None:
        node = FileAssetNode(id=101, container_id=10, name="a.mp4")
        assert mapper.map(node).uid == derive_uid("file_asset", 101)

    def test_empty_name_is_rejected(self, mapper: EntityMapper) -> None:
        node = FileAssetNode(id=102, container_id=10, name="")
        with pytest.raises(ValidationError):
            mapper.map(node)


class TestTargetUid:
    """Tests for target_uid."""

    def test_malformed_legacy_uid_is_replaced(self) -> None:
        key = LegacyKey.file_asset(5)
        assert target_uid(key, "bad uid") == derive_uid("file_asset", 5)

    def test_unknown_node_type(self, mapper: EntityMapper) -> None:
        with pytest.raises(TypeError):
            mapper.map("not a node")  # type: ignore[arg-type]
