"""EntityMapper: pure transform from legacy nodes to target drafts.

No I/O happens here. The mapper sees a legacy node plus the descriptions
already resolved for it and returns the draft the upsert engine writes.
"""

from collections.abc import Mapping
from typing import Any

from catalog_migration.schemas.catalog import (
    CT_DAILY_LESSON,
    CT_LESSON_PART,
    CollectionDraft,
    ContentUnitDraft,
    EntityDraft,
    MDBFileDraft,
)
from catalog_migration.schemas.legacy_key import LegacyKey
from catalog_migration.schemas.source import (
    ContainerNode,
    FileAssetNode,
    LegacyNode,
    LessonNode,
)
from catalog_migration.utils.uid import derive_uid, is_valid_uid


def target_uid(key: LegacyKey, legacy_uid: str | None = None) -> str:
    """Carry a well-formed legacy uid through, otherwise derive one from the key."""
    if is_valid_uid(legacy_uid):
        return legacy_uid  # type: ignore[return-value]
    return derive_uid(key.kind.value, key.legacy_id)


class EntityMapper:
    """Maps lessons, containers and file assets to target drafts."""

    def __init__(
        self,
        name_language: str = "ENG",
        name_template: str = "Morning lesson {film_date}",
    ) -> None:
        self.name_language = name_language
        self.name_template = name_template

    def map(
        self,
        node: LegacyNode,
        resolved_descriptions: Mapping[str, str] | None = None,
    ) -> EntityDraft:
        """Map any legacy node to its target draft.

        Args:
            node: Lesson, container or file asset node
            resolved_descriptions: Descriptions per language, only for
                languages that have one

        Raises:
            TypeError: If node is not a legacy catalog node
        """
        if isinstance(node, LessonNode):
            return self.map_lesson(node)
        if isinstance(node, ContainerNode):
            return self.map_container(node, resolved_descriptions or {})
        if isinstance(node, FileAssetNode):
            return self.map_file_asset(node, resolved_descriptions or {})
        raise TypeError(f"Cannot map {type(node).__name__}")

    def lesson_name(self, node: LessonNode) -> str:
        """Collection name built from the lesson's own metadata."""
        if node.film_date is not None:
            film_date = node.film_date.isoformat()
        elif node.created_at is not None:
            film_date = node.created_at.date().isoformat()
        else:
            film_date = f"#{node.id}"
        return self.name_template.format(film_date=film_date, lesson_id=node.id)

    def map_lesson(self, node: LessonNode) -> CollectionDraft:
        properties: dict[str, Any] = {"kmedia_id": node.id}
        if node.film_date is not None:
            properties["film_date"] = node.film_date.isoformat()
        return CollectionDraft(
            legacy_key=node.key,
            uid=target_uid(node.key),
            type=CT_DAILY_LESSON,
            names={self.name_language: self.lesson_name(node)},
            properties=properties,
        )

    def map_container(
        self, node: ContainerNode, descriptions: Mapping[str, str]
    ) -> ContentUnitDraft:
        properties: dict[str, Any] = {"kmedia_id": node.id}
        if node.name:
            properties["name"] = node.name
        if node.film_date is not None:
            properties["film_date"] = node.film_date.isoformat()
        if node.language:
            properties["lang"] = node.language
        return ContentUnitDraft(
            legacy_key=node.key,
            parent_key=LegacyKey.lesson(node.lesson_id),
            uid=target_uid(node.key),
            type=CT_LESSON_PART,
            position=max(node.position or 0, 0),
            # Absent languages stay absent, never empty strings
            descriptions={lang: text for lang, text in descriptions.items() if text},
            properties=properties,
        )

    def map_file_asset(
        self, node: FileAssetNode, descriptions: Mapping[str, str] | None = None
    ) -> MDBFileDraft:
        properties: dict[str, Any] = {"kmedia_id": node.id}
        if node.asset_type:
            properties["asset_type"] = node.asset_type
        # Files carry no translation sequence; descriptions live in properties
        texts = {lang: text for lang, text in (descriptions or {}).items() if text}
        if texts:
            properties["descriptions"] = texts
        return MDBFileDraft(
            legacy_key=node.key,
            parent_key=LegacyKey.container(node.container_id),
            uid=target_uid(node.key, node.uid),
            name=node.name,
            file_created_at=node.created_at,
            size=node.size,
            language=node.language,
            properties=properties,
        )
