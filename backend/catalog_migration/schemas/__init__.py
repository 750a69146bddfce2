"""Schemas layer - pydantic drafts/responses and plain source nodes."""

from catalog_migration.schemas.catalog import (
    CT_DAILY_LESSON,
    CT_LESSON_PART,
    CollectionDraft,
    ContentUnitDraft,
    EntityDraft,
    MDBFileDraft,
)
from catalog_migration.schemas.files import FileSearchResponse, FileSummary
from catalog_migration.schemas.legacy_key import EntityKind, LegacyKey
from catalog_migration.schemas.source import (
    ContainerNode,
    FileAssetNode,
    LegacyNode,
    LessonNode,
    LessonRef,
    StructuralIssue,
)

__all__ = [
    "CT_DAILY_LESSON",
    "CT_LESSON_PART",
    "CollectionDraft",
    "ContainerNode",
    "ContentUnitDraft",
    "EntityDraft",
    "EntityKind",
    "FileAssetNode",
    "FileSearchResponse",
    "FileSummary",
    "LegacyKey",
    "LegacyNode",
    "LessonNode",
    "LessonRef",
    "MDBFileDraft",
    "StructuralIssue",
]
