"""Plain nested representation of the legacy catalog tree.

The reader builds these from explicit queries; nothing here holds a
session or lazily loads anything.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime

from catalog_migration.schemas.legacy_key import LegacyKey


@dataclass(frozen=True)
class LessonRef:
    """A lesson as enumerated, before its subtree is loaded."""

    id: int
    film_date: date | None = None


@dataclass(frozen=True)
class FileAssetNode:
    id: int
    container_id: int
    name: str
    uid: str | None = None
    language: str | None = None
    asset_type: str | None = None
    size: int | None = None
    created_at: datetime | None = None
    descriptions: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> LegacyKey:
        return LegacyKey.file_asset(self.id)


@dataclass(frozen=True)
class ContainerNode:
    id: int
    lesson_id: int
    name: str | None = None
    film_date: date | None = None
    language: str | None = None
    position: int | None = None
    created_at: datetime | None = None
    descriptions: Mapping[str, str] = field(default_factory=dict)
    file_assets: tuple[FileAssetNode, ...] = ()

    @property
    def key(self) -> LegacyKey:
        return LegacyKey.container(self.id)


@dataclass(frozen=True)
class LessonNode:
    id: int
    film_date: date | None = None
    created_at: datetime | None = None
    containers: tuple[ContainerNode, ...] = ()
    descriptions: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> LegacyKey:
        return LegacyKey.lesson(self.id)


LegacyNode = LessonNode | ContainerNode | FileAssetNode


@dataclass(frozen=True)
class StructuralIssue:
    """A legacy row whose parent reference cannot be resolved."""

    key: LegacyKey
    reason: str
