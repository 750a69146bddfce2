"""Legacy keys identify legacy entities across the migration.

Legacy ids are only unique within their own table, so every key carries
the entity kind alongside the id.
"""

from enum import StrEnum
from typing import NamedTuple


class EntityKind(StrEnum):
    """Kinds of legacy entities that are migrated."""

    VIRTUAL_LESSON = "virtual_lesson"
    CONTAINER = "container"
    FILE_ASSET = "file_asset"


class LegacyKey(NamedTuple):
    """A (kind, legacy id) pair."""

    kind: EntityKind
    legacy_id: int

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.legacy_id}"

    @classmethod
    def lesson(cls, legacy_id: int) -> "LegacyKey":
        return cls(EntityKind.VIRTUAL_LESSON, legacy_id)

    @classmethod
    def container(cls, legacy_id: int) -> "LegacyKey":
        return cls(EntityKind.CONTAINER, legacy_id)

    @classmethod
    def file_asset(cls, legacy_id: int) -> "LegacyKey":
        return cls(EntityKind.FILE_ASSET, legacy_id)
