"""Models layer - SQLAlchemy ORM models.

Target catalog models inherit from Base, legacy catalog models from
LegacyBase; both are defined in core.database.
"""

from catalog_migration.core.database import Base, LegacyBase
from catalog_migration.models.collection import Collection, CollectionContentUnit
from catalog_migration.models.content_unit import ContentUnit
from catalog_migration.models.legacy import (
    Container,
    ContainerDescription,
    FileAsset,
    FileAssetDescription,
    VirtualLesson,
)
from catalog_migration.models.mdb_file import MDBFile
from catalog_migration.models.migration_state import (
    LegacyKeyMapping,
    MigrationCheckpoint,
)
from catalog_migration.models.string_translation import (
    STRING_TRANSLATIONS_SEQUENCE,
    StringTranslation,
    TranslationSequence,
)

__all__ = [
    "Base",
    "LegacyBase",
    "Collection",
    "CollectionContentUnit",
    "Container",
    "ContainerDescription",
    "ContentUnit",
    "FileAsset",
    "FileAssetDescription",
    "LegacyKeyMapping",
    "MDBFile",
    "MigrationCheckpoint",
    "STRING_TRANSLATIONS_SEQUENCE",
    "StringTranslation",
    "TranslationSequence",
    "VirtualLesson",
]
