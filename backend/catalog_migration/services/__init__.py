"""Services layer - Migration logic and orchestration.

Services coordinate between repositories and each other to implement the
catalog migration and the admin file search. They contain no direct
connection management - that's delegated to core.database.
"""

from catalog_migration.services.file_search import FileSearchResult, FileSearchService
from catalog_migration.services.mapper import EntityMapper, target_uid
from catalog_migration.services.orchestrator import MigrationOrchestrator
from catalog_migration.services.report import (
    EXIT_ABORTED,
    EXIT_FAILURES,
    EXIT_OK,
    LessonOutcome,
    LessonResult,
    MigrationReport,
    RunState,
    SkippedEntity,
)
from catalog_migration.services.translation import TranslationSequenceAllocator
from catalog_migration.services.upsert import (
    CatalogUpsertEngine,
    KeyedLock,
    UpsertResult,
)

__all__ = [
    # File search
    "FileSearchResult",
    "FileSearchService",
    # Mapping
    "EntityMapper",
    "target_uid",
    # Orchestration
    "MigrationOrchestrator",
    # Report
    "EXIT_ABORTED",
    "EXIT_FAILURES",
    "EXIT_OK",
    "LessonOutcome",
    "LessonResult",
    "MigrationReport",
    "RunState",
    "SkippedEntity",
    # Translations
    "TranslationSequenceAllocator",
    # Upserts
    "CatalogUpsertEngine",
    "KeyedLock",
    "UpsertResult",
]
