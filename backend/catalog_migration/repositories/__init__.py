"""Repositories layer - Data access and persistence.

Repositories handle all database operations using SQLAlchemy.
They abstract the database implementation from the service layer.
"""

from catalog_migration.repositories.checkpoint import (
    CheckpointRepository,
    CheckpointStatus,
)
from catalog_migration.repositories.legacy_key import LegacyKeyRepository
from catalog_migration.repositories.source import LegacyCatalogReader

__all__ = [
    "CheckpointRepository",
    "CheckpointStatus",
    "LegacyCatalogReader",
    "LegacyKeyRepository",
]
