"""Core utilities and configuration."""

from catalog_migration.core.config import Settings, get_settings
from catalog_migration.core.database import (
    Base,
    DatabaseManager,
    LegacyBase,
    MigrationContext,
    db_manager,
    get_session,
    open_migration_context,
    transaction,
)
from catalog_migration.core.logging import (
    db_logger,
    get_logger,
    migration_logger,
    setup_logging,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "Base",
    "DatabaseManager",
    "LegacyBase",
    "MigrationContext",
    "db_manager",
    "get_session",
    "open_migration_context",
    "transaction",
    # Logging
    "db_logger",
    "get_logger",
    "migration_logger",
    "setup_logging",
]
