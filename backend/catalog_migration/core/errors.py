"""Exceptions raised while migrating the legacy catalog.

How far a failure reaches:
- StructuralError: the affected legacy subtree is skipped
- DanglingSequenceError: retried once as a fresh allocation, then the
  owning entity is skipped
- ReferentialIntegrityError: the entity and its descendants are skipped
- DurabilityError: the whole run is aborted
"""

from catalog_migration.schemas.legacy_key import LegacyKey


class MigrationError(Exception):
    """Base exception for catalog migration errors."""

    pass


class StructuralError(MigrationError):
    """Raised when a legacy row references a parent that does not exist."""

    def __init__(self, legacy_key: LegacyKey, message: str):
        self.legacy_key = legacy_key
        self.message = message
        super().__init__(f"Structural error at {legacy_key}: {message}")


class DanglingSequenceError(MigrationError):
    """Raised when a translation update references an unknown sequence id."""

    def __init__(self, sequence_id: int, language: str | None = None):
        self.sequence_id = sequence_id
        self.language = language
        super().__init__(f"Translation sequence {sequence_id} does not exist")


class ReferentialIntegrityError(MigrationError):
    """Raised when an upsert would break target-schema integrity."""

    def __init__(
        self,
        legacy_key: LegacyKey,
        message: str,
        parent_key: LegacyKey | None = None,
    ):
        self.legacy_key = legacy_key
        self.parent_key = parent_key
        self.message = message
        super().__init__(f"Cannot upsert {legacy_key}: {message}")


class DurabilityError(MigrationError):
    """Raised when the counter or the target store can no longer be trusted."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Errors that cost a single entity (and its descendants), never the run
ENTITY_ERRORS = (StructuralError, DanglingSequenceError, ReferentialIntegrityError)
