"""Utility functions."""

from catalog_migration.utils.uid import derive_uid, is_valid_uid

__all__ = ["derive_uid", "is_valid_uid"]
