"""Pydantic schemas for target catalog drafts.

Drafts are produced by the entity mapper and consumed by the upsert
engine. They carry raw localized texts keyed by language code; the
upsert engine turns them into translation sequence references.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from catalog_migration.schemas.legacy_key import LegacyKey

# Collection types
CT_DAILY_LESSON = "DAILY_LESSON"

# Content unit types
CT_LESSON_PART = "LESSON_PART"


class CollectionDraft(BaseModel):
    """Target shape of a migrated virtual lesson."""

    model_config = ConfigDict(frozen=True)

    legacy_key: LegacyKey = Field(..., description="Key of the source lesson")
    uid: str = Field(..., min_length=8, max_length=8, description="Public identifier")
    type: str = Field(default=CT_DAILY_LESSON, description="Collection type name")
    names: dict[str, str] = Field(
        ..., min_length=1, description="Localized names keyed by language code"
    )
    properties: dict[str, Any] = Field(default_factory=dict)


class ContentUnitDraft(BaseModel):
    """Target shape of a migrated container."""

    model_config = ConfigDict(frozen=True)

    legacy_key: LegacyKey = Field(..., description="Key of the source container")
    parent_key: LegacyKey = Field(..., description="Key of the owning lesson")
    uid: str = Field(..., min_length=8, max_length=8, description="Public identifier")
    type: str = Field(default=CT_LESSON_PART, description="Content unit type name")
    position: int = Field(default=0, ge=0, description="Position inside the collection")
    descriptions: dict[str, str] = Field(
        default_factory=dict,
        description="Localized descriptions, only for languages that have one",
    )
    properties: dict[str, Any] = Field(default_factory=dict)


class MDBFileDraft(BaseModel):
    """Target shape of a migrated file asset."""

    model_config = ConfigDict(frozen=True)

    legacy_key: LegacyKey = Field(..., description="Key of the source file asset")
    parent_key: LegacyKey = Field(..., description="Key of the owning container")
    uid: str = Field(..., min_length=8, max_length=8, description="Public identifier")
    name: str = Field(..., min_length=1, max_length=255, description="File name")
    file_created_at: datetime | None = Field(default=None)
    size: int | None = Field(default=None, ge=0)
    language: str | None = Field(default=None, max_length=3)
    properties: dict[str, Any] = Field(default_factory=dict)


EntityDraft = CollectionDraft | ContentUnitDraft | MDBFileDraft
