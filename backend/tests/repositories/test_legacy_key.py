"""Tests for the legacy key mapping repository."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.repositories.legacy_key import LegacyKeyRepository
from catalog_migration.schemas.legacy_key import EntityKind, LegacyKey


class TestLegacyKeyRepository:
    """Tests for LegacyKeyRepository."""

    @pytest.mark.asyncio
    async def test_unknown_key(self, db_session: AsyncSession) -> None:
        assert await LegacyKeyRepository(db_session).get(LegacyKey.container(1)) is None

    @pytest.mark.asyncio
    async def test_kinds_are_separate(self, db_session: AsyncSession) -> None:
        """Lesson 1 and container 1 are different legacy entities."""
        repo = LegacyKeyRepository(db_session)
        await repo.record(LegacyKey.lesson(1), 10)
        await repo.record(LegacyKey.container(1), 20)

        assert await repo.get(LegacyKey.lesson(1)) == 10
        assert await repo.get(LegacyKey.container(1)) == 20

    @pytest.mark.asyncio
    async def test_record_repoints(self, db_session: AsyncSession) -> None:
        repo = LegacyKeyRepository(db_session)
        await repo.record(LegacyKey.file_asset(5), 1)
        await repo.record(LegacyKey.file_asset(5), 2)

        assert await repo.list_by_kind(EntityKind.FILE_ASSET) == {5: 2}
