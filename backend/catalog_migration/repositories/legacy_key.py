"""LegacyKeyRepository: durable legacy key -> target id map.

The primary key (entity_kind, legacy_id) guarantees at most one target
row per legacy entity, even when several workers race on the same key.
"""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.logging import db_logger, get_logger
from catalog_migration.models.migration_state import LegacyKeyMapping
from catalog_migration.schemas.legacy_key import EntityKind, LegacyKey

logger = get_logger(__name__)


class LegacyKeyRepository:
    """Repository for legacy key mappings."""

    TABLE_NAME = "legacy_key_mappings"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, key: LegacyKey) -> int | None:
        """Target id recorded for a legacy key, or None if never migrated."""
        mapping = await self.session.get(
            LegacyKeyMapping, (key.kind.value, key.legacy_id)
        )
        return mapping.target_id if mapping is not None else None

    async def record(self, key: LegacyKey, target_id: int) -> None:
        """Record (or re-point) the target id of a legacy key.

        Raises:
            IntegrityError: If another worker recorded the same key first
        """
        mapping = await self.session.get(
            LegacyKeyMapping, (key.kind.value, key.legacy_id)
        )
        try:
            if mapping is None:
                self.session.add(
                    LegacyKeyMapping(
                        entity_kind=key.kind.value,
                        legacy_id=key.legacy_id,
                        target_id=target_id,
                    )
                )
            else:
                mapping.target_id = target_id
            await self.session.flush()
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Recording legacy key {key}",
            )
            raise

        logger.debug(
            "Legacy key recorded",
            extra={"legacy_key": str(key), "target_id": target_id},
        )

    async def list_by_kind(self, kind: EntityKind) -> dict[int, int]:
        """All mappings of one entity kind as {legacy_id: target_id}."""
        result = await self.session.execute(
            select(LegacyKeyMapping.legacy_id, LegacyKeyMapping.target_id).where(
                LegacyKeyMapping.entity_kind == kind.value
            )
        )
        return {row.legacy_id: row.target_id for row in result}
