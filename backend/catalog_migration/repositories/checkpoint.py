"""CheckpointRepository: durable per-lesson migration progress."""

from enum import StrEnum

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.logging import get_logger
from catalog_migration.models.migration_state import MigrationCheckpoint

logger = get_logger(__name__)


class CheckpointStatus(StrEnum):
    MIGRATED = "migrated"
    PARTIAL = "partial"
    FAILED = "failed"


class CheckpointRepository:
    """Repository for lesson checkpoints."""

    TABLE_NAME = "migration_checkpoints"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def mark(
        self,
        lesson_id: int,
        status: CheckpointStatus,
        run_id: str,
        error: str | None = None,
    ) -> MigrationCheckpoint:
        """Write the outcome of a lesson, replacing any earlier checkpoint."""
        checkpoint = await self.session.get(MigrationCheckpoint, lesson_id)
        if checkpoint is None:
            checkpoint = MigrationCheckpoint(lesson_id=lesson_id)
            self.session.add(checkpoint)
        previous = checkpoint.status
        checkpoint.status = status.value
        checkpoint.run_id = run_id
        checkpoint.error = error
        await self.session.flush()

        if previous != status.value:
            logger.debug(
                "Checkpoint status changed",
                extra={
                    "lesson_id": lesson_id,
                    "previous_status": previous,
                    "new_status": status.value,
                },
            )
        return checkpoint

    async def get(self, lesson_id: int) -> MigrationCheckpoint | None:
        return await self.session.get(MigrationCheckpoint, lesson_id)

    async def completed_lesson_ids(self) -> set[int]:
        """Ids of lessons checkpointed as fully migrated."""
        result = await self.session.execute(
            select(MigrationCheckpoint.lesson_id).where(
                MigrationCheckpoint.status == CheckpointStatus.MIGRATED.value
            )
        )
        return set(result.scalars().all())
