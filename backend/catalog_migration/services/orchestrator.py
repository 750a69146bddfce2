"""MigrationOrchestrator: drives a resumable migration run.

Run states:
    START -> ENUMERATE_LESSONS -> MIGRATING -> DONE | ABORTED

Per lesson: load subtree -> map + upsert lesson -> containers -> file
assets -> checkpoint, all in one target transaction. Each container and
each file asset gets its own savepoint, so a failed entity rolls back only
itself and its descendants. The checkpoint is committed together with the
lesson's data, so a crash never leaves a checkpoint without its rows.

Failure handling:
- Structural, referential and dangling-sequence errors cost the entity
  (or the lesson) and the run continues
- A lesson exceeding lesson_timeout_seconds is recorded as failed
- DurabilityError or a lost store connection aborts the run; no further
  lessons are started
- Any other unexpected error also aborts the run; the report is still
  returned and names the lesson that raised it

ERROR LOGGING REQUIREMENTS:
- Log state transitions at INFO level
- Include lesson ids and legacy keys in all logs
- Log every skipped entity with its reason at WARNING level
- Log run aborts at CRITICAL level
- Add timing logs per lesson and per run
"""

import asyncio
import time
import uuid
from collections.abc import AsyncIterator, Iterable

from pydantic import ValidationError
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.database import MigrationContext, transaction
from catalog_migration.core.errors import (
    ENTITY_ERRORS,
    DurabilityError,
    StructuralError,
)
from catalog_migration.core.logging import get_logger, migration_logger
from catalog_migration.repositories.checkpoint import (
    CheckpointRepository,
    CheckpointStatus,
)
from catalog_migration.repositories.source import LegacyCatalogReader
from catalog_migration.schemas.legacy_key import EntityKind, LegacyKey
from catalog_migration.schemas.source import LessonNode, LessonRef
from catalog_migration.services.mapper import EntityMapper
from catalog_migration.services.report import (
    LessonOutcome,
    LessonResult,
    MigrationReport,
    RunState,
    SkippedEntity,
)
from catalog_migration.services.translation import TranslationSequenceAllocator
from catalog_migration.services.upsert import CatalogUpsertEngine, KeyedLock

logger = get_logger(__name__)

# Failures that cost one entity and its descendants
_SKIPPABLE = (*ENTITY_ERRORS, ValidationError)

STOP_REQUESTED = "stop requested"


class MigrationOrchestrator:
    """Migrates legacy lessons into the target catalog.

    Example usage:
        async with open_migration_context(settings) as context:
            orchestrator = MigrationOrchestrator(context)
            report = await orchestrator.run(resume=True)
            print(report.render_summary())
    """

    def __init__(
        self,
        context: MigrationContext,
        reader: LegacyCatalogReader | None = None,
        mapper: EntityMapper | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            context: Settings and both store managers for this run
            reader: Legacy catalog reader (built from the context if omitted)
            mapper: Entity mapper (built from the settings if omitted)
        """
        self.context = context
        self.settings = context.settings
        self.reader = reader or LegacyCatalogReader(
            context.source.session_factory,
            self.settings.migration_languages,
            page_size=self.settings.source_page_size,
        )
        self.mapper = mapper or EntityMapper(
            name_language=self.settings.collection_name_language,
            name_template=self.settings.collection_name_template,
        )
        self.locks = KeyedLock()
        self._stop_requested = False

    def request_stop(self) -> None:
        """End the run at the next lesson boundary."""
        if not self._stop_requested:
            logger.warning("Stop requested, finishing in-flight lessons")
        self._stop_requested = True

    async def run(
        self,
        lesson_id: int | None = None,
        resume: bool = False,
        dry_run: bool = False,
    ) -> MigrationReport:
        """Migrate one lesson or every lesson of the legacy catalog.

        Args:
            lesson_id: Restrict the run to a single legacy lesson
            resume: Skip lessons already checkpointed as migrated
            dry_run: Perform every read and write, then roll each lesson back

        Returns:
            MigrationReport; its exit_code reflects the run outcome
        """
        report = MigrationReport(
            run_id=str(uuid.uuid4()), dry_run=dry_run, resume=resume
        )
        migration_logger.run_start(
            report.run_id,
            scope=f"lesson {lesson_id}" if lesson_id is not None else "all",
            dry_run=dry_run,
            resume=resume,
        )

        try:
            self._transition(report, RunState.ENUMERATE_LESSONS)
            completed = await self._completed_lessons() if resume else set()
            if lesson_id is None:
                await self._record_orphans(report)

            self._transition(report, RunState.MIGRATING)
            await self._migrate_all(report, self.reader.iter_lessons(lesson_id), completed)
        except StructuralError as e:
            # Only a missing single lesson surfaces here
            migration_logger.structural_issue(str(e.legacy_key), e.message)
            report.lessons.append(
                LessonResult(
                    lesson_id=e.legacy_key.legacy_id,
                    outcome=LessonOutcome.FAILED,
                    error=str(e),
                )
            )
        except DurabilityError as e:
            self._abort(report, e.message)
        except (OperationalError, InterfaceError) as e:
            self._abort(report, f"store unavailable: {e}")
        except Exception as e:
            logger.critical(
                "Migration run failed",
                extra={
                    "run_id": report.run_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            self._abort(report, f"unexpected error: {type(e).__name__}: {e}")

        if report.state != RunState.ABORTED:
            self._transition(report, RunState.DONE)

        report.finish()
        migration_logger.run_end(
            report.run_id,
            state=report.state.value,
            counts=report.counts(),
            duration_ms=report.duration_ms,
        )
        return report

    async def _migrate_all(
        self,
        report: MigrationReport,
        lessons: AsyncIterator[LessonRef],
        completed: set[int],
    ) -> None:
        limit = self.settings.max_concurrent_lessons
        pending: set[asyncio.Task[LessonResult]] = set()
        lesson_ids: dict[asyncio.Task[LessonResult], int] = {}
        try:
            async for ref in lessons:
                if report.state == RunState.ABORTED:
                    break
                if self._stop_requested:
                    self._abort(report, STOP_REQUESTED)
                    break
                if ref.id in completed:
                    report.lessons.append(
                        LessonResult(lesson_id=ref.id, outcome=LessonOutcome.SKIPPED)
                    )
                    migration_logger.lesson_complete(
                        ref.id, LessonOutcome.SKIPPED.value, 0.0
                    )
                    continue

                task = asyncio.create_task(self._migrate_lesson(ref.id, report))
                lesson_ids[task] = ref.id
                pending.add(task)
                if len(pending) >= limit:
                    done, pending = await asyncio.wait(
                        pending, return_when=asyncio.FIRST_COMPLETED
                    )
                    self._collect(done, report, lesson_ids)
        finally:
            # In-flight lessons finish (and commit) before the run ends
            if pending:
                done, _ = await asyncio.wait(pending)
                self._collect(done, report, lesson_ids)

    def _collect(
        self,
        done: Iterable[asyncio.Task[LessonResult]],
        report: MigrationReport,
        lesson_ids: dict[asyncio.Task[LessonResult], int],
    ) -> None:
        """Record finished lessons; a lesson whose task raised counts as failed.

        Every task in done is recorded before the first unexpected error is
        re-raised.
        """
        unexpected: BaseException | None = None
        for task in sorted(done, key=lambda t: lesson_ids[t]):
            lesson_id = lesson_ids.pop(task)
            error = task.exception()
            if error is None:
                report.lessons.append(task.result())
                continue

            message = (
                error.message
                if isinstance(error, DurabilityError)
                else f"{type(error).__name__}: {error}"
            )
            report.lessons.append(
                LessonResult(
                    lesson_id=lesson_id, outcome=LessonOutcome.FAILED, error=message
                )
            )
            migration_logger.lesson_complete(lesson_id, LessonOutcome.FAILED.value, 0.0)
            if isinstance(error, DurabilityError):
                self._abort(report, error.message)
            elif unexpected is None:
                unexpected = error
        if unexpected is not None:
            raise unexpected

    async def _migrate_lesson(self, lesson_id: int, report: MigrationReport) -> LessonResult:
        result = LessonResult(lesson_id=lesson_id, outcome=LessonOutcome.MIGRATED)
        start_time = time.monotonic()
        migration_logger.lesson_start(lesson_id)

        try:
            async with asyncio.timeout(self.settings.lesson_timeout_seconds):
                lesson = await self.reader.load_lesson(lesson_id)
                async with self.context.target.session_factory() as session:
                    await self._write_lesson(session, lesson, result)
                    status = (
                        CheckpointStatus.PARTIAL
                        if result.skipped
                        else CheckpointStatus.MIGRATED
                    )
                    result.outcome = LessonOutcome(status.value)
                    await CheckpointRepository(session).mark(
                        lesson_id, status, report.run_id
                    )
                    if report.dry_run:
                        await session.rollback()
                    else:
                        await session.commit()
        except DurabilityError:
            raise
        except (OperationalError, InterfaceError) as e:
            raise DurabilityError(f"target store unavailable: {e}") from e
        except TimeoutError:
            await self._fail(
                result,
                report,
                f"timed out after {self.settings.lesson_timeout_seconds}s",
            )
        except _SKIPPABLE as e:
            await self._fail(result, report, str(e))
        except SQLAlchemyError as e:
            logger.error(
                "Lesson write failed",
                extra={
                    "lesson_id": lesson_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            await self._fail(result, report, f"{type(e).__name__}: {e}")

        result.duration_ms = (time.monotonic() - start_time) * 1000
        migration_logger.lesson_complete(
            lesson_id,
            result.outcome.value,
            result.duration_ms,
            skipped=len(result.skipped),
        )
        return result

    async def _write_lesson(
        self, session: AsyncSession, lesson: LessonNode, result: LessonResult
    ) -> None:
        engine = CatalogUpsertEngine(
            session, TranslationSequenceAllocator(session), self.locks
        )

        upserted = await engine.upsert(
            self.mapper.map(lesson, self.reader.descriptions(lesson)), lesson.key
        )
        result.count(EntityKind.VIRTUAL_LESSON, upserted.created)

        for container in lesson.containers:
            try:
                async with session.begin_nested():
                    upserted = await engine.upsert(
                        self.mapper.map(container, self.reader.descriptions(container)),
                        container.key,
                    )
            except _SKIPPABLE as e:
                self._skip(result, container.key, e, len(container.file_assets))
                continue
            result.count(EntityKind.CONTAINER, upserted.created)

            for asset in container.file_assets:
                try:
                    async with session.begin_nested():
                        upserted = await engine.upsert(
                            self.mapper.map(asset, self.reader.descriptions(asset)),
                            asset.key,
                        )
                except _SKIPPABLE as e:
                    self._skip(result, asset.key, e)
                    continue
                result.count(EntityKind.FILE_ASSET, upserted.created)

    def _skip(
        self,
        result: LessonResult,
        key: LegacyKey,
        error: Exception,
        descendants: int = 0,
    ) -> None:
        reason = f"{type(error).__name__}: {error}"
        result.skip(str(key), reason, descendants)
        migration_logger.entity_skipped(str(key), reason, descendants)

    async def _fail(self, result: LessonResult, report: MigrationReport, error: str) -> None:
        """Record a failed lesson, durably unless this is a dry run."""
        result.outcome = LessonOutcome.FAILED
        result.error = error
        if report.dry_run:
            return
        try:
            async with (
                self.context.target.session_factory() as session,
                transaction(session, table=CheckpointRepository.TABLE_NAME),
            ):
                await CheckpointRepository(session).mark(
                    result.lesson_id, CheckpointStatus.FAILED, report.run_id, error
                )
        except (OperationalError, InterfaceError) as e:
            raise DurabilityError(f"cannot write checkpoint: {e}") from e

    async def _completed_lessons(self) -> set[int]:
        async with self.context.target.session_factory() as session:
            completed = await CheckpointRepository(session).completed_lesson_ids()
        logger.info("Resuming run", extra={"completed_lessons": len(completed)})
        return completed

    async def _record_orphans(self, report: MigrationReport) -> None:
        for issue in await self.reader.find_orphans():
            migration_logger.structural_issue(str(issue.key), issue.reason)
            report.structural_issues.append(SkippedEntity(str(issue.key), issue.reason))

    def _transition(self, report: MigrationReport, new_state: RunState) -> None:
        migration_logger.state_change(report.run_id, report.state.value, new_state.value)
        report.state = new_state

    def _abort(self, report: MigrationReport, reason: str) -> None:
        if report.state == RunState.ABORTED:
            return
        self._transition(report, RunState.ABORTED)
        report.abort_reason = reason
        migration_logger.run_aborted(report.run_id, reason)
