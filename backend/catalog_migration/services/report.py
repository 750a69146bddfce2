"""Run and lesson outcome bookkeeping for a migration run."""

import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

from catalog_migration.schemas.legacy_key import EntityKind


class RunState(StrEnum):
    START = "start"
    ENUMERATE_LESSONS = "enumerate_lessons"
    MIGRATING = "migrating"
    DONE = "done"
    ABORTED = "aborted"


class LessonOutcome(StrEnum):
    MIGRATED = "migrated"
    PARTIAL = "partial"
    FAILED = "failed"
    SKIPPED = "skipped"


# Exit codes of the batch entrypoint
EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_ABORTED = 2


@dataclass(frozen=True)
class SkippedEntity:
    """An entity left out of the target, with the reason why."""

    legacy_key: str
    reason: str
    descendants: int = 0


@dataclass
class LessonResult:
    """Outcome of migrating one lesson."""

    lesson_id: int
    outcome: LessonOutcome
    created: dict[str, int] = field(default_factory=dict)
    updated: dict[str, int] = field(default_factory=dict)
    skipped: list[SkippedEntity] = field(default_factory=list)
    error: str | None = None
    duration_ms: float = 0.0

    def count(self, kind: EntityKind, created: bool) -> None:
        bucket = self.created if created else self.updated
        bucket[kind.value] = bucket.get(kind.value, 0) + 1

    def skip(self, legacy_key: str, reason: str, descendants: int = 0) -> None:
        self.skipped.append(SkippedEntity(legacy_key, reason, descendants))


@dataclass
class MigrationReport:
    """Summary of a whole migration run."""

    run_id: str
    dry_run: bool = False
    resume: bool = False
    state: RunState = RunState.START
    abort_reason: str | None = None
    lessons: list[LessonResult] = field(default_factory=list)
    structural_issues: list[SkippedEntity] = field(default_factory=list)
    verification_errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    _started: float = field(default_factory=time.monotonic, repr=False)
    _finished: float | None = field(default=None, repr=False)

    def finish(self) -> None:
        """Stamp the end of the run; the duration is frozen from here on."""
        self.completed_at = datetime.now(UTC)
        self._finished = time.monotonic()

    @property
    def duration_ms(self) -> float:
        end = self._finished if self._finished is not None else time.monotonic()
        return (end - self._started) * 1000

    def lessons_with(self, outcome: LessonOutcome) -> list[LessonResult]:
        return [lesson for lesson in self.lessons if lesson.outcome == outcome]

    def counts(self) -> dict[str, int]:
        counts = {outcome.value: 0 for outcome in LessonOutcome}
        for lesson in self.lessons:
            counts[lesson.outcome.value] += 1
        counts["structural_issues"] = len(self.structural_issues)
        return counts

    def totals(self, created: bool) -> dict[str, int]:
        totals = {kind.value: 0 for kind in EntityKind}
        for lesson in self.lessons:
            for kind, count in (lesson.created if created else lesson.updated).items():
                totals[kind] += count
        return totals

    @property
    def exit_code(self) -> int:
        if self.state == RunState.ABORTED:
            return EXIT_ABORTED
        if self.lessons_with(LessonOutcome.FAILED) or self.verification_errors:
            return EXIT_FAILURES
        return EXIT_OK

    def render_summary(self) -> str:
        mode = "[DRY-RUN]" if self.dry_run else "[LIVE]"
        lines = [
            "=" * 60,
            f"  Catalog Migration Summary  {mode}",
            "=" * 60,
            f"  Run:    {self.run_id}",
            f"  State:  {self.state.value}",
        ]
        if self.abort_reason:
            lines.append(f"  Reason: {self.abort_reason}")

        lines.append("")
        for outcome, count in self.counts().items():
            lines.append(f"    {outcome:20s} {count:>6}")

        created = self.totals(created=True)
        updated = self.totals(created=False)
        lines.append("")
        for kind in EntityKind:
            lines.append(
                f"    {kind.value:20s}  created={created[kind.value]:>5}"
                f"  updated={updated[kind.value]:>5}"
            )

        for lesson in self.lessons:
            if lesson.outcome in (LessonOutcome.FAILED, LessonOutcome.PARTIAL):
                lines.append(f"\n  Lesson {lesson.lesson_id}: {lesson.outcome.value}")
                if lesson.error:
                    lines.append(f"      - {lesson.error}")
                for skipped in lesson.skipped:
                    lines.append(f"      - {skipped.legacy_key}: {skipped.reason}")

        if self.structural_issues:
            lines.append(f"\n  Structural issues: {len(self.structural_issues)}")
            for issue in self.structural_issues:
                lines.append(f"      - {issue.legacy_key}: {issue.reason}")

        if self.verification_errors:
            lines.append(f"\n  Verification FAILED: {len(self.verification_errors)}")
            for error in self.verification_errors:
                lines.append(f"      - {error}")

        lines.append(f"\n  Elapsed: {self.duration_ms / 1000:.1f}s")
        lines.append("=" * 60)
        return "\n".join(lines)
