"""Post-run data integrity validation of the target catalog.

Validates the target catalog after a migration run:
- Translation references (collection names, content unit descriptions)
  point at existing sequence ids
- Hierarchy integrity (every content unit belongs to a collection, every
  file's content unit exists)
- Every legacy key mapping points at an existing target row
- The translation counter is not behind the highest stored sequence id
- Public uids are well formed

ERROR LOGGING REQUIREMENTS:
- Log query execution time for slow queries (>100ms) at WARNING level
- Log transaction failures with rollback context
- Include table/model name in all database error logs
"""

import time
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.logging import db_logger, get_logger
from catalog_migration.schemas.legacy_key import EntityKind

logger = get_logger("data_integrity")

# Validation thresholds
SLOW_VALIDATION_THRESHOLD_MS = 100.0

# Target table of each kind of legacy key mapping
MAPPING_TARGET_TABLES = {
    EntityKind.VIRTUAL_LESSON: "collections",
    EntityKind.CONTAINER: "content_units",
    EntityKind.FILE_ASSET: "files",
}


@dataclass
class ValidationResult:
    """Result of a single validation check."""

    check_name: str
    table_name: str
    success: bool
    records_checked: int = 0
    issues_found: int = 0
    duration_ms: float = 0.0
    details: list[str] = field(default_factory=list)


@dataclass
class IntegrityReport:
    """Complete integrity validation report."""

    success: bool
    total_checks: int
    passed_checks: int
    failed_checks: int
    total_issues: int
    total_duration_ms: float
    results: list[ValidationResult] = field(default_factory=list)

    def failures(self) -> list[str]:
        """One line per failed check, for run summaries."""
        return [
            f"{r.check_name} ({r.table_name}): {r.issues_found} issue(s)"
            + (f", e.g. {r.details[0]}" if r.details else "")
            for r in self.results
            if not r.success
        ]


class DataIntegrityValidator:
    """Validates target catalog integrity after a migration run."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def validate_all(self) -> IntegrityReport:
        """Run all integrity validations and return a report.

        Returns:
            IntegrityReport with all validation results
        """
        logger.info("Starting post-migration data integrity validation")
        start_time = time.monotonic()

        results: list[ValidationResult] = []

        # Translation references
        results.append(await self._validate_collection_names())
        results.append(await self._validate_content_unit_descriptions())

        # Hierarchy
        results.append(await self._validate_content_unit_collections())
        results.append(await self._validate_files_content_unit_fk())

        # Migration state
        for kind, table_name in MAPPING_TARGET_TABLES.items():
            results.append(await self._validate_legacy_key_targets(kind, table_name))
        results.append(await self._validate_sequence_counter())

        # Data format
        for table_name in ("collections", "content_units", "files"):
            results.append(await self._validate_uid_format(table_name))

        total_duration_ms = (time.monotonic() - start_time) * 1000
        passed_checks = sum(1 for r in results if r.success)
        failed_checks = sum(1 for r in results if not r.success)
        total_issues = sum(r.issues_found for r in results)

        report = IntegrityReport(
            success=failed_checks == 0,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            total_issues=total_issues,
            total_duration_ms=total_duration_ms,
            results=results,
        )

        if report.success:
            logger.info(
                "Data integrity validation completed successfully",
                extra={
                    "total_checks": report.total_checks,
                    "passed_checks": report.passed_checks,
                    "duration_ms": round(report.total_duration_ms, 2),
                },
            )
        else:
            logger.error(
                "Data integrity validation failed",
                extra={
                    "total_checks": report.total_checks,
                    "passed_checks": report.passed_checks,
                    "failed_checks": report.failed_checks,
                    "total_issues": report.total_issues,
                    "duration_ms": round(report.total_duration_ms, 2),
                },
            )

        return report

    async def _run_check(
        self,
        check_name: str,
        table_name: str,
        query: str,
        params: dict[str, Any] | None = None,
    ) -> ValidationResult:
        """Run a single validation check with timing and error handling.

        Args:
            check_name: Name of the validation check
            table_name: Table being validated
            query: SQL query that returns rows with issues
            params: Optional query parameters

        Returns:
            ValidationResult with check outcome
        """
        start_time = time.monotonic()

        try:
            result = await self.session.execute(text(query), params or {})
            rows = result.fetchall()

            duration_ms = (time.monotonic() - start_time) * 1000

            if duration_ms > SLOW_VALIDATION_THRESHOLD_MS:
                db_logger.slow_query(
                    query=f"integrity_check:{check_name}",
                    duration_ms=duration_ms,
                    table=table_name,
                )

            issues_found = len(rows)
            details = [str(tuple(row)) for row in rows[:10]]

            if issues_found > 0:
                logger.warning(
                    f"Integrity check failed: {check_name}",
                    extra={
                        "check_name": check_name,
                        "table": table_name,
                        "issues_found": issues_found,
                        "sample_issues": details[:3],
                        "duration_ms": round(duration_ms, 2),
                    },
                )

            return ValidationResult(
                check_name=check_name,
                table_name=table_name,
                success=issues_found == 0,
                issues_found=issues_found,
                duration_ms=duration_ms,
                details=details,
            )

        except SQLAlchemyError as e:
            duration_ms = (time.monotonic() - start_time) * 1000
            db_logger.transaction_failure(
                e,
                table=table_name,
                context=f"Integrity check: {check_name}",
            )
            return ValidationResult(
                check_name=check_name,
                table_name=table_name,
                success=False,
                issues_found=1,
                duration_ms=duration_ms,
                details=[f"Query error: {e!s}"],
            )

    async def _count_records(self, table_name: str) -> int:
        """Count total records in a table."""
        try:
            result = await self.session.execute(
                text(f"SELECT COUNT(*) FROM {table_name}")  # noqa: S608
            )
            row = result.fetchone()
            return row[0] if row else 0
        except SQLAlchemyError as e:
            logger.warning(
                f"Could not count records in {table_name}: {e}",
                extra={"table": table_name, "error": str(e)},
            )
            return 0

    # =========================================================================
    # Translation Reference Checks
    # =========================================================================

    async def _validate_collection_names(self) -> ValidationResult:
        """Validate that every collection name has at least one translation."""
        query = """
            SELECT c.id, c.name_id
            FROM collections c
            WHERE NOT EXISTS (
                SELECT 1 FROM string_translations st WHERE st.id = c.name_id
            )
        """
        result = await self._run_check(
            check_name="collections_name_translation",
            table_name="collections",
            query=query,
        )
        result.records_checked = await self._count_records("collections")
        return result

    async def _validate_content_unit_descriptions(self) -> ValidationResult:
        """Validate that set description references have translations."""
        query = """
            SELECT cu.id, cu.description_id
            FROM content_units cu
            WHERE cu.description_id IS NOT NULL
              AND NOT EXISTS (
                SELECT 1 FROM string_translations st WHERE st.id = cu.description_id
              )
        """
        result = await self._run_check(
            check_name="content_units_description_translation",
            table_name="content_units",
            query=query,
        )
        result.records_checked = await self._count_records("content_units")
        return result

    # =========================================================================
    # Hierarchy Checks
    # =========================================================================

    async def _validate_content_unit_collections(self) -> ValidationResult:
        """Validate that every content unit belongs to a collection."""
        query = """
            SELECT cu.id, cu.uid
            FROM content_units cu
            LEFT JOIN collections_content_units ccu ON ccu.content_unit_id = cu.id
            WHERE ccu.content_unit_id IS NULL
        """
        result = await self._run_check(
            check_name="content_units_collection_link",
            table_name="collections_content_units",
            query=query,
        )
        result.records_checked = await self._count_records("content_units")
        return result

    async def _validate_files_content_unit_fk(self) -> ValidationResult:
        """Validate that every file references an existing content unit."""
        query = """
            SELECT f.id, f.content_unit_id
            FROM files f
            LEFT JOIN content_units cu ON f.content_unit_id = cu.id
            WHERE cu.id IS NULL
        """
        result = await self._run_check(
            check_name="files_content_unit_fk",
            table_name="files",
            query=query,
        )
        result.records_checked = await self._count_records("files")
        return result

    # =========================================================================
    # Migration State Checks
    # =========================================================================

    async def _validate_legacy_key_targets(
        self, kind: EntityKind, table_name: str
    ) -> ValidationResult:
        """Validate that legacy key mappings of one kind point at existing rows."""
        query = f"""
            SELECT m.legacy_id, m.target_id
            FROM legacy_key_mappings m
            LEFT JOIN {table_name} t ON m.target_id = t.id
            WHERE m.entity_kind = :kind AND t.id IS NULL
        """  # noqa: S608
        result = await self._run_check(
            check_name=f"legacy_key_mappings_{kind.value}_target",
            table_name="legacy_key_mappings",
            query=query,
            params={"kind": kind.value},
        )
        result.records_checked = await self._count_records(table_name)
        return result

    async def _validate_sequence_counter(self) -> ValidationResult:
        """Validate that the counter is not behind the highest stored sequence id."""
        query = """
            SELECT ts.name, ts.last_value, MAX(st.id)
            FROM translation_sequences ts, string_translations st
            GROUP BY ts.name, ts.last_value
            HAVING MAX(st.id) > ts.last_value
        """
        result = await self._run_check(
            check_name="translation_sequence_counter",
            table_name="translation_sequences",
            query=query,
        )
        result.records_checked = await self._count_records("translation_sequences")
        return result

    # =========================================================================
    # Data Format Checks
    # =========================================================================

    async def _validate_uid_format(self, table_name: str) -> ValidationResult:
        """Validate that public uids are 8 characters long."""
        query = f"""
            SELECT id, uid
            FROM {table_name}
            WHERE uid IS NULL OR LENGTH(uid) <> 8
        """  # noqa: S608
        result = await self._run_check(
            check_name=f"{table_name}_uid_format",
            table_name=table_name,
            query=query,
        )
        result.records_checked = await self._count_records(table_name)
        return result


async def validate_data_integrity(session: AsyncSession) -> IntegrityReport:
    """Run data integrity validation.

    Args:
        session: AsyncSession for database operations

    Returns:
        IntegrityReport with all validation results
    """
    validator = DataIntegrityValidator(session)
    return await validator.validate_all()
