"""Structured logging configuration.

All logs go to stdout so the batch runner (or the container platform) can
capture them. JSON output carries a fixed set of fields (timestamp, level,
logger, service) plus whatever each call passes in ``extra``.

ERROR LOGGING REQUIREMENTS:
- Store connection errors with masked connection string and store name
- Slow queries (>100ms) at WARNING level
- Transaction failures with rollback context
- Schema migration start/end with version info
- Legacy key in every skipped-entity log
- Run abort at CRITICAL level
"""

import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from pythonjsonlogger import jsonlogger

from catalog_migration.core.config import get_settings

_PASSWORD_IN_URL = re.compile(r"(://[^:/@]+:)([^@]+)(@)")

# Libraries whose INFO output drowns the migration logs
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncpg")


class CatalogJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined]
    """JSON formatter stamping every record with the service name."""

    def __init__(self, *args: Any, service: str, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.service = service

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(UTC).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = self.service
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def mask_connection_string(conn_str: str | None) -> str:
    """Replace the password of a database URL with ****."""
    return _PASSWORD_IN_URL.sub(r"\1****\3", conn_str or "")


def setup_logging(level: str | None = None) -> None:
    """Route all logging to stdout.

    Args:
        level: Overrides the configured log level (e.g. ``--verbose``)
    """
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    if settings.log_format == "json":
        handler.setFormatter(
            CatalogJsonFormatter(
                "%(timestamp)s %(level)s %(name)s %(message)s",
                service=settings.app_name,
            )
        )
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel((level or settings.log_level).upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


class DatabaseLogger:
    """Store-level logging shared by the source and target catalogs."""

    def __init__(self) -> None:
        self.logger = get_logger("database")

    def connection_error(
        self, error: Exception, connection_string: str | None, store: str | None = None
    ) -> None:
        self.logger.error(
            "Database connection failed",
            extra={
                "store": store,
                "connection_string": mask_connection_string(connection_string),
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
        )

    def slow_query(
        self, query: str, duration_ms: float, table: str | None = None
    ) -> None:
        self.logger.warning(
            "Slow query detected",
            extra={
                "duration_ms": round(duration_ms, 2),
                "query": query[:500],
                "table": table,
            },
        )

    def transaction_failure(
        self, error: Exception, table: str | None = None, context: str | None = None
    ) -> None:
        """Log a rolled-back transaction with what it was doing."""
        self.logger.error(
            "Transaction failed, rolling back",
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
                "table": table,
                "rollback_context": context,
            },
        )

    def migration_start(self, version: str, description: str) -> None:
        """Log the start of an Alembic schema upgrade."""
        self.logger.info(
            "Applying schema revision",
            extra={"schema_revision": version, "description": description},
        )

    def migration_end(self, version: str, success: bool) -> None:
        self.logger.log(
            logging.INFO if success else logging.ERROR,
            "Schema revision applied" if success else "Schema revision failed",
            extra={"schema_revision": version, "success": success},
        )


# Singleton database logger
db_logger = DatabaseLogger()


class MigrationLogger:
    """Logger for catalog migration runs.

    Logs run start/end and state transitions at INFO level.
    Logs every skipped entity with its legacy key at WARNING level.
    Logs run aborts at CRITICAL level.
    """

    def __init__(self) -> None:
        self.logger = get_logger("catalog_migration")

    def run_start(self, run_id: str, scope: str, dry_run: bool, resume: bool) -> None:
        self.logger.info(
            "Catalog migration started",
            extra={
                "run_id": run_id,
                "scope": scope,
                "dry_run": dry_run,
                "resume": resume,
            },
        )

    def run_end(
        self,
        run_id: str,
        state: str,
        counts: dict[str, int],
        duration_ms: float,
    ) -> None:
        level = logging.INFO if state == "done" else logging.ERROR
        self.logger.log(
            level,
            "Catalog migration finished",
            extra={
                "run_id": run_id,
                "state": state,
                "duration_ms": round(duration_ms, 2),
                **counts,
            },
        )

    def state_change(self, run_id: str, previous_state: str, new_state: str) -> None:
        self.logger.info(
            "Migration state changed",
            extra={
                "run_id": run_id,
                "previous_state": previous_state,
                "new_state": new_state,
            },
        )

    def run_aborted(self, run_id: str, reason: str) -> None:
        self.logger.critical(
            "Catalog migration aborted",
            extra={"run_id": run_id, "reason": reason},
        )

    def lesson_start(self, lesson_id: int) -> None:
        self.logger.debug("Migrating lesson", extra={"lesson_id": lesson_id})

    def lesson_complete(
        self,
        lesson_id: int,
        outcome: str,
        duration_ms: float,
        skipped: int = 0,
    ) -> None:
        level = logging.INFO if outcome in ("migrated", "skipped") else logging.WARNING
        self.logger.log(
            level,
            f"Lesson {outcome}",
            extra={
                "lesson_id": lesson_id,
                "outcome": outcome,
                "skipped_entities": skipped,
                "duration_ms": round(duration_ms, 2),
            },
        )

    def entity_skipped(
        self, legacy_key: str, reason: str, descendants: int = 0
    ) -> None:
        self.logger.warning(
            "Entity skipped",
            extra={
                "legacy_key": legacy_key,
                "reason": reason,
                "descendants_skipped": descendants,
            },
        )

    def structural_issue(self, legacy_key: str, reason: str) -> None:
        self.logger.warning(
            "Structural error in legacy catalog",
            extra={"legacy_key": legacy_key, "reason": reason},
        )

    def dangling_sequence_retry(self, legacy_key: str, sequence_id: int) -> None:
        self.logger.warning(
            "Dangling translation sequence, allocating a fresh one",
            extra={"legacy_key": legacy_key, "sequence_id": sequence_id},
        )


# Singleton migration logger
migration_logger = MigrationLogger()
