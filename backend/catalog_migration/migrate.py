"""Batch entrypoint: migrate the legacy kmedia catalog into MDB.

Usage:
    catalog-migrate                      # migrate every lesson
    catalog-migrate --lesson 1234        # migrate a single lesson
    catalog-migrate --resume             # skip lessons already migrated
    catalog-migrate --dry-run --verbose  # write nothing, log everything
    catalog-migrate --verify             # run integrity checks afterwards

Exit codes:
    0  every lesson migrated (or skipped) and verification passed
    1  at least one lesson failed, or verification failed
    2  the run was aborted
"""

import argparse
import asyncio
import signal
import sys
from collections.abc import Sequence

from catalog_migration.core.config import Settings, get_settings
from catalog_migration.core.data_integrity import DataIntegrityValidator
from catalog_migration.core.database import MigrationContext, open_migration_context
from catalog_migration.core.logging import get_logger, setup_logging
from catalog_migration.services.orchestrator import MigrationOrchestrator
from catalog_migration.services.report import EXIT_ABORTED, MigrationReport, RunState

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalog-migrate",
        description="Migrate the legacy kmedia catalog into the MDB catalog",
    )
    parser.add_argument("--lesson", type=int, help="Migrate a single legacy lesson id")
    parser.add_argument(
        "--resume", action="store_true", help="Skip lessons checkpointed as migrated"
    )
    parser.add_argument(
        "--dry-run", action="store_true", help="Roll every lesson back instead of committing"
    )
    parser.add_argument(
        "--verify", action="store_true", help="Run integrity checks after the migration"
    )
    parser.add_argument(
        "--concurrency", type=int, help="Lessons migrated concurrently (default: settings)"
    )
    parser.add_argument("--verbose", action="store_true", help="Debug-level logging")
    return parser


def _install_signal_handlers(orchestrator: MigrationOrchestrator) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, orchestrator.request_stop)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform or outside the main thread
            pass


async def execute(context: MigrationContext, args: argparse.Namespace) -> MigrationReport:
    """Run the migration (and the optional verification) against a context."""
    orchestrator = MigrationOrchestrator(context)
    _install_signal_handlers(orchestrator)

    report = await orchestrator.run(
        lesson_id=args.lesson, resume=args.resume, dry_run=args.dry_run
    )

    if args.verify and report.state == RunState.DONE:
        async with context.target.session_factory() as session:
            integrity = await DataIntegrityValidator(session).validate_all()
        report.verification_errors = integrity.failures()

    return report


async def run_migration(args: argparse.Namespace, settings: Settings) -> MigrationReport:
    async with open_migration_context(settings) as context:
        return await execute(context, args)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    settings = get_settings()
    if args.concurrency is not None:
        if args.concurrency < 1:
            logger.error("--concurrency must be at least 1")
            return EXIT_ABORTED
        settings = settings.model_copy(update={"max_concurrent_lessons": args.concurrency})

    try:
        report = asyncio.run(run_migration(args, settings))
    except RuntimeError as e:
        logger.critical("Migration could not start", extra={"error_message": str(e)})
        return EXIT_ABORTED

    print(report.render_summary())
    return report.exit_code


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
