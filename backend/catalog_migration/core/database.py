"""Database configuration and session management.

Features:
- Async SQLAlchemy with connection pooling
- Separate declarative bases for the target catalog and the legacy catalog
- Slow query logging (>100ms at WARNING)
- Connection error logging with masked strings
- Transaction failure logging with rollback context
- Scoped acquisition/release of both stores for a migration run
"""

import re
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from sqlalchemy import JSON, BigInteger, Integer, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from catalog_migration.core.config import Settings, get_settings
from catalog_migration.core.logging import db_logger, get_logger

logger = get_logger(__name__)

# Portable column types: BIGSERIAL/JSONB on PostgreSQL, INTEGER/JSON on SQLite
BigIntId = BigInteger().with_variant(Integer(), "sqlite")
JSONType = JSONB().with_variant(JSON(), "sqlite")


class Base(DeclarativeBase):
    """Base class for target catalog (MDB) models."""

    pass


class LegacyBase(DeclarativeBase):
    """Base class for legacy catalog (kmedia) models. Never written to."""

    pass


def to_async_url(url: str) -> str:
    """Convert postgres:// URLs to the asyncpg driver URL."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


class DatabaseManager:
    """Manages connections and sessions for one database."""

    def __init__(self, name: str = "target") -> None:
        self.name = name
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._url: str = ""

    @property
    def engine(self) -> AsyncEngine:
        """Get the database engine."""
        if self._engine is None:
            raise RuntimeError(
                f"Database '{self.name}' not initialized. Call init_db() first."
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get the session factory."""
        if self._session_factory is None:
            raise RuntimeError(
                f"Database '{self.name}' not initialized. Call init_db() first."
            )
        return self._session_factory

    def init_db(self, url: str | None = None, settings: Settings | None = None) -> None:
        """Initialize database engine and session factory.

        Args:
            url: Connection string; defaults to the configured target database
            settings: Settings to read pool configuration from
        """
        settings = settings or get_settings()
        db_url = to_async_url(str(url or settings.database_url))
        self._url = db_url

        engine_kwargs: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.debug}
        if db_url.startswith("postgresql+asyncpg://"):
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                connect_args={
                    "timeout": settings.db_connect_timeout,
                    "command_timeout": settings.db_command_timeout,
                    **({"ssl": "require"} if settings.environment == "production" else {}),
                },
            )

        try:
            self._engine = create_async_engine(db_url, **engine_kwargs)
            self._session_factory = async_sessionmaker(
                bind=self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info(
                "Database engine initialized successfully",
                extra={"database": self.name},
            )
        except Exception as e:
            db_logger.connection_error(e, db_url, store=self.name)
            raise

    async def close(self) -> None:
        """Close database connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database connections closed", extra={"database": self.name})

    async def check_connection(self) -> bool:
        """Check if database connection is healthy."""
        try:
            async with self.session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            db_logger.connection_error(e, self._url, store=self.name)
            return False


# Global target database manager, used by the HTTP API only
db_manager = DatabaseManager("target")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting target database sessions.

    Usage:
        @router.get("/files")
        async def search_files(session: AsyncSession = Depends(get_session)):
            ...
    """
    settings = get_settings()
    threshold_ms = settings.db_slow_query_threshold_ms

    async with db_manager.session_factory() as session:
        start_time = time.monotonic()
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            db_logger.transaction_failure(
                e,
                table=_extract_table_from_error(e),
                context="Session rollback after SQLAlchemy error",
            )
            raise
        finally:
            duration_ms = (time.monotonic() - start_time) * 1000
            if duration_ms > threshold_ms:
                db_logger.slow_query(
                    query="session_transaction",
                    duration_ms=duration_ms,
                )


@asynccontextmanager
async def transaction(
    session: AsyncSession, table: str | None = None
) -> AsyncGenerator[AsyncSession, None]:
    """Context manager for explicit transaction handling.

    Usage:
        async with transaction(session, table="migration_checkpoints") as txn:
            # perform operations
            ...
    """
    settings = get_settings()
    threshold_ms = settings.db_slow_query_threshold_ms
    start_time = time.monotonic()

    try:
        yield session
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        db_logger.transaction_failure(
            e,
            table=table,
            context="Explicit transaction rollback",
        )
        raise
    finally:
        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > threshold_ms:
            db_logger.slow_query(
                query=f"transaction on {table or 'unknown'}",
                duration_ms=duration_ms,
                table=table,
            )


@dataclass
class MigrationContext:
    """Everything a migration run needs, constructed once per run."""

    settings: Settings
    source: DatabaseManager
    target: DatabaseManager


@asynccontextmanager
async def open_migration_context(
    settings: Settings | None = None,
) -> AsyncGenerator[MigrationContext, None]:
    """Acquire both stores for a run and release them on every exit path."""
    settings = settings or get_settings()
    if settings.source_database_url is None:
        raise RuntimeError("SOURCE_DATABASE_URL is not configured")

    source = DatabaseManager("source")
    target = DatabaseManager("target")
    try:
        source.init_db(str(settings.source_database_url), settings)
        target.init_db(str(settings.database_url), settings)
        yield MigrationContext(settings=settings, source=source, target=target)
    finally:
        await source.close()
        await target.close()


def _extract_table_from_error(error: Exception) -> str | None:
    """Try to extract table name from SQLAlchemy error."""
    error_str = str(error)
    patterns = [
        r'relation "([^"]+)"',
        r"no such table: (\w+)",
        r"table '([^']+)'",
        r'INSERT INTO "?([^\s"]+)"?',
        r'UPDATE "?([^\s"]+)"?',
    ]
    for pattern in patterns:
        match = re.search(pattern, error_str, re.IGNORECASE)
        if match:
            return match.group(1)
    return None
