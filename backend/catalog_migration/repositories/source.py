"""LegacyCatalogReader: read-only traversal of the legacy kmedia catalog.

Exposes the lesson -> container -> file asset tree as plain nested
dataclasses built from explicit queries. Every query runs in a short-lived
session that is rolled back, so the legacy store is never written to.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters
- Include legacy ids in all logs
- Log structural errors (missing parents) with the legacy key
- Add timing logs for operations >1 second
"""

import time
from collections import defaultdict
from collections.abc import AsyncGenerator, AsyncIterator, Iterable
from contextlib import asynccontextmanager

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from catalog_migration.core.logging import db_logger, get_logger
from catalog_migration.models.legacy import (
    Container,
    ContainerDescription,
    FileAsset,
    FileAssetDescription,
    VirtualLesson,
)
from catalog_migration.schemas.legacy_key import LegacyKey
from catalog_migration.schemas.source import (
    ContainerNode,
    FileAssetNode,
    LegacyNode,
    LessonNode,
    LessonRef,
    StructuralIssue,
)
from catalog_migration.core.errors import StructuralError

logger = get_logger(__name__)


def _clean_text(value: str | None) -> str | None:
    """Blank legacy texts count as missing."""
    if value is None:
        return None
    value = value.strip()
    return value or None


class LegacyCatalogReader:
    """Reads lessons and their subtrees from the legacy catalog."""

    SLOW_OPERATION_THRESHOLD_MS = 1000  # 1 second

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        languages: Iterable[str],
        page_size: int = 100,
    ) -> None:
        """Initialize the reader.

        Args:
            session_factory: Session factory bound to the legacy store
            languages: Language codes whose descriptions are resolved
            page_size: Lessons fetched per enumeration query
        """
        self._session_factory = session_factory
        self.languages = tuple(languages)
        self.page_size = page_size

    @asynccontextmanager
    async def _read_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self._session_factory() as session:
            try:
                yield session
            finally:
                await session.rollback()

    async def iter_lessons(self, lesson_id: int | None = None) -> AsyncIterator[LessonRef]:
        """Lazily enumerate lessons in ascending id order.

        Args:
            lesson_id: Restrict the enumeration to a single lesson

        Yields:
            LessonRef for every lesson in scope

        Raises:
            StructuralError: If the requested lesson does not exist
        """
        if lesson_id is not None:
            async with self._read_session() as session:
                row = (
                    await session.execute(
                        select(VirtualLesson.id, VirtualLesson.film_date).where(
                            VirtualLesson.id == lesson_id
                        )
                    )
                ).first()
            if row is None:
                raise StructuralError(
                    LegacyKey.lesson(lesson_id), "virtual lesson not found"
                )
            yield LessonRef(id=row.id, film_date=row.film_date)
            return

        last_id: int | None = None
        while True:
            stmt = (
                select(VirtualLesson.id, VirtualLesson.film_date)
                .order_by(VirtualLesson.id)
                .limit(self.page_size)
            )
            if last_id is not None:
                stmt = stmt.where(VirtualLesson.id > last_id)

            async with self._read_session() as session:
                rows = (await session.execute(stmt)).all()

            logger.debug(
                "Fetched lesson page",
                extra={"after_id": last_id, "count": len(rows)},
            )
            for row in rows:
                yield LessonRef(id=row.id, film_date=row.film_date)

            if len(rows) < self.page_size:
                return
            last_id = rows[-1].id

    async def load_lesson(self, lesson_id: int) -> LessonNode:
        """Load a lesson with its containers, file assets and descriptions.

        Args:
            lesson_id: Legacy virtual lesson id

        Returns:
            LessonNode holding the whole subtree

        Raises:
            StructuralError: If the lesson does not exist
        """
        start_time = time.monotonic()
        logger.debug("Loading lesson subtree", extra={"lesson_id": lesson_id})

        async with self._read_session() as session:
            lesson = await session.get(VirtualLesson, lesson_id)
            if lesson is None:
                raise StructuralError(
                    LegacyKey.lesson(lesson_id), "virtual lesson not found"
                )

            containers = list(
                (
                    await session.execute(
                        select(Container)
                        .where(Container.virtual_lesson_id == lesson_id)
                        .order_by(Container.id)
                    )
                )
                .scalars()
                .all()
            )
            container_ids = [c.id for c in containers]

            assets: list[FileAsset] = []
            container_descs: dict[int, dict[str, str]] = defaultdict(dict)
            asset_descs: dict[int, dict[str, str]] = defaultdict(dict)

            if container_ids:
                assets = list(
                    (
                        await session.execute(
                            select(FileAsset)
                            .where(FileAsset.container_id.in_(container_ids))
                            .order_by(FileAsset.id)
                        )
                    )
                    .scalars()
                    .all()
                )
                for row in (
                    await session.execute(
                        select(ContainerDescription).where(
                            ContainerDescription.container_id.in_(container_ids),
                            ContainerDescription.lang_id.in_(self.languages),
                        )
                    )
                ).scalars():
                    text = _clean_text(row.container_desc)
                    if text is not None:
                        container_descs[row.container_id][row.lang_id] = text

            asset_ids = [a.id for a in assets]
            if asset_ids:
                for row in (
                    await session.execute(
                        select(FileAssetDescription).where(
                            FileAssetDescription.file_id.in_(asset_ids),
                            FileAssetDescription.lang_id.in_(self.languages),
                        )
                    )
                ).scalars():
                    text = _clean_text(row.filedesc)
                    if text is not None:
                        asset_descs[row.file_id][row.lang_id] = text

            # Build nodes before the rollback expires the loaded rows
            assets_by_container: dict[int, list[FileAssetNode]] = defaultdict(list)
            for asset in assets:
                assert asset.container_id is not None
                assets_by_container[asset.container_id].append(
                    FileAssetNode(
                        id=asset.id,
                        container_id=asset.container_id,
                        name=asset.name,
                        uid=asset.uid,
                        language=asset.lang_id,
                        asset_type=asset.asset_type,
                        size=asset.size,
                        created_at=asset.created_at,
                        descriptions=dict(asset_descs.get(asset.id, {})),
                    )
                )

            # Legacy positions may be missing; those containers go last
            containers.sort(key=lambda c: (c.position is None, c.position or 0, c.id))
            node = LessonNode(
                id=lesson.id,
                film_date=lesson.film_date,
                created_at=lesson.created_at,
                containers=tuple(
                    ContainerNode(
                        id=c.id,
                        lesson_id=lesson.id,
                        name=c.name,
                        film_date=c.filmdate,
                        language=c.lang_id,
                        position=c.position,
                        created_at=c.created_at,
                        descriptions=dict(container_descs.get(c.id, {})),
                        file_assets=tuple(assets_by_container.get(c.id, [])),
                    )
                    for c in containers
                ),
            )

        duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            "Lesson subtree loaded",
            extra={
                "lesson_id": lesson_id,
                "containers": len(node.containers),
                "file_assets": len(assets),
                "duration_ms": round(duration_ms, 2),
            },
        )
        if duration_ms > self.SLOW_OPERATION_THRESHOLD_MS:
            db_logger.slow_query(
                query=f"load lesson subtree id={lesson_id}",
                duration_ms=duration_ms,
                table="virtual_lessons",
            )
        return node

    def description(self, node: LegacyNode, language: str) -> str | None:
        """Localized description of a node, or None when absent."""
        return node.descriptions.get(language)

    def descriptions(
        self, node: LegacyNode, languages: Iterable[str] | None = None
    ) -> dict[str, str]:
        """Resolve every available description of a node.

        Languages without a description are left out rather than mapped
        to an empty string.
        """
        result: dict[str, str] = {}
        for language in languages if languages is not None else self.languages:
            text = self.description(node, language)
            if text is not None:
                result[language] = text
        return result

    async def find_orphans(self) -> list[StructuralIssue]:
        """Find containers and file assets whose parent does not exist."""
        issues: list[StructuralIssue] = []
        async with self._read_session() as session:
            container_rows = (
                await session.execute(
                    select(Container.id, Container.virtual_lesson_id)
                    .outerjoin(
                        VirtualLesson, VirtualLesson.id == Container.virtual_lesson_id
                    )
                    .where(VirtualLesson.id.is_(None))
                    .order_by(Container.id)
                )
            ).all()
            asset_rows = (
                await session.execute(
                    select(FileAsset.id, FileAsset.container_id)
                    .outerjoin(Container, Container.id == FileAsset.container_id)
                    .where(Container.id.is_(None))
                    .order_by(FileAsset.id)
                )
            ).all()

        for row in container_rows:
            issues.append(
                StructuralIssue(
                    key=LegacyKey.container(row.id),
                    reason=f"parent virtual lesson {row.virtual_lesson_id} not found",
                )
            )
        for row in asset_rows:
            issues.append(
                StructuralIssue(
                    key=LegacyKey.file_asset(row.id),
                    reason=f"parent container {row.container_id} not found",
                )
            )

        if issues:
            logger.warning(
                "Orphaned legacy rows found",
                extra={
                    "containers": len(container_rows),
                    "file_assets": len(asset_rows),
                },
            )
        return issues
