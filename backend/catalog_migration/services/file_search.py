"""File search service for the admin file listing.

Matches target catalog files by name or uid, case-insensitively, and
returns the newest matches first together with the match and total counts.
"""

from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.logging import get_logger
from catalog_migration.models.mdb_file import MDBFile

logger = get_logger(__name__)


@dataclass
class FileSearchResult:
    """Page of matching files plus counts."""

    files: list[MDBFile]
    matching: int
    total: int


class FileSearchService:
    """Service class for searching MDBFile entities."""

    def __init__(self, limit: int = 100) -> None:
        """Initialize FileSearchService.

        Args:
            limit: Maximum number of files returned per search.
        """
        self.limit = limit

    async def search(self, db: AsyncSession, query: str | None = None) -> FileSearchResult:
        """Search files by name or uid.

        Args:
            db: AsyncSession for database operations.
            query: Substring to look for; empty or None matches every file.

        Returns:
            FileSearchResult ordered by file_created_at descending.
        """
        total = await db.scalar(select(func.count()).select_from(MDBFile)) or 0

        stmt = select(MDBFile)
        count_stmt = select(func.count()).select_from(MDBFile)
        term = (query or "").strip()
        if term:
            # % and _ in the query are literal characters, not wildcards
            condition = or_(
                MDBFile.name.icontains(term, autoescape=True),
                MDBFile.uid.icontains(term, autoescape=True),
            )
            stmt = stmt.where(condition)
            count_stmt = count_stmt.where(condition)

        matching = await db.scalar(count_stmt) or 0
        result = await db.execute(
            stmt.order_by(
                MDBFile.file_created_at.desc().nulls_last(), MDBFile.id.desc()
            ).limit(self.limit)
        )
        files = list(result.scalars().all())

        logger.debug(
            "File search completed",
            extra={"query": term, "matching": matching, "total": total},
        )
        return FileSearchResult(files=files, matching=matching, total=total)
