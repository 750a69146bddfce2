"""Files API router.

Admin endpoint listing target catalog files, filtered by a free-text query.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_migration.core.config import get_settings
from catalog_migration.core.database import get_session
from catalog_migration.schemas.files import FileSearchResponse, FileSummary
from catalog_migration.services.file_search import FileSearchService

router = APIRouter(prefix="/files", tags=["Files"])


@router.get("", response_model=FileSearchResponse)
async def search_files(
    query: str | None = Query(default=None, max_length=255),
    db: AsyncSession = Depends(get_session),
) -> FileSearchResponse:
    """Search files by name or uid.

    Args:
        query: Case-insensitive substring of the file name or uid.

    Returns:
        Up to file_search_limit matching files, newest first, with the
        number of matching files and the total number of files.
    """
    service = FileSearchService(limit=get_settings().file_search_limit)
    result = await service.search(db, query)

    return FileSearchResponse(
        status="ok",
        files=[FileSummary.model_validate(f) for f in result.files],
        matching=result.matching,
        total=result.total,
    )
