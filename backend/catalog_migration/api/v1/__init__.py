"""API v1 router and endpoint organization."""

from fastapi import APIRouter

from catalog_migration.api.v1 import files

router = APIRouter(tags=["v1"])

router.include_router(files.router)

__all__ = ["router"]
