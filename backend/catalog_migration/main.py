"""FastAPI application for the catalog admin API.

Serves the read-only admin endpoints over the target catalog. The batch
migration itself runs through catalog_migration.migrate, never here.

Error Logging Requirements:
- Log every request with method, path, status, timing and request_id
- Return structured error responses: {"error": str, "code": str, "request_id": str}
- Log 4xx errors at WARNING, 5xx at ERROR
"""

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from catalog_migration.api.v1 import router as api_v1_router
from catalog_migration.core.config import get_settings
from catalog_migration.core.database import db_manager
from catalog_migration.core.logging import get_logger, setup_logging

setup_logging()

logger = get_logger(__name__)

ADMIN_PREFIX = "/admin/rest"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _error_response(request: Request, status_code: int, code: str, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "code": code, "request_id": _request_id(request)},
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an X-Request-ID and logs its outcome."""

    async def dispatch(self, request: Request, call_next: Any) -> Any:
        request.state.request_id = str(uuid.uuid4())
        start_time = time.monotonic()

        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id

        extra = {
            "request_id": request.state.request_id,
            "method": request.method,
            "path": request.url.path,
            "query": str(request.query_params) or None,
            "status_code": response.status_code,
            "duration_ms": round((time.monotonic() - start_time) * 1000, 2),
        }
        if response.status_code >= 500:
            logger.error("Request failed", extra=extra)
        elif response.status_code >= 400:
            logger.warning("Request rejected", extra=extra)
        else:
            logger.info("Request served", extra=extra)
        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the target catalog engine for the lifetime of the app."""
    settings = get_settings()
    logger.info(
        "Admin API starting",
        extra={"version": settings.app_version, "environment": settings.environment},
    )
    db_manager.init_db()
    try:
        yield
    finally:
        await db_manager.close()
        logger.info("Admin API stopped")


def create_app() -> FastAPI:
    """Create and configure the admin API application."""
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(RequestValidationError)
    async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = "; ".join(
            f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in exc.errors()
        )
        logger.warning(
            "Invalid request parameters",
            extra={"request_id": _request_id(request), "errors": error},
        )
        return _error_response(
            request, status.HTTP_422_UNPROCESSABLE_ENTITY, "VALIDATION_ERROR", error
        )

    @app.exception_handler(Exception)
    async def on_unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            extra={
                "request_id": _request_id(request),
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            },
            exc_info=True,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "An internal error occurred. Please try again later.",
        )

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", tags=["Health"])
    async def health_db() -> dict[str, str | bool]:
        """Target catalog connectivity."""
        reachable = await db_manager.check_connection()
        return {"status": "ok" if reachable else "error", "database": reachable}

    app.include_router(api_v1_router, prefix=ADMIN_PREFIX)
    return app


app = create_app()
