"""Integration tests for health check endpoints.

Tests cover:
- Basic health check at /health
- Target database health check at /health/db
- Request logging and request_id headers
"""

import pytest
from httpx import AsyncClient


class TestHealthEndpoint:
    """Tests for the basic health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_ok(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_health_includes_request_id_header(
        self, async_client: AsyncClient
    ) -> None:
        response = await async_client.get("/health")

        # UUID format: 8-4-4-4-12
        assert len(response.headers["X-Request-ID"]) == 36


class TestDatabaseHealthEndpoint:
    """Tests for the database health check endpoint."""

    @pytest.mark.asyncio
    async def test_database_health_returns_ok(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health/db")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": True}
