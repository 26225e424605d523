"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


class TestHealthEndpoints:
    """Test suite for health check functionality."""

    async def test_health_check_returns_status(self, async_client: AsyncClient):
        """Health is public and reports a reachable database."""
        response = await async_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert isinstance(data["version"], str)

    async def test_health_reports_unreachable_database(self, async_client: AsyncClient):
        with patch(
            "authgate.api.health.check_db_connection", new=AsyncMock(return_value=False)
        ):
            response = await async_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "disconnected"
