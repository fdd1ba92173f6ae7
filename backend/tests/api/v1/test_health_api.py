"""
Tests for health check endpoints.
"""
from unittest.mock import AsyncMock

from sqlalchemy.exc import OperationalError

from app.main import app
from app.models import get_db


class TestHealth:
    """Tests for GET /v1/health and /v1/ping."""

    def test_healthy(self, client):
        response = client.get("/v1/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "ok"
        assert "timestamp" in data
        assert "version" in data

    def test_unhealthy_when_database_is_down(self, client):
        broken = AsyncMock()
        broken.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))

        async def override_get_db():
            yield broken

        app.dependency_overrides[get_db] = override_get_db
        response = client.get("/v1/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
        assert response.json()["database"] == "unavailable"

    def test_ping(self, client):
        response = client.get("/v1/ping")

        assert response.status_code == 200
        assert response.json() == {"message": "pong"}

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["docs"] == "/v1/docs"
