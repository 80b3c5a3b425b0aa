"""Integration tests for the health checks."""

from fastapi.testclient import TestClient
from pytest_mock import MockerFixture


class TestHealthChecks:
    """Liveness and readiness endpoints."""

    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/health/live")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "alive"
        assert body["timestamp"]

    def test_readiness(self, client: TestClient) -> None:
        response = client.get("/health/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["database"] is True
        assert body["tmdb_configured"] is True
        assert body["uptime_seconds"] >= 0

    def test_readiness_database_down(self, client: TestClient, mocker: MockerFixture) -> None:
        """A failing database ping makes the app not ready."""
        mocker.patch.object(client.app.state.db, "ping", side_effect=ConnectionError("gone"))

        response = client.get("/health/ready")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "not_ready"
        assert body["database"] is False

    def test_health_not_under_api_prefix(self, client: TestClient) -> None:
        assert client.get("/api/health/live").status_code == 404
