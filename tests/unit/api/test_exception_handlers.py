"""Tests for domain exception → HTTP response mapping."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from hallyuhub.api.exception_handlers import register_exception_handlers
from hallyuhub.domain.exceptions import (
    BusinessRuleViolation,
    ConfigurationError,
    EntityNotFoundException,
    ExternalServiceError,
    RateLimitExceededError,
    ValidationError,
)

ERRORS: dict[str, Exception] = {
    "not-found": EntityNotFoundException("Artist", "a1"),
    "rule": BusinessRuleViolation("keep_id and delete_id must differ"),
    "invalid": ValidationError("Fields cannot be overridden: mbid"),
    "config": ConfigurationError("TMDB API key is not configured"),
    "upstream": ExternalServiceError("TMDB API error: 500", status_code=500),
    "throttled": RateLimitExceededError("TMDB rate limit exceeded", retry_after=30),
    "locked": OperationalError("UPDATE artists", {}, Exception("database is locked")),
    "db": OperationalError("SELECT 1", {}, Exception("disk I/O error")),
}


@pytest.fixture
def app_client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/raise/{kind}")
    async def raise_error(kind: str) -> None:
        raise ERRORS[kind]

    return TestClient(app)


class TestExceptionHandlers:
    @pytest.mark.parametrize(
        ("kind", "status_code", "detail"),
        [
            ("not-found", 404, "Artist with id a1 not found"),
            ("rule", 400, "keep_id and delete_id must differ"),
            ("invalid", 422, "Fields cannot be overridden: mbid"),
            ("config", 503, "TMDB API key is not configured"),
            ("upstream", 502, "TMDB API error: 500"),
            ("throttled", 429, "TMDB rate limit exceeded"),
        ],
    )
    def test_domain_errors(
        self, app_client: TestClient, kind: str, status_code: int, detail: str
    ) -> None:
        response = app_client.get(f"/raise/{kind}")

        assert response.status_code == status_code
        assert response.json() == {"detail": detail}

    def test_rate_limit_sets_retry_after(self, app_client: TestClient) -> None:
        assert app_client.get("/raise/throttled").headers["Retry-After"] == "30"

    def test_database_locked_is_503(self, app_client: TestClient) -> None:
        response = app_client.get("/raise/locked")

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "3"

    def test_other_database_error_is_500(self, app_client: TestClient) -> None:
        response = app_client.get("/raise/db")

        assert response.status_code == 500
        assert "Retry-After" not in response.headers
