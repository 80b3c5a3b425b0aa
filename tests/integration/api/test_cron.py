"""Integration tests for the cron trigger endpoints."""

import logging
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture
from sqlalchemy import func, select
from starlette.datastructures import State

from factories import CRON_SECRET, add_artist, add_production, seed
from hallyuhub.api.routers.cron import JOBS, CronJob, _run_job
from hallyuhub.application.services import CronLockService
from hallyuhub.infrastructure.persistence import (
    ArtistModel,
    CronLockModel,
    Database,
    ProductionModel,
)

AUTH = {"Authorization": f"Bearer {CRON_SECRET}"}


async def count_locks(db: Database) -> int:
    async with db.session_scope() as session:
        return await session.scalar(select(func.count()).select_from(CronLockModel)) or 0


async def hold_lock(db: Database, name: str) -> str | None:
    return await CronLockService(db).acquire(name, "other-run")


async def load_artist(db: Database, artist_id: str) -> ArtistModel:
    async with db.session_scope() as session:
        artist = await session.get(ArtistModel, artist_id)
        assert artist is not None
        return artist


async def load_production(db: Database, production_id: str) -> ProductionModel:
    async with db.session_scope() as session:
        production = await session.get(ProductionModel, production_id)
        assert production is not None
        return production


class TestCronAuth:
    """Shared-secret authentication."""

    def test_missing_token(self, client: TestClient) -> None:
        response = client.post("/api/cron/sync-cast")

        assert response.status_code == 401

    def test_wrong_token(self, client: TestClient) -> None:
        response = client.post("/api/cron/sync-cast", headers={"Authorization": "Bearer nope"})

        assert response.status_code == 401

    def test_query_token(self, client: TestClient) -> None:
        response = client.post(f"/api/cron/sync-cast?token={CRON_SECRET}")

        assert response.status_code == 202

    def test_secret_not_configured(self, client: TestClient) -> None:
        """Without a configured secret every call is refused, even an "empty" token."""
        client.app.state.settings.cron_secret = None

        response = client.post("/api/cron/sync-cast", headers={"Authorization": "Bearer "})

        assert response.status_code == 503
        assert response.json() == {"detail": "Cron secret not configured"}


class TestCronTrigger:
    """POST /api/cron/{job_name}."""

    def test_accepted(self, client: TestClient) -> None:
        response = client.post("/api/cron/sync-social-links", headers=AUTH)

        assert response.status_code == 202
        body = response.json()
        assert body["status"] == "accepted"
        assert body["limit"] == 10
        assert body["request_id"].startswith("cron-sync-social-links-")
        assert body["timestamp"]

    @pytest.mark.parametrize(
        ("job", "query", "expected"),
        [
            ("sync-cast", "", 5),
            ("sync-cast", "?limit=3", 3),
            ("sync-cast", "?limit=100", 20),
            ("sync-cast", "?limit=0", 1),
            ("sync-cast", "?limit=-5", 1),
            ("sync-filmography", "", 10),
            ("sync-discography", "", 5),
            ("sync-artist-groups", "", 5),
            ("match-productions", "", 5),
            ("sync-age-ratings", "", 20),
            ("sync-age-ratings", "?limit=50", 20),
        ],
    )
    def test_limit_clamped(self, client: TestClient, job: str, query: str, expected: int) -> None:
        response = client.post(f"/api/cron/{job}{query}", headers=AUTH)

        assert response.status_code == 202
        assert response.json()["limit"] == expected

    def test_unknown_job(self, client: TestClient) -> None:
        response = client.post("/api/cron/sync-everything", headers=AUTH)

        assert response.status_code == 404

    def test_already_running(self, client: TestClient) -> None:
        seed(client, hold_lock, "sync-cast")

        response = client.post("/api/cron/sync-cast", headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert body["skipped"] is True
        assert body["reason"] == "already_running"

    def test_other_job_not_blocked(self, client: TestClient) -> None:
        seed(client, hold_lock, "sync-cast")

        assert client.post("/api/cron/sync-discography", headers=AUTH).status_code == 202

    # Hey future me - TestClient finishes background tasks before returning the response,
    # so the job has already run when we look at the database.
    def test_job_runs_and_releases_lock(
        self, client: TestClient, musicbrainz_client: MagicMock
    ) -> None:
        musicbrainz_client.get_artist_group.return_value = None
        client.app.state.musicbrainz_client = musicbrainz_client
        artist_id = seed(client, add_artist, "IU", mbid="iu-mbid")

        response = client.post("/api/cron/sync-artist-groups", headers=AUTH)

        assert response.status_code == 202
        musicbrainz_client.get_artist_group.assert_awaited_once_with("iu-mbid")
        assert seed(client, load_artist, artist_id).group_sync_at is not None
        assert seed(client, count_locks) == 0

    def test_failing_job_releases_lock(self, client: TestClient, mocker: MockerFixture) -> None:
        async def explode(state: State, limit: int) -> dict[str, int]:
            raise RuntimeError("database is locked")

        mocker.patch.dict(JOBS, {"sync-cast": CronJob("sync-cast", "Cast sync", 5, explode)})

        response = client.post("/api/cron/sync-cast", headers=AUTH)

        assert response.status_code == 202
        assert seed(client, count_locks) == 0
        assert client.post("/api/cron/sync-cast", headers=AUTH).status_code == 202

    def test_match_productions_runs(self, client: TestClient, tmdb_client: MagicMock) -> None:
        tmdb_client.search_production.return_value = [{"id": 90447}]
        tmdb_client.get_production_details.return_value = {"id": 90447, "runtime": 80}
        tmdb_client.get_production_certifications.return_value = [
            {"iso_3166_1": "BR", "rating": "14"}
        ]
        client.app.state.tmdb_client = tmdb_client
        production_id = seed(client, add_production, "Hotel del Luna")

        response = client.post("/api/cron/match-productions", headers=AUTH)

        assert response.status_code == 202
        production = seed(client, load_production, production_id)
        assert production.tmdb_id == "90447"
        assert production.age_rating == "14"
        assert seed(client, count_locks) == 0

    def test_sync_age_ratings_runs(self, client: TestClient, tmdb_client: MagicMock) -> None:
        tmdb_client.get_production_certifications.return_value = [
            {"iso_3166_1": "BR", "release_dates": [{"certification": "16", "type": 3}]}
        ]
        client.app.state.tmdb_client = tmdb_client
        production_id = seed(
            client, add_production, "Parasita", type="FILME", tmdb_id="496243", tmdb_type="movie"
        )

        response = client.post("/api/cron/sync-age-ratings", headers=AUTH)

        assert response.status_code == 202
        tmdb_client.get_production_certifications.assert_awaited_once_with("movie", 496243)
        assert seed(client, load_production, production_id).age_rating == "16"


class TestCronGet:
    def test_get_not_allowed(self, client: TestClient) -> None:
        response = client.get("/api/cron/sync-cast")

        assert response.status_code == 405
        assert response.headers["Allow"] == "POST"
        assert "POST /api/cron/sync-cast" in response.json()["hint"]

    def test_get_unknown_job(self, client: TestClient) -> None:
        assert client.get("/api/cron/nope").status_code == 404


class TestRunJob:
    """The background runner logs the outcome and always releases the lock."""

    async def test_logs_finished_stats(self, caplog: pytest.LogCaptureFixture) -> None:
        async def succeed(state: State, limit: int) -> dict[str, int]:
            return {"processed": limit}

        lock_service = MagicMock(spec=CronLockService)
        job = CronJob("sync-cast", "Cast sync", 5, succeed)

        with caplog.at_level(logging.INFO, logger="hallyuhub.api.routers.cron"):
            await _run_job(job, State(), lock_service, "cron-sync-cast-1", 3)

        messages = [record.getMessage() for record in caplog.records]
        assert "Cron job sync-cast started (limit=3)" in messages
        assert "Cron job sync-cast finished: {'processed': 3}" in messages
        lock_service.release.assert_awaited_once_with("sync-cast", "cron-sync-cast-1")

    async def test_logs_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        async def explode(state: State, limit: int) -> dict[str, int]:
            raise RuntimeError("boom")

        lock_service = MagicMock(spec=CronLockService)
        job = CronJob("sync-cast", "Cast sync", 5, explode)

        with caplog.at_level(logging.INFO, logger="hallyuhub.api.routers.cron"):
            await _run_job(job, State(), lock_service, "cron-sync-cast-2", 5)

        failure = next(r for r in caplog.records if r.getMessage() == "Cron job sync-cast failed")
        assert failure.levelno == logging.ERROR
        assert failure.exc_info is not None
        lock_service.release.assert_awaited_once_with("sync-cast", "cron-sync-cast-2")
