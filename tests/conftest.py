"""Shared fixtures: file-backed SQLite database, settings, mocked API clients, TestClient."""

from collections.abc import AsyncGenerator, Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from factories import CRON_SECRET
from hallyuhub.config import (
    DatabaseSettings,
    MusicBrainzSettings,
    Settings,
    SyncSettings,
    TMDBSettings,
)
from hallyuhub.infrastructure.persistence import Database
from hallyuhub.main import create_app


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file. Never reads the developer's .env."""
    return Settings(
        _env_file=None,
        cron_secret=CRON_SECRET,
        database=DatabaseSettings(
            url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
            auto_create_tables=True,
        ),
        tmdb=TMDBSettings(api_key="test-key", initial_retry_delay=0),
        musicbrainz=MusicBrainzSettings(app_name="HallyuHubTest", contact="test@example.com"),
        sync=SyncSettings(),
    )


# Hey future me - a real SQLite file (not :memory:) so every session_scope() sees the
# same data. :memory: gives each pooled connection its own empty database!
@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """TestClient with lifespan (tables are auto-created)."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def tmdb_client() -> MagicMock:
    """TMDB client double: async API methods, real settings, deterministic image URLs."""
    tmdb = MagicMock()
    tmdb.settings = TMDBSettings(api_key="test-key")
    tmdb.is_configured = True
    tmdb.image_url.side_effect = lambda path: f"https://image.tmdb.org/t/p/w500{path}" if path else None
    tmdb.backdrop_url.side_effect = (
        lambda path: f"https://image.tmdb.org/t/p/original{path}" if path else None
    )
    for name in (
        "search_person",
        "find_person",
        "get_person_details",
        "get_person_combined_credits",
        "get_person_external_ids",
        "get_production_details",
        "get_production_translations",
        "get_watch_providers",
        "get_production_credits",
        "search_production",
        "get_production_certifications",
        "close",
    ):
        setattr(tmdb, name, AsyncMock())
    return tmdb


@pytest.fixture
def musicbrainz_client() -> MagicMock:
    musicbrainz = MagicMock()
    for name in ("search_artist", "get_artist_releases", "get_cover_art", "get_artist_group", "close"):
        setattr(musicbrainz, name, AsyncMock())
    return musicbrainz
