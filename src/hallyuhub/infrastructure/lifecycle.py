"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager: logging setup, database
engine, the shared TMDB/MusicBrainz clients and the TMDB response cache.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

from hallyuhub.application.cache import TmdbCache
from hallyuhub.config import Settings, get_settings
from hallyuhub.domain.exceptions import ConfigurationError
from hallyuhub.infrastructure.integrations import MusicBrainzClient, TMDBClient
from hallyuhub.infrastructure.observability import configure_logging
from hallyuhub.infrastructure.persistence import Database
from hallyuhub.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


# Hey future me, this validates SQLite paths BEFORE we try creating the DB engine! SQLite needs
# to create -journal/-wal files next to the .db file, so the directory must be writable.
# We DON'T pre-create the .db file - SQLite initializes it on first connection.
# Only runs for SQLite file URLs (returns early for PostgreSQL and :memory:).
def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation."""

    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE__URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# Resources live on app.state so routes (and cron background tasks) can reach them.
# The TMDB rate limiter and cache are SHARED - one budget and one cache per process.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    try:
        _validate_sqlite_path(settings)

        db = Database(settings)
        app.state.db = db
        logger.info("Database initialized: %s", settings.database.url)

        if settings.database.auto_create_tables:
            await db.create_tables()
            logger.info("Database tables created (auto_create_tables)")

        app.state.tmdb_client = TMDBClient(settings.tmdb, rate_limiter=RateLimiter.for_tmdb())
        app.state.musicbrainz_client = MusicBrainzClient(settings.musicbrainz)
        app.state.tmdb_cache = TmdbCache()
        app.state.startup_time = datetime.now(UTC)

        if not app.state.tmdb_client.is_configured:
            logger.warning("TMDB credentials not configured - filmography/cast/social syncs will fail")

        yield

    finally:
        logger.info("Shutting down application")
        for name in ("tmdb_client", "musicbrainz_client"):
            client = getattr(app.state, name, None)
            if client is not None:
                await client.close()
        if hasattr(app.state, "db"):
            await app.state.db.close()
        logger.info("Application shutdown complete")
