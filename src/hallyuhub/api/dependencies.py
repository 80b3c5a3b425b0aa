"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hallyuhub.application.cache import TmdbCache
from hallyuhub.application.services import (
    ArtistGroupSyncService,
    ArtistMergeService,
    CronLockService,
    DiscographySyncService,
    FilmographySyncService,
    ProductionAgeRatingService,
    ProductionCastService,
    ProductionMatchService,
    SocialLinksSyncService,
)
from hallyuhub.config import Settings
from hallyuhub.infrastructure.integrations import MusicBrainzClient, TMDBClient
from hallyuhub.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


def _app_state(request: Request, name: str) -> object:
    value = getattr(request.app.state, name, None)
    if value is None:
        # lifespan didn't run or crashed before setting it
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return value


def get_app_settings(request: Request) -> Settings:
    """Settings the app was started with (tests inject their own via create_app)."""
    return cast(Settings, _app_state(request, "settings"))


def get_database(request: Request) -> Database:
    return cast(Database, _app_state(request, "db"))


# Hey future me - the session comes from session_scope(), so it COMMITS when the endpoint
# returns normally and rolls back if it raises. Use this in endpoint params like:
# "session: AsyncSession = Depends(get_db_session)"
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db = get_database(request)
    async with db.session_scope() as session:
        yield session


def get_tmdb_client(request: Request) -> TMDBClient:
    return cast(TMDBClient, _app_state(request, "tmdb_client"))


def get_musicbrainz_client(request: Request) -> MusicBrainzClient:
    return cast(MusicBrainzClient, _app_state(request, "musicbrainz_client"))


def get_tmdb_cache(request: Request) -> TmdbCache:
    return cast(TmdbCache, _app_state(request, "tmdb_cache"))


def get_artist_merge_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> ArtistMergeService:
    """Merge service bound to the request's transaction."""
    return ArtistMergeService(session, sample_size=settings.sync.duplicate_sample_size)


def get_filmography_sync_service(
    db: Database = Depends(get_database),
    tmdb: TMDBClient = Depends(get_tmdb_client),
    cache: TmdbCache = Depends(get_tmdb_cache),
    settings: Settings = Depends(get_app_settings),
) -> FilmographySyncService:
    return FilmographySyncService(db, tmdb, cache, settings.sync)


def get_discography_sync_service(
    db: Database = Depends(get_database),
    musicbrainz: MusicBrainzClient = Depends(get_musicbrainz_client),
    settings: Settings = Depends(get_app_settings),
) -> DiscographySyncService:
    return DiscographySyncService(db, musicbrainz, settings.sync)


def get_social_links_sync_service(
    db: Database = Depends(get_database),
    tmdb: TMDBClient = Depends(get_tmdb_client),
    settings: Settings = Depends(get_app_settings),
) -> SocialLinksSyncService:
    return SocialLinksSyncService(db, tmdb, settings.sync)


def get_production_cast_service(
    db: Database = Depends(get_database),
    tmdb: TMDBClient = Depends(get_tmdb_client),
    settings: Settings = Depends(get_app_settings),
) -> ProductionCastService:
    return ProductionCastService(db, tmdb, settings.sync)


def get_artist_group_sync_service(
    db: Database = Depends(get_database),
    musicbrainz: MusicBrainzClient = Depends(get_musicbrainz_client),
) -> ArtistGroupSyncService:
    return ArtistGroupSyncService(db, musicbrainz)


def get_cron_lock_service(
    db: Database = Depends(get_database),
    settings: Settings = Depends(get_app_settings),
) -> CronLockService:
    return CronLockService(db, ttl_minutes=settings.sync.cron_lock_ttl_minutes)


def get_production_age_rating_service(
    db: Database = Depends(get_database),
    tmdb: TMDBClient = Depends(get_tmdb_client),
) -> ProductionAgeRatingService:
    return ProductionAgeRatingService(db, tmdb)


def get_production_match_service(
    db: Database = Depends(get_database),
    tmdb: TMDBClient = Depends(get_tmdb_client),
    age_ratings: ProductionAgeRatingService = Depends(get_production_age_rating_service),
) -> ProductionMatchService:
    return ProductionMatchService(db, tmdb, age_ratings)
