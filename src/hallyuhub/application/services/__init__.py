"""Application services - duplicate detection/merge and the enrichment syncs."""

from hallyuhub.application.services.artist_group_sync_service import ArtistGroupSyncService
from hallyuhub.application.services.artist_merge_service import ArtistMergeService
from hallyuhub.application.services.batch import run_bounded, sync_batch
from hallyuhub.application.services.cron_lock_service import CronLockService

# Hey future me - the sync services take the Database (not a session) because they run
# artists concurrently and each unit of work opens its own session_scope().
# ArtistMergeService is the exception: a merge is ONE transaction, the route's session.
from hallyuhub.application.services.discography_sync_service import DiscographySyncService
from hallyuhub.application.services.filmography_sync_service import FilmographySyncService
from hallyuhub.application.services.production_age_rating_service import (
    ProductionAgeRatingService,
)
from hallyuhub.application.services.production_cast_service import ProductionCastService
from hallyuhub.application.services.production_match_service import ProductionMatchService
from hallyuhub.application.services.social_links_sync_service import SocialLinksSyncService

__all__ = [
    "ArtistGroupSyncService",
    "ArtistMergeService",
    "CronLockService",
    "DiscographySyncService",
    "FilmographySyncService",
    "ProductionAgeRatingService",
    "ProductionCastService",
    "ProductionMatchService",
    "SocialLinksSyncService",
    "run_bounded",
    "sync_batch",
]
