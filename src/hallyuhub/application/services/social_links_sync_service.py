"""Social links sync from TMDB external ids."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy import or_, select

from hallyuhub.config.settings import SyncSettings
from hallyuhub.domain.exceptions import EntityNotFoundException, NotFoundError
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient
from hallyuhub.infrastructure.persistence import ArtistModel, Database, utc_now

logger = logging.getLogger(__name__)

# TMDB external id field → (our key, URL prefix)
SOCIAL_PLATFORMS: tuple[tuple[str, str, str], ...] = (
    ("instagram_id", "instagram", "https://instagram.com/"),
    ("twitter_id", "twitter", "https://twitter.com/"),
    ("facebook_id", "facebook", "https://facebook.com/"),
    ("youtube_id", "youtube", "https://youtube.com/@"),
    ("tiktok_id", "tiktok", "https://tiktok.com/@"),
)


def build_social_links(external_ids: dict[str, Any]) -> dict[str, str] | None:
    """Turn TMDB external ids into profile URLs. None when the artist has no profiles."""
    links = {
        key: f"{prefix}{external_ids[field]}"
        for field, key, prefix in SOCIAL_PLATFORMS
        if external_ids.get(field)
    }
    return links or None


@dataclass
class SocialLinksResult:
    """Outcome of one artist refresh."""

    updated: bool
    links: dict[str, str] | None = None


class SocialLinksSyncService:
    """Fetches Instagram/Twitter/... profile links for artists with a TMDB id."""

    def __init__(self, db: Database, tmdb: TMDBClient, settings: SyncSettings | None = None) -> None:
        self._db = db
        self._tmdb = tmdb
        self._settings = settings or SyncSettings()

    async def sync_artist(self, artist_id: str) -> SocialLinksResult:
        """Refresh one artist's social links. Artists without a TMDB id are not updated."""
        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", artist_id)
            tmdb_id = artist.tmdb_id

        if not tmdb_id:
            logger.debug(f"Artist {artist_id} has no TMDB id, skipping social links")
            return SocialLinksResult(updated=False)

        try:
            external_ids = await self._tmdb.get_person_external_ids(tmdb_id)
        except NotFoundError:
            external_ids = {}

        links = build_social_links(external_ids)

        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", artist_id)
            artist.social_links = links
            # Stamped even without links so the artist isn't picked again tomorrow
            artist.social_links_updated_at = utc_now()

        return SocialLinksResult(updated=True, links=links)

    async def sync_pending(self, limit: int = 10) -> dict[str, int]:
        """Sync artists with a TMDB id whose links are missing or stale, oldest first."""
        cutoff = utc_now() - timedelta(days=self._settings.stale_after_days)

        async with self._db.session_scope() as session:
            artist_ids = list(
                (
                    await session.scalars(
                        select(ArtistModel.id)
                        .where(
                            ArtistModel.tmdb_id.is_not(None),
                            or_(
                                ArtistModel.social_links_updated_at.is_(None),
                                ArtistModel.social_links_updated_at < cutoff,
                            ),
                        )
                        .order_by(ArtistModel.created_at)
                        .limit(limit)
                    )
                ).all()
            )

        updated = 0
        with_links = 0
        for artist_id in artist_ids:
            try:
                result = await self.sync_artist(artist_id)
            except Exception as e:
                logger.warning(f"Social links sync failed for artist {artist_id}: {e}")
                continue
            if result.updated:
                updated += 1
            if result.links:
                with_links += 1

        stats = {"processed": len(artist_ids), "updated": updated, "with_links": with_links}
        logger.info(f"Social links sync finished: {stats}")
        return stats
