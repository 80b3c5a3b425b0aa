"""Discography Sync Service - MusicBrainz release groups → albums.

Hey future me - MusicBrainz is the ONLY source here. The client spaces requests 1.1s
apart, so one artist with 30 releases takes ~35s (3 type queries + one cover lookup per
release). Keep the cron limit small!
"""

import logging
import time
from datetime import timedelta

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hallyuhub.application.services.batch import sync_batch
from hallyuhub.config.settings import SyncSettings
from hallyuhub.domain.dtos import MusicBrainzRelease
from hallyuhub.domain.entities import BatchSyncResult, SyncResult, SyncStrategy
from hallyuhub.domain.exceptions import EntityNotFoundException
from hallyuhub.infrastructure.integrations.musicbrainz_client import MusicBrainzClient
from hallyuhub.infrastructure.persistence import AlbumModel, ArtistModel, Database, utc_now

logger = logging.getLogger(__name__)


async def resolve_artist_mbid(
    musicbrainz: MusicBrainzClient, name_romanized: str, name_hangul: str | None
) -> str | None:
    """Look up an MBID by romanized name, then by Hangul name."""
    mbid = await musicbrainz.search_artist(name_romanized)
    if mbid is None and name_hangul:
        mbid = await musicbrainz.search_artist(name_hangul)
    return mbid


async def claim_mbid(session: AsyncSession, artist: ArtistModel, mbid: str) -> bool:
    """Store mbid on the artist unless another artist already owns it."""
    if artist.mbid == mbid:
        return True
    owner = await session.scalar(
        select(ArtistModel.id).where(ArtistModel.mbid == mbid, ArtistModel.id != artist.id)
    )
    if owner is not None:
        logger.warning(
            f"MBID {mbid} already belongs to artist {owner}, not assigning it to "
            f"{artist.name_romanized} (possible duplicate)"
        )
        return False
    artist.mbid = mbid
    return True


class DiscographySyncService:
    """Synchronizes artist discographies from MusicBrainz."""

    def __init__(
        self,
        db: Database,
        musicbrainz: MusicBrainzClient,
        settings: SyncSettings | None = None,
    ) -> None:
        self._db = db
        self._musicbrainz = musicbrainz
        self._settings = settings or SyncSettings()

    async def sync_artist_discography(
        self, artist_id: str, strategy: SyncStrategy = SyncStrategy.SMART_MERGE
    ) -> SyncResult:
        """Sync one artist's albums. Never raises: failures land in the result."""
        start = time.perf_counter()
        result = SyncResult(artist_id=artist_id)

        try:
            async with self._db.session_scope() as session:
                artist = await session.get(ArtistModel, artist_id)
                if artist is None:
                    raise EntityNotFoundException("Artist", artist_id)
                result.artist_name = artist.name_romanized
                mbid, name_romanized, name_hangul = (
                    artist.mbid,
                    artist.name_romanized,
                    artist.name_hangul,
                )

            if mbid is None:
                mbid = await resolve_artist_mbid(self._musicbrainz, name_romanized, name_hangul)

            if mbid is None:
                result.errors.append("Artist not found on MusicBrainz")
                await self._stamp(artist_id)
                return result

            releases = await self._musicbrainz.get_artist_releases(mbid)
            logger.info(f"Found {len(releases)} releases for {name_romanized}")

            async with self._db.session_scope() as session:
                artist = await session.get(ArtistModel, artist_id)
                if artist is None:
                    raise EntityNotFoundException("Artist", artist_id)
                await claim_mbid(session, artist, mbid)

                if strategy == SyncStrategy.FULL_REPLACE:
                    await session.execute(delete(AlbumModel).where(AlbumModel.artist_id == artist_id))
                    existing: list[AlbumModel] = []
                else:
                    existing = list(
                        (
                            await session.scalars(
                                select(AlbumModel).where(AlbumModel.artist_id == artist_id)
                            )
                        ).all()
                    )

                for release in releases:
                    # Album mbids are globally unique: same release credited to another artist
                    taken = await session.scalar(
                        select(AlbumModel.id).where(AlbumModel.mbid == release.mbid)
                    )

                    match = _match_album(existing, release)
                    if match is not None:
                        if strategy == SyncStrategy.SMART_MERGE and _backfill_album(
                            match, release, mbid_free=taken is None
                        ):
                            result.updated_count += 1
                        else:
                            result.skipped_count += 1
                        continue

                    if taken is not None:
                        result.skipped_count += 1
                        continue

                    album = AlbumModel(
                        artist_id=artist_id,
                        title=release.title,
                        type=release.type.value,
                        release_date=release.first_release_date,
                        cover_url=release.cover_url,
                        mbid=release.mbid,
                    )
                    session.add(album)
                    existing.append(album)
                    result.added_count += 1

                artist.discography_sync_at = utc_now()

            result.success = True

        except EntityNotFoundException as e:
            result.errors.append(e.message)
        except Exception as e:
            logger.exception(f"Discography sync failed for artist {artist_id}")
            result.errors.append(str(e))
        finally:
            result.duration_ms = int((time.perf_counter() - start) * 1000)

        return result

    async def _stamp(self, artist_id: str) -> None:
        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is not None:
                artist.discography_sync_at = utc_now()

    async def sync_multiple_artists(
        self,
        artist_ids: list[str],
        concurrency: int | None = None,
        strategy: SyncStrategy = SyncStrategy.SMART_MERGE,
    ) -> BatchSyncResult:
        """Sync several artists. MusicBrainz spacing serializes the HTTP part anyway."""
        batch = await sync_batch(
            artist_ids,
            lambda artist_id: self.sync_artist_discography(artist_id, strategy),
            concurrency or self._settings.default_concurrency,
        )
        logger.info(f"Discography batch sync finished: {batch.summary()}")
        return batch

    async def sync_pending_artist_discographies(
        self, limit: int = 5, concurrency: int | None = None
    ) -> BatchSyncResult:
        """Sync artists never synced or synced more than `stale_after_days` ago."""
        cutoff = utc_now() - timedelta(days=self._settings.stale_after_days)

        async with self._db.session_scope() as session:
            artist_ids = list(
                (
                    await session.scalars(
                        select(ArtistModel.id)
                        .where(
                            or_(
                                ArtistModel.discography_sync_at.is_(None),
                                ArtistModel.discography_sync_at < cutoff,
                            )
                        )
                        .order_by(
                            ArtistModel.discography_sync_at.asc().nulls_first(),
                            ArtistModel.created_at,
                        )
                        .limit(limit)
                    )
                ).all()
            )

        logger.info(f"Found {len(artist_ids)} artists pending discography sync")
        return await self.sync_multiple_artists(artist_ids, concurrency, SyncStrategy.SMART_MERGE)


def _match_album(albums: list[AlbumModel], release: MusicBrainzRelease) -> AlbumModel | None:
    for album in albums:
        if album.mbid and album.mbid == release.mbid:
            return album
    # EP and single can share a title: title match only for albums without an mbid
    title = release.title.casefold()
    for album in albums:
        if album.mbid is None and album.title.casefold() == title:
            return album
    return None


def _backfill_album(album: AlbumModel, release: MusicBrainzRelease, mbid_free: bool) -> bool:
    """Fill empty album fields from the release. Returns True if anything changed."""
    changed = False
    if album.mbid is None and mbid_free:
        album.mbid = release.mbid
        changed = True
    if album.cover_url is None and release.cover_url:
        album.cover_url = release.cover_url
        changed = True
    if album.release_date is None and release.first_release_date:
        album.release_date = release.first_release_date
        changed = True
    if album.type != release.type.value:
        album.type = release.type.value
        changed = True
    return changed
