"""Artist group sync - current band memberships from MusicBrainz."""

import logging

from sqlalchemy import select

from hallyuhub.application.services.discography_sync_service import (
    claim_mbid,
    resolve_artist_mbid,
)
from hallyuhub.domain.exceptions import EntityNotFoundException
from hallyuhub.infrastructure.integrations.musicbrainz_client import MusicBrainzClient
from hallyuhub.infrastructure.persistence import (
    ArtistGroupMembershipModel,
    ArtistModel,
    Database,
    MusicalGroupModel,
    utc_now,
)

logger = logging.getLogger(__name__)

# Outcomes of a single artist lookup
FOUND = "found"
SOLO = "solo"
NOT_FOUND = "not_found"


class ArtistGroupSyncService:
    """Links artists to the musical group they currently belong to."""

    def __init__(self, db: Database, musicbrainz: MusicBrainzClient) -> None:
        self._db = db
        self._musicbrainz = musicbrainz

    async def sync_artist_group(self, artist_id: str) -> str:
        """Look up and store the artist's current group.

        Returns:
            "found", "solo" (on MusicBrainz but no active band) or "not_found"
        """
        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", artist_id)
            mbid, name_romanized, name_hangul = artist.mbid, artist.name_romanized, artist.name_hangul

        if mbid is None:
            mbid = await resolve_artist_mbid(self._musicbrainz, name_romanized, name_hangul)
        group = await self._musicbrainz.get_artist_group(mbid) if mbid else None

        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", artist_id)
            artist.group_sync_at = utc_now()

            if mbid is None:
                return NOT_FOUND
            await claim_mbid(session, artist, mbid)
            if group is None:
                return SOLO

            group_row = await session.scalar(
                select(MusicalGroupModel).where(MusicalGroupModel.mbid == group.mbid)
            )
            if group_row is None:
                group_row = MusicalGroupModel(name=group.name, mbid=group.mbid)
                session.add(group_row)
                await session.flush()
            elif group.name:
                group_row.name = group.name

            membership = await session.scalar(
                select(ArtistGroupMembershipModel).where(
                    ArtistGroupMembershipModel.artist_id == artist_id,
                    ArtistGroupMembershipModel.group_id == group_row.id,
                )
            )
            if membership is None:
                session.add(
                    ArtistGroupMembershipModel(
                        artist_id=artist_id,
                        group_id=group_row.id,
                        is_active=True,
                        role=group.role,
                    )
                )
            else:
                membership.is_active = True
                membership.leave_date = None
                membership.role = group.role or membership.role

        logger.info(f"{name_romanized} is a member of {group.name}")
        return FOUND

    async def sync_artist_groups(self, limit: int = 50, only_missing: bool = True) -> dict[str, int]:
        """Sync group memberships for up to `limit` artists."""
        query = select(ArtistModel.id).order_by(ArtistModel.created_at).limit(limit)
        if only_missing:
            query = query.where(ArtistModel.group_sync_at.is_(None))

        async with self._db.session_scope() as session:
            artist_ids = list((await session.scalars(query)).all())

        stats = {"processed": len(artist_ids), FOUND: 0, SOLO: 0, NOT_FOUND: 0, "errors": 0}
        for artist_id in artist_ids:
            try:
                outcome = await self.sync_artist_group(artist_id)
            except Exception as e:
                logger.warning(f"Group sync failed for artist {artist_id}: {e}")
                stats["errors"] += 1
                continue
            stats[outcome] += 1

        logger.info(f"Artist group sync finished: {stats}")
        return stats
