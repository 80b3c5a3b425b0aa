"""Production Cast Service - TMDB production credits → artists.

Hey future me - this is the sync that CREATES artists! It takes the top-billed actors of a
production and makes sure each one exists and is linked. That's also where most duplicates
come from (TMDB's "Lee Ji-eun" vs our "IU"), so:
- an artist we already know by tmdb_id is always reused
- a new artist whose romanized name is taken gets " (<tmdbId>)" appended, the admin
  merge tool cleans that up later
- non-Korean actors (Hollywood co-stars of a K-drama actor) are created but flagged
"""

import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy import or_, select

from hallyuhub.config.settings import SyncSettings
from hallyuhub.domain.entities import TmdbSyncStatus
from hallyuhub.domain.exceptions import EntityNotFoundException, ValidationError
from hallyuhub.domain.value_objects.korean_relevance import is_relevant_to_korean_culture
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient
from hallyuhub.infrastructure.persistence import (
    ArtistModel,
    ArtistProductionModel,
    Database,
    ProductionModel,
    utc_now,
)

logger = logging.getLogger(__name__)

TOP_CAST_SIZE = 5
ACTOR_ROLE = "ATOR"


class ProductionCastService:
    """Imports the main cast of productions from TMDB."""

    def __init__(self, db: Database, tmdb: TMDBClient, settings: SyncSettings | None = None) -> None:
        self._db = db
        self._tmdb = tmdb
        self._settings = settings or SyncSettings()

    async def sync_production_cast(self, production_id: str) -> dict[str, int]:
        """Create/link the top-billed actors of one production.

        Returns:
            {"synced": linked members, "skipped": members that failed}
        """
        async with self._db.session_scope() as session:
            production = await session.get(ProductionModel, production_id)
            if production is None:
                raise EntityNotFoundException("Production", production_id)
            if not production.tmdb_id or not production.tmdb_type:
                raise ValidationError(f"Production {production_id} has no TMDB id")
            tmdb_id, tmdb_type, title = production.tmdb_id, production.tmdb_type, production.title_pt

        credits = await self._tmdb.get_production_credits(tmdb_type, int(tmdb_id))
        cast = top_cast(credits.get("cast") or [])

        synced = 0
        skipped = 0
        for member in cast:
            try:
                await self._sync_member(production_id, member)
                synced += 1
            except Exception as e:
                logger.warning(f"Failed to sync cast member {member.get('name')} of '{title}': {e}")
                skipped += 1

        async with self._db.session_scope() as session:
            production = await session.get(ProductionModel, production_id)
            if production is not None:
                production.cast_sync_at = utc_now()

        logger.info(f"Cast sync for '{title}': {synced} synced, {skipped} skipped")
        return {"synced": synced, "skipped": skipped}

    async def _sync_member(self, production_id: str, member: dict[str, Any]) -> None:
        person_id = str(member["id"])
        role = member.get("character") or None

        async with self._db.session_scope() as session:
            artist_id = await session.scalar(
                select(ArtistModel.id).where(ArtistModel.tmdb_id == person_id)
            )

        if artist_id is None:
            person = await self._tmdb.get_person_details(int(person_id))
            artist_id = await self._create_artist(person)

        async with self._db.session_scope() as session:
            link = await session.get(ArtistProductionModel, (artist_id, production_id))
            if link is None:
                session.add(
                    ArtistProductionModel(
                        artist_id=artist_id, production_id=production_id, role=role
                    )
                )
            else:
                link.role = role

    async def _create_artist(self, person: dict[str, Any]) -> str:
        person_id = str(person["id"])
        name = person.get("name") or person_id
        original_name = person.get("original_name") or person.get("name")
        relevant = is_relevant_to_korean_culture(person)
        if not relevant:
            logger.info(f"Cast member {name} ({person_id}) doesn't look Korean, flagging")

        now = utc_now()
        async with self._db.session_scope() as session:
            taken = await session.scalar(
                select(ArtistModel.id).where(ArtistModel.name_romanized == name)
            )
            artist = ArtistModel(
                name_romanized=f"{name} ({person_id})" if taken else name,
                name_hangul=original_name if original_name and original_name != name else None,
                tmdb_id=person_id,
                primary_image_url=self._tmdb.image_url(person.get("profile_path")),
                bio=person.get("biography") or None,
                birth_date=_parse_date(person.get("birthday")),
                place_of_birth=person.get("place_of_birth") or None,
                roles=[ACTOR_ROLE],
                tmdb_sync_status=TmdbSyncStatus.SYNCED.value,
                tmdb_last_sync=now,
                tmdb_last_attempt=now,
                flagged_as_non_korean=not relevant,
                flagged_at=None if relevant else now,
            )
            session.add(artist)
            await session.flush()
            return artist.id

    async def sync_pending_production_casts(self, limit: int = 5) -> dict[str, int]:
        """Sync productions with a TMDB id whose cast was never synced or is stale."""
        cutoff = utc_now() - timedelta(days=self._settings.stale_after_days)

        async with self._db.session_scope() as session:
            production_ids = list(
                (
                    await session.scalars(
                        select(ProductionModel.id)
                        .where(
                            ProductionModel.tmdb_id.is_not(None),
                            or_(
                                ProductionModel.cast_sync_at.is_(None),
                                ProductionModel.cast_sync_at < cutoff,
                            ),
                        )
                        .order_by(ProductionModel.created_at)
                        .limit(limit)
                    )
                ).all()
            )

        total_synced = 0
        total_skipped = 0
        for production_id in production_ids:
            try:
                counts = await self.sync_production_cast(production_id)
            except Exception as e:
                logger.error(f"Cast sync failed for production {production_id}: {e}")
                continue
            total_synced += counts["synced"]
            total_skipped += counts["skipped"]

        stats = {
            "processed": len(production_ids),
            "total_synced": total_synced,
            "total_skipped": total_skipped,
        }
        logger.info(f"Production cast sync finished: {stats}")
        return stats


def top_cast(cast: list[dict[str, Any]], size: int = TOP_CAST_SIZE) -> list[dict[str, Any]]:
    """Top-billed actors: acting department only, ordered by billing order."""
    actors = [c for c in cast if c.get("known_for_department") == "Acting"]
    actors.sort(key=lambda c: c.get("order", 999))
    return actors[:size]


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None
