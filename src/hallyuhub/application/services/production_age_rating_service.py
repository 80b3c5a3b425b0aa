"""Production Age Rating Service - TMDB certifications → DJCTQ age rating.

Hey future me - the site filters productions by the Brazilian DJCTQ rating (L, 10, 12, 14,
16, 18). TMDB carries it as the BR certification:
- movies: /movie/{id}/release_dates, one certification PER RELEASE (theatrical, digital...)
- shows:  /tv/{id}/content_ratings, one rating per country
Anything that isn't a DJCTQ value ("", "ER", "AL"...) counts as unrated.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy import select

from hallyuhub.domain.exceptions import EntityNotFoundException, NotFoundError
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient
from hallyuhub.infrastructure.persistence import Database, ProductionModel

logger = logging.getLogger(__name__)

VALID_AGE_RATINGS = frozenset({"L", "10", "12", "14", "16", "18"})
THEATRICAL_RELEASE_TYPE = 3

REASON_NO_TMDB_ID = "no_tmdb_id"
REASON_ALREADY_SET = "already_set"
REASON_NOT_ON_TMDB = "not_found_on_tmdb"


def pick_age_rating(tmdb_type: str, results: list[dict[str, Any]], country: str = "BR") -> str | None:
    """Extract the DJCTQ rating from TMDB certification results.

    Movies prefer the theatrical release's certification, then the first release.
    """
    entry = next((r for r in results if r.get("iso_3166_1") == country), None)
    if entry is None:
        return None

    if tmdb_type == "movie":
        releases = entry.get("release_dates") or []
        theatrical = next(
            (r for r in releases if r.get("type") == THEATRICAL_RELEASE_TYPE), None
        )
        release = theatrical or (releases[0] if releases else None)
        rating = release.get("certification") if release else None
    else:
        rating = entry.get("rating")

    return rating if rating in VALID_AGE_RATINGS else None


@dataclass
class AgeRatingResult:
    """Outcome of one production's age rating sync."""

    production_id: str
    updated: bool
    age_rating: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ProductionAgeRatingService:
    """Fills productions.age_rating from TMDB certifications."""

    def __init__(self, db: Database, tmdb: TMDBClient) -> None:
        self._db = db
        self._tmdb = tmdb

    async def fetch_age_rating(self, tmdb_id: int | str, tmdb_type: str) -> str | None:
        """DJCTQ rating for a TMDB movie/show, None when TMDB has none."""
        try:
            results = await self._tmdb.get_production_certifications(tmdb_type, int(tmdb_id))
        except NotFoundError:
            return None
        return pick_age_rating(tmdb_type, results, self._tmdb.settings.certification_country)

    async def sync_production_age_rating(self, production_id: str) -> AgeRatingResult:
        """Set the rating of one production. Ratings already set are never overwritten.

        Raises:
            EntityNotFoundException: production doesn't exist
        """
        async with self._db.session_scope() as session:
            production = await session.get(ProductionModel, production_id)
            if production is None:
                raise EntityNotFoundException("Production", production_id)
            if not production.tmdb_id or not production.tmdb_type:
                return AgeRatingResult(production_id, updated=False, reason=REASON_NO_TMDB_ID)
            if production.age_rating:
                return AgeRatingResult(
                    production_id,
                    updated=False,
                    age_rating=production.age_rating,
                    reason=REASON_ALREADY_SET,
                )
            tmdb_id, tmdb_type = production.tmdb_id, production.tmdb_type

        age_rating = await self.fetch_age_rating(tmdb_id, tmdb_type)
        if age_rating is None:
            return AgeRatingResult(production_id, updated=False, reason=REASON_NOT_ON_TMDB)

        async with self._db.session_scope() as session:
            production = await session.get(ProductionModel, production_id)
            if production is None:
                raise EntityNotFoundException("Production", production_id)
            production.age_rating = age_rating

        return AgeRatingResult(production_id, updated=True, age_rating=age_rating)

    async def sync_pending_age_ratings(self, limit: int = 20) -> dict[str, int]:
        """Sync productions that have a TMDB id but no rating, oldest first."""
        async with self._db.session_scope() as session:
            rows = (
                await session.execute(
                    select(ProductionModel.id, ProductionModel.title_pt)
                    .where(
                        ProductionModel.age_rating.is_(None),
                        ProductionModel.tmdb_id.is_not(None),
                    )
                    .order_by(ProductionModel.created_at)
                    .limit(limit)
                )
            ).all()

        updated = 0
        not_found = 0
        failed = 0
        for production_id, title in rows:
            try:
                result = await self.sync_production_age_rating(production_id)
            except Exception as e:
                logger.error(f"Age rating sync failed for '{title}' ({production_id}): {e}")
                failed += 1
                continue

            if result.updated:
                updated += 1
                logger.info(f"Age rating for '{title}': {result.age_rating}")
            else:
                not_found += 1
                logger.debug(f"No age rating for '{title}': {result.reason}")

        stats = {"processed": len(rows), "updated": updated, "not_found": not_found, "failed": failed}
        logger.info(f"Age rating sync finished: {stats}")
        return stats
