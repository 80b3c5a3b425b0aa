"""Production Match Service - links productions without a TMDB id to their TMDB entry.

Hey future me - productions are created by editors with just a title and a year, this is
the job that finds them on TMDB. Search goes Korean title first (TMDB's original_title for
K-dramas IS the Hangul one), then the Portuguese title. With a known year only results
within one year count, a remake from 2005 must not match the 2022 drama!
After the match, TMDB data fills the gaps but never overwrites what an editor typed
(poster, synopsis, age rating). TMDB-only fields (backdrop, score, runtime...) are refreshed.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from sqlalchemy import select

from hallyuhub.application.services.production_age_rating_service import (
    ProductionAgeRatingService,
)
from hallyuhub.domain.exceptions import EntityNotFoundException
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient
from hallyuhub.infrastructure.persistence import Database, ProductionModel

logger = logging.getLogger(__name__)

MOVIE_PRODUCTION_TYPE = "FILME"
YEAR_TOLERANCE = 1
TRAILER_VIDEO_TYPES = ("Trailer", "Teaser")

REASON_ALREADY_MATCHED = "already_matched"
REASON_NO_MATCH = "no_match"
REASON_TMDB_ID_TAKEN = "tmdb_id_taken"


def tmdb_type_for(production_type: str) -> str:
    """FILME → movie, everything else (SERIE) → tv."""
    return "movie" if production_type == MOVIE_PRODUCTION_TYPE else "tv"


def _result_year(result: dict[str, Any]) -> int | None:
    raw = result.get("release_date") or result.get("first_air_date")
    if not raw or len(raw) < 4 or not raw[:4].isdigit():
        return None
    return int(raw[:4])


def pick_search_result(
    results: list[dict[str, Any]], year: int | None
) -> dict[str, Any] | None:
    """First search result whose year is within one of ours, or the top result if we have no year."""
    if not results:
        return None
    if year is None:
        return results[0]
    for result in results:
        result_year = _result_year(result)
        if result_year is not None and abs(result_year - year) <= YEAR_TOLERANCE:
            return result
    return None


def extract_trailer_url(videos: dict[str, Any] | None) -> str | None:
    """YouTube trailer (or teaser) URL, official uploads first."""
    candidates = [
        v
        for v in (videos or {}).get("results") or []
        if v.get("site") == "YouTube" and v.get("type") in TRAILER_VIDEO_TYPES and v.get("key")
    ]
    if not candidates:
        return None
    # Trailers before teasers, then official before fan uploads
    candidates.sort(
        key=lambda v: (TRAILER_VIDEO_TYPES.index(v["type"]), not v.get("official", False))
    )
    return f"https://www.youtube.com/watch?v={candidates[0]['key']}"


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


@dataclass
class ProductionMatchResult:
    """Outcome of matching one production against TMDB."""

    production_id: str
    matched: bool
    tmdb_id: str | None = None
    fields_updated: list[str] = field(default_factory=list)
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ProductionMatchService:
    """Finds productions on TMDB and imports their metadata."""

    def __init__(
        self, db: Database, tmdb: TMDBClient, age_ratings: ProductionAgeRatingService | None = None
    ) -> None:
        self._db = db
        self._tmdb = tmdb
        self._age_ratings = age_ratings or ProductionAgeRatingService(db, tmdb)

    async def match_production(self, production_id: str) -> ProductionMatchResult:
        """Search TMDB for one production and fill its metadata.

        Raises:
            EntityNotFoundException: production doesn't exist
        """
        async with self._db.session_scope() as session:
            production = await session.get(ProductionModel, production_id)
            if production is None:
                raise EntityNotFoundException("Production", production_id)
            if production.tmdb_id:
                return ProductionMatchResult(
                    production_id,
                    matched=False,
                    tmdb_id=production.tmdb_id,
                    reason=REASON_ALREADY_MATCHED,
                )
            tmdb_type = tmdb_type_for(production.type)
            queries = [q for q in dict.fromkeys((production.title_kr, production.title_pt)) if q]
            year = production.year
            title = production.title_pt
            has_age_rating = bool(production.age_rating)

        hit: dict[str, Any] | None = None
        for query in queries:
            hit = pick_search_result(await self._tmdb.search_production(tmdb_type, query), year)
            if hit is not None:
                break

        if hit is None:
            logger.info(f"No TMDB match for '{title}' ({year})")
            return ProductionMatchResult(production_id, matched=False, reason=REASON_NO_MATCH)

        tmdb_id = str(hit["id"])
        details = await self._tmdb.get_production_details(
            tmdb_type, int(tmdb_id), append_to_response="videos"
        )
        age_rating = (
            None if has_age_rating else await self._age_ratings.fetch_age_rating(tmdb_id, tmdb_type)
        )

        async with self._db.session_scope() as session:
            owner = await session.scalar(
                select(ProductionModel.id).where(ProductionModel.tmdb_id == tmdb_id)
            )
            if owner is not None and owner != production_id:
                logger.warning(
                    f"TMDB {tmdb_type}/{tmdb_id} for '{title}' already belongs to production "
                    f"{owner}, possible duplicate"
                )
                return ProductionMatchResult(
                    production_id, matched=False, tmdb_id=tmdb_id, reason=REASON_TMDB_ID_TAKEN
                )

            production = await session.get(ProductionModel, production_id)
            if production is None:
                raise EntityNotFoundException("Production", production_id)
            fields_updated = _apply_details(
                production, self._tmdb, tmdb_id, tmdb_type, details, age_rating
            )

        logger.info(f"Matched '{title}' to TMDB {tmdb_type}/{tmdb_id}: {fields_updated}")
        return ProductionMatchResult(
            production_id, matched=True, tmdb_id=tmdb_id, fields_updated=fields_updated
        )

    async def match_pending_productions(self, limit: int = 5) -> dict[str, int]:
        """Match productions without a TMDB id, oldest first."""
        async with self._db.session_scope() as session:
            rows = (
                await session.execute(
                    select(ProductionModel.id, ProductionModel.title_pt)
                    .where(ProductionModel.tmdb_id.is_(None))
                    .order_by(ProductionModel.created_at)
                    .limit(limit)
                )
            ).all()

        matched = 0
        unmatched = 0
        failed = 0
        for production_id, title in rows:
            try:
                result = await self.match_production(production_id)
            except Exception as e:
                logger.error(f"TMDB match failed for '{title}' ({production_id}): {e}")
                failed += 1
                continue
            if result.matched:
                matched += 1
            else:
                unmatched += 1

        stats = {"processed": len(rows), "matched": matched, "unmatched": unmatched, "failed": failed}
        logger.info(f"Production match finished: {stats}")
        return stats


def _apply_details(
    production: ProductionModel,
    tmdb: TMDBClient,
    tmdb_id: str,
    tmdb_type: str,
    details: dict[str, Any],
    age_rating: str | None,
) -> list[str]:
    updates: dict[str, Any] = {"tmdb_id": tmdb_id, "tmdb_type": tmdb_type}

    backdrop = tmdb.backdrop_url(details.get("backdrop_path"))
    if backdrop:
        updates["backdrop_url"] = backdrop
    if not production.image_url:
        poster = tmdb.image_url(details.get("poster_path"))
        if poster:
            updates["image_url"] = poster
    if (details.get("vote_average") or 0) > 0:
        updates["vote_average"] = float(details["vote_average"])

    if tmdb_type == "movie":
        runtime = details.get("runtime")
    else:
        episode_runtimes = details.get("episode_run_time") or []
        runtime = episode_runtimes[0] if episode_runtimes else None
    if runtime:
        updates["runtime"] = runtime

    release_date = _parse_date(details.get("release_date") or details.get("first_air_date"))
    if release_date:
        updates["release_date"] = release_date
    if not production.synopsis and details.get("overview"):
        updates["synopsis"] = details["overview"]

    trailer = extract_trailer_url(details.get("videos"))
    if trailer:
        updates["trailer_url"] = trailer
    if age_rating and not production.age_rating:
        updates["age_rating"] = age_rating

    for name, value in updates.items():
        setattr(production, name, value)
    return list(updates)
