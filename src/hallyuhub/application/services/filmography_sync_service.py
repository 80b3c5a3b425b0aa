"""Filmography Sync Service - TMDB credits → productions + artist links.

Hey future me - this is the BUSIEST sync! Flow per artist:
1. Stamp tmdb_last_attempt (so a crash still shows up in "outdated" selection later)
2. Find the TMDB person by romanized name, then Hangul name (most popular hit wins)
3. Fetch combined credits (cast role = character, crew role = job)
4. For each credit: details + pt translation + BR streaming providers → TmdbProductionData
5. Match against existing productions (TMDB id → Korean title+year → fuzzy title) and link

Every DB step opens its own session_scope(): batch syncs run artists concurrently and an
AsyncSession must never be shared between tasks. One broken production must not roll
back the rest of the artist's filmography either.
"""

import logging
import time
from datetime import date, timedelta
from typing import Any

from sqlalchemy import and_, delete, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hallyuhub.application.cache.tmdb_cache import TmdbCache
from hallyuhub.application.services.batch import sync_batch
from hallyuhub.config.settings import SyncSettings
from hallyuhub.domain.dtos import TmdbProductionData
from hallyuhub.domain.entities import (
    BatchSyncResult,
    ProductionOutcome,
    SyncResult,
    SyncStrategy,
    TmdbSyncStatus,
)
from hallyuhub.domain.exceptions import (
    EntityNotFoundException,
    ExternalServiceError,
    NotFoundError,
)
from hallyuhub.domain.value_objects.name_normalization import title_similarity
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient
from hallyuhub.infrastructure.persistence import (
    ArtistModel,
    ArtistProductionModel,
    Database,
    ProductionModel,
    utc_now,
)

logger = logging.getLogger(__name__)

FUZZY_TITLE_THRESHOLD = 0.9
RECENT_SYNC_DAYS = 7


class FilmographySyncService:
    """Synchronizes artist filmographies from TMDB."""

    def __init__(
        self,
        db: Database,
        tmdb: TMDBClient,
        cache: TmdbCache | None = None,
        settings: SyncSettings | None = None,
    ) -> None:
        self._db = db
        self._tmdb = tmdb
        self._cache = cache or TmdbCache()
        self._settings = settings or SyncSettings()

    # =========================================================================
    # SINGLE ARTIST
    # =========================================================================

    async def sync_single_artist(
        self, artist_id: str, strategy: SyncStrategy = SyncStrategy.SMART_MERGE
    ) -> SyncResult:
        """Sync the filmography of one artist. Never raises: failures land in the result."""
        start = time.perf_counter()
        result = SyncResult(artist_id=artist_id)

        try:
            async with self._db.session_scope() as session:
                artist = await session.get(ArtistModel, artist_id)
                if artist is None:
                    raise EntityNotFoundException("Artist", artist_id)
                result.artist_name = artist.name_romanized
                name_romanized, name_hangul = artist.name_romanized, artist.name_hangul
                artist.tmdb_last_attempt = utc_now()

            person = await self._find_person(name_romanized, name_hangul)
            if person is None:
                result.errors.append("Person not found on TMDB")
                await self._set_status(artist_id, TmdbSyncStatus.NOT_FOUND)
                return result

            person_id = int(person["id"])
            result.tmdb_id = person_id

            credits = await self._get_credits(person_id)
            productions = await self.transform_credits(credits)
            logger.info(f"Found {len(productions)} productions for {name_romanized}")

            if strategy == SyncStrategy.FULL_REPLACE:
                async with self._db.session_scope() as session:
                    await session.execute(
                        delete(ArtistProductionModel).where(
                            ArtistProductionModel.artist_id == artist_id
                        )
                    )

            for production in productions:
                try:
                    async with self._db.session_scope() as session:
                        outcome = await self._process_production(
                            session, artist_id, production, strategy
                        )
                except Exception as e:
                    logger.warning(
                        f"Failed to process production '{production.title}' for {name_romanized}: {e}"
                    )
                    result.errors.append(f"Failed to process production {production.title}: {e}")
                    continue

                if outcome == ProductionOutcome.ADDED:
                    result.added_count += 1
                elif outcome == ProductionOutcome.UPDATED:
                    result.updated_count += 1
                else:
                    result.skipped_count += 1

            await self._mark_synced(artist_id, person_id, result)
            result.success = True

        except EntityNotFoundException as e:
            result.errors.append(e.message)
        except NotFoundError as e:
            result.errors.append(e.message)
            await self._set_status(artist_id, TmdbSyncStatus.NOT_FOUND)
        except Exception as e:
            logger.exception(f"Filmography sync failed for artist {artist_id}")
            result.errors.append(str(e))
            await self._set_status(artist_id, TmdbSyncStatus.ERROR)
        finally:
            result.duration_ms = int((time.perf_counter() - start) * 1000)

        return result

    async def _find_person(self, name_romanized: str, name_hangul: str | None) -> dict[str, Any] | None:
        cached = await self._cache.get_person(name_romanized, name_hangul)
        if cached is not None:
            return cached

        person = await self._tmdb.find_person(name_romanized, name_hangul)
        if person is not None:
            await self._cache.cache_person(name_romanized, name_hangul, person)
        return person

    async def _get_credits(self, person_id: int) -> dict[str, Any]:
        cached = await self._cache.get_credits(person_id)
        if cached is not None:
            return cached

        credits = await self._tmdb.get_person_combined_credits(person_id)
        await self._cache.cache_credits(person_id, credits)
        return credits

    async def _set_status(self, artist_id: str, status: TmdbSyncStatus) -> None:
        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is not None:
                artist.tmdb_sync_status = status.value
                artist.tmdb_last_attempt = utc_now()

    async def _mark_synced(self, artist_id: str, person_id: int, result: SyncResult) -> None:
        tmdb_id = str(person_id)
        async with self._db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            if artist is None:
                raise EntityNotFoundException("Artist", artist_id)

            if artist.tmdb_id != tmdb_id:
                # tmdb_id is unique - another row with it is a duplicate for the merge tool
                owner = await session.scalar(
                    select(ArtistModel.name_romanized).where(
                        ArtistModel.tmdb_id == tmdb_id, ArtistModel.id != artist_id
                    )
                )
                if owner is not None:
                    result.errors.append(
                        f"TMDB id {tmdb_id} already linked to artist '{owner}' (possible duplicate)"
                    )
                else:
                    artist.tmdb_id = tmdb_id

            now = utc_now()
            artist.tmdb_sync_status = TmdbSyncStatus.SYNCED.value
            artist.tmdb_last_sync = now
            artist.tmdb_last_attempt = now

    # =========================================================================
    # CREDIT TRANSFORMATION
    # =========================================================================

    async def transform_credits(self, credits: dict[str, Any]) -> list[TmdbProductionData]:
        """Turn combined credits into production data.

        Cast credits carry the character as role, crew credits the job. A production
        the person both acted in and crewed is kept once, with the cast role.
        """
        productions: list[TmdbProductionData] = []
        seen: set[tuple[str, int]] = set()

        entries = [(c, c.get("character")) for c in credits.get("cast") or []]
        entries += [(c, c.get("job")) for c in credits.get("crew") or []]

        for credit, role in entries:
            tmdb_type = credit.get("media_type") or ("movie" if "title" in credit else "tv")
            if tmdb_type not in ("movie", "tv"):
                continue
            key = (tmdb_type, int(credit["id"]))
            if key in seen:
                continue
            seen.add(key)

            try:
                production = await self._build_production(tmdb_type, int(credit["id"]), role or None)
            except Exception as e:
                logger.warning(f"Failed to get details for {tmdb_type} {credit['id']}: {e}")
                continue
            productions.append(production)

        return productions

    async def _build_production(
        self, tmdb_type: str, tmdb_id: int, role: str | None
    ) -> TmdbProductionData:
        details = await self._cache.get_production(tmdb_type, tmdb_id)
        if details is None:
            details = await self._tmdb.get_production_details(tmdb_type, tmdb_id)
            await self._cache.cache_production(tmdb_type, tmdb_id, details)

        is_movie = tmdb_type == "movie"
        original_title = details.get("title") if is_movie else details.get("name")
        title_kr = details.get("original_title") if is_movie else details.get("original_name")
        raw_date = details.get("release_date") if is_movie else details.get("first_air_date")
        release_date = _parse_date(raw_date)

        if is_movie:
            runtime = details.get("runtime") or None
        else:
            run_times = details.get("episode_run_time") or []
            runtime = run_times[0] if run_times else None

        return TmdbProductionData(
            tmdb_id=tmdb_id,
            tmdb_type=tmdb_type,
            title=await self._translated_title(tmdb_type, tmdb_id) or original_title or title_kr or "",
            title_kr=title_kr,
            year=release_date.year if release_date else None,
            synopsis=details.get("overview") or None,
            image_url=self._tmdb.image_url(details.get("poster_path")),
            release_date=release_date,
            runtime=runtime,
            vote_average=details.get("vote_average"),
            streaming_platforms=await self._streaming_platforms(tmdb_type, tmdb_id),
            role=role,
        )

    async def _translated_title(self, tmdb_type: str, tmdb_id: int) -> str | None:
        language = self._tmdb.settings.translation_language
        try:
            data = await self._tmdb.get_production_translations(tmdb_type, tmdb_id)
        except ExternalServiceError as e:
            logger.debug(f"No translations for {tmdb_type} {tmdb_id}: {e}")
            return None
        for translation in data.get("translations") or []:
            if translation.get("iso_639_1") == language:
                payload = translation.get("data") or {}
                return payload.get("title") or payload.get("name") or None
        return None

    # Watch providers are optional data - TMDB often has nothing for older titles
    async def _streaming_platforms(self, tmdb_type: str, tmdb_id: int) -> list[str]:
        try:
            data = await self._tmdb.get_watch_providers(tmdb_type, tmdb_id)
        except Exception as e:
            logger.debug(f"No watch providers for {tmdb_type} {tmdb_id}: {e}")
            return []

        region = (data.get("results") or {}).get(self._tmdb.settings.watch_region) or {}
        return [p["provider_name"] for p in region.get("flatrate") or [] if p.get("provider_name")]

    # =========================================================================
    # PRODUCTION MATCHING
    # =========================================================================

    async def _process_production(
        self,
        session: AsyncSession,
        artist_id: str,
        data: TmdbProductionData,
        strategy: SyncStrategy,
    ) -> ProductionOutcome:
        existing = await self.find_matching_production(session, data)

        if existing is None:
            production = ProductionModel(
                title_pt=data.title,
                title_kr=data.title_kr,
                type=data.production_type.value,
                year=data.year,
                synopsis=data.synopsis,
                image_url=data.image_url,
                tmdb_id=str(data.tmdb_id),
                tmdb_type=data.tmdb_type,
                release_date=data.release_date,
                runtime=data.runtime,
                vote_average=data.vote_average,
                streaming_platforms=data.streaming_platforms,
            )
            session.add(production)
            await session.flush()
            session.add(
                ArtistProductionModel(
                    artist_id=artist_id, production_id=production.id, role=data.role
                )
            )
            return ProductionOutcome.ADDED

        if strategy == SyncStrategy.SMART_MERGE:
            self._backfill_production(existing, data)

        link = await session.get(ArtistProductionModel, (artist_id, existing.id))
        if link is not None:
            if strategy == SyncStrategy.SMART_MERGE and link.role != data.role:
                link.role = data.role
                return ProductionOutcome.UPDATED
            return ProductionOutcome.SKIPPED

        session.add(
            ArtistProductionModel(artist_id=artist_id, production_id=existing.id, role=data.role)
        )
        return ProductionOutcome.ADDED

    async def find_matching_production(
        self, session: AsyncSession, data: TmdbProductionData
    ) -> ProductionModel | None:
        """Find an existing production: TMDB id, then Korean title + year, then fuzzy title."""
        match = await session.scalar(
            select(ProductionModel).where(ProductionModel.tmdb_id == str(data.tmdb_id)).limit(1)
        )
        if match is not None:
            return match

        if data.title_kr and data.year:
            match = await session.scalar(
                select(ProductionModel)
                .where(ProductionModel.title_kr == data.title_kr, ProductionModel.year == data.year)
                .limit(1)
            )
            if match is not None:
                return match

        if data.year:
            candidates = await session.scalars(
                select(ProductionModel).where(
                    ProductionModel.year == data.year,
                    ProductionModel.type == data.production_type.value,
                )
            )
            for candidate in candidates:
                if title_similarity(candidate.title_pt, data.title) > FUZZY_TITLE_THRESHOLD:
                    return candidate

        return None

    @staticmethod
    def _backfill_production(production: ProductionModel, data: TmdbProductionData) -> None:
        """Fill empty production fields from TMDB. Existing values always win."""
        if production.tmdb_id is None:
            production.tmdb_id = str(data.tmdb_id)
            production.tmdb_type = data.tmdb_type
        for name in ("title_kr", "synopsis", "image_url", "release_date", "runtime", "vote_average"):
            if getattr(production, name) is None and getattr(data, name) is not None:
                setattr(production, name, getattr(data, name))
        if not production.streaming_platforms and data.streaming_platforms:
            production.streaming_platforms = list(data.streaming_platforms)

    # =========================================================================
    # BATCH
    # =========================================================================

    async def sync_multiple_artists(
        self,
        artist_ids: list[str],
        concurrency: int | None = None,
        strategy: SyncStrategy = SyncStrategy.SMART_MERGE,
    ) -> BatchSyncResult:
        """Sync several artists with bounded concurrency."""
        batch = await sync_batch(
            artist_ids,
            lambda artist_id: self.sync_single_artist(artist_id, strategy),
            concurrency or self._settings.default_concurrency,
        )
        logger.info(f"Filmography batch sync finished: {batch.summary()}")
        return batch

    async def sync_artists_without_filmography(
        self, concurrency: int | None = None
    ) -> BatchSyncResult:
        """Sync every artist that has no production link yet (INCREMENTAL)."""
        async with self._db.session_scope() as session:
            artist_ids = list(
                (
                    await session.scalars(
                        select(ArtistModel.id).where(
                            ~exists().where(ArtistProductionModel.artist_id == ArtistModel.id)
                        )
                    )
                ).all()
            )

        logger.info(f"Found {len(artist_ids)} artists without filmography")
        return await self.sync_multiple_artists(artist_ids, concurrency, SyncStrategy.INCREMENTAL)

    async def sync_outdated_filmographies(
        self,
        days_old: int | None = None,
        limit: int = 10,
        concurrency: int | None = None,
    ) -> BatchSyncResult:
        """Sync artists whose last sync is older than `days_old` or who never synced.

        Never-synced artists come first. Artists marked NOT_FOUND are only retried
        once they have a last sync older than the cutoff.
        """
        cutoff = utc_now() - timedelta(days=days_old or self._settings.outdated_after_days)

        async with self._db.session_scope() as session:
            artist_ids = list(
                (
                    await session.scalars(
                        select(ArtistModel.id)
                        .where(
                            or_(
                                ArtistModel.tmdb_last_sync < cutoff,
                                and_(
                                    ArtistModel.tmdb_last_sync.is_(None),
                                    ArtistModel.tmdb_sync_status != TmdbSyncStatus.NOT_FOUND.value,
                                ),
                            )
                        )
                        .order_by(ArtistModel.tmdb_last_sync.asc().nulls_first(), ArtistModel.id)
                        .limit(limit)
                    )
                ).all()
            )

        logger.info(f"Found {len(artist_ids)} artists with outdated filmographies")
        return await self.sync_multiple_artists(artist_ids, concurrency, SyncStrategy.INCREMENTAL)

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def get_filmography_stats(self) -> dict[str, int]:
        """Counts for the admin dashboard."""
        now = utc_now()
        recent_cutoff = now - timedelta(days=RECENT_SYNC_DAYS)
        stale_cutoff = now - timedelta(days=self._settings.stale_after_days)

        async with self._db.session_scope() as session:
            total = await session.scalar(select(func.count()).select_from(ArtistModel)) or 0
            with_filmography = (
                await session.scalar(
                    select(func.count(func.distinct(ArtistProductionModel.artist_id)))
                )
                or 0
            )
            synced_recently = (
                await session.scalar(
                    select(func.count())
                    .select_from(ArtistModel)
                    .where(ArtistModel.tmdb_last_sync >= recent_cutoff)
                )
                or 0
            )
            needs_update = (
                await session.scalar(
                    select(func.count())
                    .select_from(ArtistModel)
                    .where(
                        or_(
                            ArtistModel.tmdb_last_sync < stale_cutoff,
                            and_(
                                ArtistModel.tmdb_last_sync.is_(None),
                                ArtistModel.tmdb_sync_status != TmdbSyncStatus.NOT_FOUND.value,
                            ),
                        )
                    )
                )
                or 0
            )

        return {
            "total_artists": total,
            "with_filmography": with_filmography,
            "without_filmography": total - with_filmography,
            "synced_recently": synced_recently,
            "needs_update": needs_update,
        }


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
