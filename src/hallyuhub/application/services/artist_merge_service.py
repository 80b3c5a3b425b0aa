"""Artist Merge Service - Duplicate detection and artist merging.

Hey future me - duplicates happen ALL the time in this catalog:
- Cast sync creates "Lee Ji-eun" from TMDB while the admin already added "IU"
- Filmography sync and discography sync resolve the same person through different names
- Manual admin entries with accents/casing differences ("Rosé" vs "ROSE")

Detection:
- HIGH confidence: same TMDB id, same MusicBrainz id, or identical Hangul name
- MEDIUM confidence: one romanized name contains the other as whole words

Merge:
- Curator ALWAYS picks which artist to keep (we suggest pairs, never auto-merge)
- All relations move to the keeper, conflicting ones are dropped
- Missing fields are backfilled from the duplicate, counters are summed
- The duplicate's name becomes a stage name so syncs don't re-create it

Usage:
    service = ArtistMergeService(session)
    pairs = await service.find_duplicate_pairs()
    result = await service.merge_artists(keep_id="uuid1", delete_id="uuid2")
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import selectinload

from hallyuhub.domain.entities import (
    ARTIST_ENTITY_TYPE,
    Confidence,
    DuplicateCandidate,
    DuplicatePair,
    MergeResult,
)
from hallyuhub.domain.exceptions import BusinessRuleViolation, EntityNotFoundException
from hallyuhub.domain.value_objects.name_normalization import name_contains_other
from hallyuhub.infrastructure.persistence.models import (
    ActivityModel,
    AlbumModel,
    ArtistGroupMembershipModel,
    ArtistModel,
    ArtistProductionModel,
    FavoriteModel,
    MusicalGroupModel,
    NewsArtistModel,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# Name similarity is O(n²), only the first N artists are compared
DUPLICATE_SAMPLE_SIZE = 500

REASON_SAME_TMDB = "same TMDB id"
REASON_SAME_MBID = "same MusicBrainz id"
REASON_SAME_HANGUL = "same Hangul name"
REASON_SIMILAR_NAMES = "similar names"


class ArtistFieldOverrides(BaseModel):
    """Fields a curator may set explicitly when merging.

    Only the keys that were actually sent count (`model_dump(exclude_unset=True)`):
    an explicit null clears the keeper's field, an absent key leaves it alone.
    """

    model_config = ConfigDict(extra="forbid")

    name_romanized: str | None = Field(default=None, min_length=1, max_length=255)
    name_hangul: str | None = Field(default=None, max_length=255)
    birth_name: str | None = Field(default=None, max_length=255)
    birth_date: date | None = None
    height: str | None = Field(default=None, max_length=20)
    blood_type: str | None = Field(default=None, max_length=5)
    bio: str | None = None
    primary_image_url: str | None = Field(default=None, max_length=512)
    agency_id: str | None = None

    @field_validator("name_romanized")
    @classmethod
    def name_cannot_be_cleared(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("name_romanized cannot be cleared")
        return value

    # Hey future me - pydantic would read a bare number as a unix timestamp. Dates come
    # in as ISO strings from the admin UI, anything else is a client bug.
    @field_validator("birth_date", mode="before")
    @classmethod
    def birth_date_is_iso_string(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, (str, date)):
            raise ValueError("birth_date must be an ISO date string (YYYY-MM-DD)")
        return value


# Scalar fields backfilled from the duplicate when the keeper has no value
BACKFILL_FIELDS = (
    "name_hangul",
    "primary_image_url",
    "bio",
    "agency_id",
    "birth_date",
    "birth_name",
    "height",
    "blood_type",
)


class ArtistMergeService:
    """Duplicate detection and merging for artists."""

    def __init__(self, session: AsyncSession, sample_size: int = DUPLICATE_SAMPLE_SIZE) -> None:
        self._session = session
        self._sample_size = sample_size

    # =========================================================================
    # DUPLICATE DETECTION
    # =========================================================================

    async def _load_candidates(self) -> list[DuplicateCandidate]:
        """Load every artist with the fields shown in duplicate review."""
        artists = (
            await self._session.scalars(
                select(ArtistModel)
                .options(selectinload(ArtistModel.agency))
                .order_by(ArtistModel.created_at, ArtistModel.id)
            )
        ).all()

        production_counts = dict(
            (
                await self._session.execute(
                    select(ArtistProductionModel.artist_id, func.count()).group_by(
                        ArtistProductionModel.artist_id
                    )
                )
            ).all()
        )
        album_counts = dict(
            (
                await self._session.execute(
                    select(AlbumModel.artist_id, func.count()).group_by(AlbumModel.artist_id)
                )
            ).all()
        )

        group_names: dict[str, str] = {}
        memberships = await self._session.execute(
            select(ArtistGroupMembershipModel.artist_id, MusicalGroupModel.name)
            .join(MusicalGroupModel, ArtistGroupMembershipModel.group_id == MusicalGroupModel.id)
            .where(ArtistGroupMembershipModel.is_active.is_(True))
            .order_by(ArtistGroupMembershipModel.created_at)
        )
        for artist_id, group_name in memberships:
            group_names.setdefault(artist_id, group_name)

        return [
            DuplicateCandidate(
                id=a.id,
                name_romanized=a.name_romanized,
                name_hangul=a.name_hangul,
                birth_name=a.birth_name,
                birth_date=a.birth_date,
                height=a.height,
                blood_type=a.blood_type,
                bio=a.bio,
                primary_image_url=a.primary_image_url,
                stage_names=list(a.stage_names or []),
                mbid=a.mbid,
                tmdb_id=a.tmdb_id,
                agency_id=a.agency_id,
                agency_name=a.agency.name if a.agency else None,
                production_count=production_counts.get(a.id, 0),
                album_count=album_counts.get(a.id, 0),
                musical_group_name=group_names.get(a.id),
            )
            for a in artists
        ]

    async def find_duplicate_pairs(self) -> list[DuplicatePair]:
        """Find probable duplicate artist pairs.

        Each unordered pair is reported once, with the first reason that found it.
        High-confidence pairs come first, then alphabetical by the first artist's name.
        """
        candidates = await self._load_candidates()

        pairs: list[DuplicatePair] = []
        seen: set[str] = set()

        def add_pair(
            a: DuplicateCandidate, b: DuplicateCandidate, reason: str, confidence: Confidence
        ) -> None:
            key = DuplicatePair.make_key(a.id, b.id)
            if key in seen:
                return
            seen.add(key)
            pairs.append(DuplicatePair(id=key, a=a, b=b, reason=reason, confidence=confidence))

        by_tmdb: dict[str, list[DuplicateCandidate]] = defaultdict(list)
        by_mbid: dict[str, list[DuplicateCandidate]] = defaultdict(list)
        by_hangul: dict[str, list[DuplicateCandidate]] = defaultdict(list)
        for candidate in candidates:
            if candidate.tmdb_id:
                by_tmdb[candidate.tmdb_id].append(candidate)
            if candidate.mbid:
                by_mbid[candidate.mbid].append(candidate)
            if candidate.name_hangul:
                by_hangul[candidate.name_hangul].append(candidate)

        for groups, reason in (
            (by_tmdb, REASON_SAME_TMDB),
            (by_mbid, REASON_SAME_MBID),
            (by_hangul, REASON_SAME_HANGUL),
        ):
            for group in groups.values():
                for i in range(len(group)):
                    for j in range(i + 1, len(group)):
                        add_pair(group[i], group[j], reason, Confidence.HIGH)

        sample = candidates[: self._sample_size]
        for i in range(len(sample)):
            for j in range(i + 1, len(sample)):
                a, b = sample[i], sample[j]
                if DuplicatePair.make_key(a.id, b.id) in seen:
                    continue
                if name_contains_other(a.name_romanized, b.name_romanized):
                    add_pair(a, b, REASON_SIMILAR_NAMES, Confidence.MEDIUM)

        pairs.sort(
            key=lambda p: (
                0 if p.confidence == Confidence.HIGH else 1,
                p.a.name_romanized.casefold(),
            )
        )

        logger.info(
            f"Found {len(pairs)} potential duplicate artist pairs "
            f"({sum(1 for p in pairs if p.confidence == Confidence.HIGH)} high confidence)"
        )
        return pairs

    # =========================================================================
    # MERGE
    # =========================================================================

    async def merge_artists(
        self,
        keep_id: str,
        delete_id: str,
        field_overrides: ArtistFieldOverrides | None = None,
    ) -> MergeResult:
        """Merge the artist `delete_id` into `keep_id`.

        Runs on the caller's session, so everything happens in one transaction:
        the caller commits (or rolls back on error).

        Args:
            keep_id: Artist that survives
            delete_id: Duplicate that is removed
            field_overrides: Curator choices per field. A field set to None clears
                it on the keeper, unset fields are backfilled as usual.

        Raises:
            BusinessRuleViolation: keep_id == delete_id
            EntityNotFoundException: either artist doesn't exist
        """
        if keep_id == delete_id:
            raise BusinessRuleViolation("keep_id and delete_id must differ")

        overrides = field_overrides.model_dump(exclude_unset=True) if field_overrides else {}

        keeper = await self._session.get(ArtistModel, keep_id)
        if keeper is None:
            raise EntityNotFoundException("Artist", keep_id)
        deleter = await self._session.get(ArtistModel, delete_id)
        if deleter is None:
            raise EntityNotFoundException("Artist", delete_id)

        result = MergeResult(
            kept_id=keep_id,
            kept_name=keeper.name_romanized,
            deleted_id=delete_id,
            deleted_name=deleter.name_romanized,
        )

        result.favorites_moved = await self._move_unique_links(
            FavoriteModel, FavoriteModel.user_id, keep_id, delete_id
        )
        result.productions_moved = await self._move_productions(keep_id, delete_id)
        result.memberships_moved = await self._move_unique_links(
            ArtistGroupMembershipModel, ArtistGroupMembershipModel.group_id, keep_id, delete_id
        )
        result.news_moved = await self._move_unique_links(
            NewsArtistModel, NewsArtistModel.news_id, keep_id, delete_id
        )

        albums = await self._session.execute(
            update(AlbumModel)
            .where(AlbumModel.artist_id == delete_id)
            .values(artist_id=keep_id)
            .execution_options(synchronize_session=False)
        )
        result.albums_moved = albums.rowcount or 0

        activities = await self._session.execute(
            update(ActivityModel)
            .where(
                ActivityModel.entity_type == ARTIST_ENTITY_TYPE,
                ActivityModel.entity_id == delete_id,
            )
            .values(entity_id=keep_id)
            .execution_options(synchronize_session=False)
        )
        result.activities_moved = activities.rowcount or 0

        final_fields = self._build_keeper_fields(keeper, deleter, overrides)

        # Delete the duplicate FIRST and flush - it frees name_romanized/mbid/tmdb_id so the
        # keeper can take them over. The flush matters: within one flush SQLAlchemy runs
        # UPDATEs before DELETEs, which would hit the unique constraints.
        await self._session.delete(deleter)
        await self._session.flush()

        for field_name, value in final_fields.items():
            setattr(keeper, field_name, value)
        await self._session.flush()

        result.kept_name = keeper.name_romanized
        result.fields_updated = sorted(
            name for name in final_fields if name not in ("view_count", "favorite_count", "stage_names")
        )

        logger.info(
            f"Merged artist '{result.deleted_name}' into '{result.kept_name}'",
            extra={
                "keep_id": keep_id,
                "delete_id": delete_id,
                "has_overrides": bool(overrides),
                "productions_moved": result.productions_moved,
                "albums_moved": result.albums_moved,
            },
        )
        return result

    async def _move_unique_links(
        self, model: Any, discriminator: Any, keep_id: str, delete_id: str
    ) -> int:
        """Repoint link rows from delete_id to keep_id unless the keeper already has one.

        `discriminator` is the column that, together with artist_id, must stay unique
        (user_id for favorites, group_id for memberships, news_id for news).
        Leftover rows of the duplicate are deleted.
        """
        existing = set(
            (await self._session.scalars(select(discriminator).where(model.artist_id == keep_id))).all()
        )

        stmt = update(model).where(model.artist_id == delete_id)
        if existing:
            stmt = stmt.where(discriminator.not_in(existing))
        moved = await self._session.execute(
            stmt.values(artist_id=keep_id).execution_options(synchronize_session=False)
        )

        await self._session.execute(
            delete(model)
            .where(model.artist_id == delete_id)
            .execution_options(synchronize_session=False)
        )
        return moved.rowcount or 0

    async def _move_productions(self, keep_id: str, delete_id: str) -> int:
        """Copy the duplicate's credits to the keeper (role preserved).

        artist_id is part of the composite primary key, so rows are recreated
        instead of updated.
        """
        keeper_productions = set(
            (
                await self._session.scalars(
                    select(ArtistProductionModel.production_id).where(
                        ArtistProductionModel.artist_id == keep_id
                    )
                )
            ).all()
        )
        to_transfer = [
            (production_id, role)
            for production_id, role in await self._session.execute(
                select(ArtistProductionModel.production_id, ArtistProductionModel.role).where(
                    ArtistProductionModel.artist_id == delete_id
                )
            )
            if production_id not in keeper_productions
        ]

        await self._session.execute(
            delete(ArtistProductionModel)
            .where(ArtistProductionModel.artist_id == delete_id)
            .execution_options(synchronize_session=False)
        )
        self._session.add_all(
            ArtistProductionModel(artist_id=keep_id, production_id=production_id, role=role)
            for production_id, role in to_transfer
        )
        return len(to_transfer)

    @staticmethod
    def _build_keeper_fields(
        keeper: ArtistModel, deleter: ArtistModel, overrides: dict[str, Any]
    ) -> dict[str, Any]:
        """Compute the keeper's final field values."""
        fields: dict[str, Any] = dict(overrides)

        for name in BACKFILL_FIELDS:
            if name in overrides:
                continue
            if getattr(keeper, name) is None and getattr(deleter, name) is not None:
                fields[name] = getattr(deleter, name)

        if not keeper.mbid and deleter.mbid:
            fields["mbid"] = deleter.mbid
        if not keeper.tmdb_id and deleter.tmdb_id:
            fields["tmdb_id"] = deleter.tmdb_id

        fields["view_count"] = (keeper.view_count or 0) + (deleter.view_count or 0)
        fields["favorite_count"] = (keeper.favorite_count or 0) + (deleter.favorite_count or 0)
        fields["stage_names"] = _ordered_union(
            keeper.stage_names or [], deleter.stage_names or [], [deleter.name_romanized]
        )
        return fields


def _ordered_union(*lists: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for values in lists:
        for value in values:
            seen.setdefault(value, None)
    return list(seen)
