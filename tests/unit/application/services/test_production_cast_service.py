"""Tests for ProductionCastService."""

from datetime import date
from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select

from factories import add_artist, add_production, add_rows, days_ago
from hallyuhub.application.services.production_cast_service import (
    ACTOR_ROLE,
    ProductionCastService,
    top_cast,
)
from hallyuhub.domain.exceptions import (
    EntityNotFoundException,
    ExternalServiceError,
    ValidationError,
)
from hallyuhub.infrastructure.persistence import (
    ArtistModel,
    ArtistProductionModel,
    Database,
    ProductionModel,
)

CAST = [
    {
        "id": 2,
        "name": "Yeo Jin-goo",
        "character": "Goo Chan-sung",
        "order": 1,
        "known_for_department": "Acting",
    },
    {
        "id": 1,
        "name": "IU",
        "character": "Jang Man-wol",
        "order": 0,
        "known_for_department": "Acting",
    },
    {"id": 9, "name": "Oh Choong-hwan", "order": 2, "known_for_department": "Directing"},
]

PEOPLE: dict[int, dict[str, Any]] = {
    2: {
        "id": 2,
        "name": "Yeo Jin-goo",
        "original_name": "여진구",
        "biography": "South Korean actor.",
        "birthday": "1997-08-13",
        "place_of_birth": "Seoul, South Korea",
        "popularity": 20.0,
        "profile_path": "/yeo.jpg",
        "also_known_as": ["여진구"],
    },
    3: {
        "id": 3,
        "name": "John Smith",
        "biography": "American actor.",
        "place_of_birth": "Ohio, USA",
        "popularity": 12.0,
    },
}


def setup_tmdb(tmdb: MagicMock, cast: list[dict[str, Any]] | None = None) -> None:
    tmdb.get_production_credits.return_value = {"cast": CAST if cast is None else cast}
    tmdb.get_person_details.side_effect = lambda person_id: PEOPLE[person_id]


async def artist_by_tmdb_id(db: Database, tmdb_id: str) -> ArtistModel:
    async with db.session_scope() as session:
        artist = await session.scalar(select(ArtistModel).where(ArtistModel.tmdb_id == tmdb_id))
        assert artist is not None
        return artist


class TestTopCast:
    def test_actors_by_billing_order(self) -> None:
        assert [c["name"] for c in top_cast(CAST)] == ["IU", "Yeo Jin-goo"]

    def test_size(self) -> None:
        cast = [{"id": i, "order": i, "known_for_department": "Acting"} for i in range(10)]
        assert [c["id"] for c in top_cast(cast, size=3)] == [0, 1, 2]


class TestSyncProductionCast:
    """Test importing the cast of one production."""

    async def test_reuses_and_creates_artists(self, db: Database, tmdb_client: MagicMock) -> None:
        """Known tmdb ids are reused, unknown actors are created with TMDB details."""
        setup_tmdb(tmdb_client)
        iu = await add_artist(db, "IU", tmdb_id="1")
        production = await add_production(db, "Hotel del Luna", tmdb_id="100", tmdb_type="tv")

        counts = await ProductionCastService(db, tmdb_client).sync_production_cast(production)

        assert counts == {"synced": 2, "skipped": 0}
        tmdb_client.get_production_credits.assert_awaited_once_with("tv", 100)
        tmdb_client.get_person_details.assert_awaited_once_with(2)

        yeo = await artist_by_tmdb_id(db, "2")
        assert yeo.name_romanized == "Yeo Jin-goo"
        assert yeo.name_hangul == "여진구"
        assert yeo.birth_date == date(1997, 8, 13)
        assert yeo.primary_image_url == "https://image.tmdb.org/t/p/w500/yeo.jpg"
        assert yeo.roles == [ACTOR_ROLE]
        assert yeo.tmdb_sync_status == "SYNCED"
        assert yeo.flagged_as_non_korean is False

        async with db.session_scope() as session:
            links = dict(
                (
                    await session.execute(
                        select(ArtistProductionModel.artist_id, ArtistProductionModel.role)
                    )
                ).all()
            )
            assert links == {iu: "Jang Man-wol", yeo.id: "Goo Chan-sung"}
            stored = await session.get(ProductionModel, production)
            assert stored is not None
            assert stored.cast_sync_at is not None

    async def test_existing_link_role_updated(self, db: Database, tmdb_client: MagicMock) -> None:
        setup_tmdb(tmdb_client, [CAST[1]])
        iu = await add_artist(db, "IU", tmdb_id="1")
        production = await add_production(db, "Hotel del Luna", tmdb_id="100", tmdb_type="tv")
        await add_rows(db, ArtistProductionModel(artist_id=iu, production_id=production, role="?"))

        await ProductionCastService(db, tmdb_client).sync_production_cast(production)

        async with db.session_scope() as session:
            link = await session.get(ArtistProductionModel, (iu, production))
            assert link is not None
            assert link.role == "Jang Man-wol"

    async def test_name_conflict_gets_tmdb_suffix(
        self, db: Database, tmdb_client: MagicMock
    ) -> None:
        """An actor whose name is taken by a different artist is created as "Name (id)"."""
        setup_tmdb(tmdb_client, [CAST[0]])
        await add_artist(db, "Yeo Jin-goo")
        production = await add_production(db, "Hotel del Luna", tmdb_id="100", tmdb_type="tv")

        await ProductionCastService(db, tmdb_client).sync_production_cast(production)

        created = await artist_by_tmdb_id(db, "2")
        assert created.name_romanized == "Yeo Jin-goo (2)"

    async def test_non_korean_actor_flagged(self, db: Database, tmdb_client: MagicMock) -> None:
        setup_tmdb(
            tmdb_client,
            [{"id": 3, "name": "John Smith", "order": 0, "known_for_department": "Acting"}],
        )
        production = await add_production(db, "Guest Star", tmdb_id="100", tmdb_type="tv")

        await ProductionCastService(db, tmdb_client).sync_production_cast(production)

        created = await artist_by_tmdb_id(db, "3")
        assert created.flagged_as_non_korean is True
        assert created.flagged_at is not None
        assert created.name_hangul is None

    async def test_member_failure_is_skipped(self, db: Database, tmdb_client: MagicMock) -> None:
        setup_tmdb(tmdb_client)
        tmdb_client.get_person_details.side_effect = ExternalServiceError("TMDB API error: 500")
        await add_artist(db, "IU", tmdb_id="1")
        production = await add_production(db, "Hotel del Luna", tmdb_id="100", tmdb_type="tv")

        counts = await ProductionCastService(db, tmdb_client).sync_production_cast(production)

        assert counts == {"synced": 1, "skipped": 1}

    async def test_production_without_tmdb_id(self, db: Database, tmdb_client: MagicMock) -> None:
        production = await add_production(db, "Indie Film", type="FILME")

        with pytest.raises(ValidationError):
            await ProductionCastService(db, tmdb_client).sync_production_cast(production)

    async def test_unknown_production(self, db: Database, tmdb_client: MagicMock) -> None:
        with pytest.raises(EntityNotFoundException):
            await ProductionCastService(db, tmdb_client).sync_production_cast("missing")


class TestSyncPendingProductionCasts:
    async def test_pending_selection(self, db: Database, tmdb_client: MagicMock) -> None:
        """Productions without TMDB id or with a fresh cast sync are left out."""
        setup_tmdb(tmdb_client, [CAST[1]])
        await add_artist(db, "IU", tmdb_id="1")
        await add_production(db, "Hotel del Luna", tmdb_id="100", tmdb_type="tv")
        await add_production(db, "My Mister", tmdb_id="101", tmdb_type="tv", cast_sync_at=days_ago(45))
        await add_production(db, "Fresh", tmdb_id="102", tmdb_type="tv", cast_sync_at=days_ago(2))
        await add_production(db, "Local", year=2020)

        stats = await ProductionCastService(db, tmdb_client).sync_pending_production_casts(limit=5)

        assert stats == {"processed": 2, "total_synced": 2, "total_skipped": 0}

    async def test_failed_production_does_not_stop_batch(
        self, db: Database, tmdb_client: MagicMock
    ) -> None:
        tmdb_client.get_production_credits.side_effect = [
            ExternalServiceError("TMDB API error: 500", status_code=500),
            {"cast": [CAST[1]]},
        ]
        await add_artist(db, "IU", tmdb_id="1")
        await add_production(db, "Broken", tmdb_id="100", tmdb_type="tv")
        await add_production(db, "Hotel del Luna", tmdb_id="101", tmdb_type="tv")

        stats = await ProductionCastService(db, tmdb_client).sync_pending_production_casts()

        assert stats == {"processed": 2, "total_synced": 1, "total_skipped": 0}
