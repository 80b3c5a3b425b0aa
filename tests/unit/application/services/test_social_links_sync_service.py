"""Tests for SocialLinksSyncService."""

from unittest.mock import MagicMock

import pytest

from factories import add_artist, days_ago
from hallyuhub.application.services.social_links_sync_service import (
    SocialLinksSyncService,
    build_social_links,
)
from hallyuhub.domain.exceptions import EntityNotFoundException, ExternalServiceError, NotFoundError
from hallyuhub.infrastructure.persistence import ArtistModel, Database


class TestBuildSocialLinks:
    """Test external id → URL mapping."""

    def test_builds_known_platforms(self) -> None:
        links = build_social_links(
            {
                "instagram_id": "dlwlrma",
                "twitter_id": "_IUofficial",
                "youtube_id": "dlwlrma",
                "tiktok_id": "dlwlrma",
                "imdb_id": "nm3989316",
            }
        )

        assert links == {
            "instagram": "https://instagram.com/dlwlrma",
            "twitter": "https://twitter.com/_IUofficial",
            "youtube": "https://youtube.com/@dlwlrma",
            "tiktok": "https://tiktok.com/@dlwlrma",
        }

    def test_empty_values_ignored(self) -> None:
        assert build_social_links({"instagram_id": "", "facebook_id": None}) is None

    def test_no_ids(self) -> None:
        assert build_social_links({}) is None


class TestSyncArtist:
    async def test_stores_links(self, db: Database, tmdb_client: MagicMock) -> None:
        tmdb_client.get_person_external_ids.return_value = {"instagram_id": "dlwlrma"}
        artist_id = await add_artist(db, "IU", tmdb_id="1234")

        result = await SocialLinksSyncService(db, tmdb_client).sync_artist(artist_id)

        assert result.updated is True
        assert result.links == {"instagram": "https://instagram.com/dlwlrma"}
        tmdb_client.get_person_external_ids.assert_awaited_once_with("1234")
        async with db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            assert artist is not None
            assert artist.social_links == {"instagram": "https://instagram.com/dlwlrma"}
            assert artist.social_links_updated_at is not None

    async def test_without_tmdb_id(self, db: Database, tmdb_client: MagicMock) -> None:
        artist_id = await add_artist(db, "IU")

        result = await SocialLinksSyncService(db, tmdb_client).sync_artist(artist_id)

        assert result.updated is False
        tmdb_client.get_person_external_ids.assert_not_called()

    async def test_tmdb_404_clears_links(self, db: Database, tmdb_client: MagicMock) -> None:
        """A person removed from TMDB ends up with no links, but is still stamped."""
        tmdb_client.get_person_external_ids.side_effect = NotFoundError("TMDB resource not found")
        artist_id = await add_artist(
            db, "IU", tmdb_id="1234", social_links={"instagram": "https://instagram.com/old"}
        )

        result = await SocialLinksSyncService(db, tmdb_client).sync_artist(artist_id)

        assert result.updated is True
        assert result.links is None
        async with db.session_scope() as session:
            artist = await session.get(ArtistModel, artist_id)
            assert artist is not None
            assert artist.social_links is None
            assert artist.social_links_updated_at is not None

    async def test_unknown_artist(self, db: Database, tmdb_client: MagicMock) -> None:
        with pytest.raises(EntityNotFoundException):
            await SocialLinksSyncService(db, tmdb_client).sync_artist("missing")


class TestSyncPending:
    async def test_counts(self, db: Database, tmdb_client: MagicMock) -> None:
        """Only artists with a TMDB id and missing/stale links are processed."""
        tmdb_client.get_person_external_ids.side_effect = lambda tmdb_id: (
            {"instagram_id": "dlwlrma"} if tmdb_id == "1" else {}
        )
        await add_artist(db, "IU", tmdb_id="1")
        await add_artist(db, "Suzy", tmdb_id="2", social_links_updated_at=days_ago(60))
        await add_artist(db, "Fresh", tmdb_id="3", social_links_updated_at=days_ago(1))
        await add_artist(db, "No TMDB")

        stats = await SocialLinksSyncService(db, tmdb_client).sync_pending(limit=10)

        assert stats == {"processed": 2, "updated": 2, "with_links": 1}

    async def test_failure_does_not_stop_batch(self, db: Database, tmdb_client: MagicMock) -> None:
        tmdb_client.get_person_external_ids.side_effect = [
            ExternalServiceError("TMDB API error: 500", status_code=500),
            {"twitter_id": "BTS_twt"},
        ]
        await add_artist(db, "Broken", tmdb_id="1")
        await add_artist(db, "BTS", tmdb_id="2")

        stats = await SocialLinksSyncService(db, tmdb_client).sync_pending()

        assert stats == {"processed": 2, "updated": 1, "with_links": 1}
