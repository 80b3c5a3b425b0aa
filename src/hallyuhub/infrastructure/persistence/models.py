"""SQLAlchemy ORM models for HallyuHub."""

import uuid
from datetime import UTC, date, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! UTC datetimes come back naive.
# Use this before comparing anything loaded from the DB with datetime.now(UTC).
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AgencyModel(Base):
    """Entertainment agency (HYBE, SM, JYP...)."""

    __tablename__ = "agencies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    artists: Mapped[list["ArtistModel"]] = relationship("ArtistModel", back_populates="agency")


# Listen up, ArtistModel is the CORE entity - favorites, productions, albums, groups and news
# all point here. name_romanized, mbid and tmdb_id are UNIQUE, which is why the merge deletes
# the duplicate BEFORE writing transferred ids onto the keeper.
# stage_names/roles/social_links are JSON columns (list/list/dict).
class ArtistModel(Base):
    """SQLAlchemy model for an artist (idol, actor, soloist)."""

    __tablename__ = "artists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name_romanized: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name_hangul: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    birth_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    birth_date: Mapped[date | None] = mapped_column(sa.Date, nullable=True)
    height: Mapped[str | None] = mapped_column(String(20), nullable=True)
    blood_type: Mapped[str | None] = mapped_column(String(5), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    primary_image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    place_of_birth: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stage_names: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    roles: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    mbid: Mapped[str | None] = mapped_column(String(36), nullable=True, unique=True)
    tmdb_id: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    agency_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("agencies.id", ondelete="SET NULL"), nullable=True, index=True
    )

    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favorite_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # {"instagram": url, "twitter": url, ...} or NULL when TMDB knows nothing
    social_links: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    social_links_updated_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    # PENDING / SYNCED / NOT_FOUND / ERROR (plain string, not enum - SQLite compatibility)
    tmdb_sync_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING", server_default="PENDING"
    )
    tmdb_last_sync: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    tmdb_last_attempt: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    discography_sync_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    group_sync_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    flagged_as_non_korean: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False, server_default="0"
    )
    flagged_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    agency: Mapped[AgencyModel | None] = relationship("AgencyModel", back_populates="artists")

    __table_args__ = (
        Index("ix_artists_tmdb_last_sync", "tmdb_last_sync"),
        Index("ix_artists_name_romanized_lower", sa.func.lower(name_romanized)),
    )


class ProductionModel(Base):
    """A movie (FILME) or TV series (SERIE)."""

    __tablename__ = "productions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title_pt: Mapped[str] = mapped_column(String(512), nullable=False)
    title_kr: Mapped[str | None] = mapped_column(String(512), nullable=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    synopsis: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    backdrop_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    trailer_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    # DJCTQ rating (L, 10, 12, 14, 16, 18), NULL = unrated
    age_rating: Mapped[str | None] = mapped_column(String(4), nullable=True, index=True)
    tmdb_id: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)
    tmdb_type: Mapped[str | None] = mapped_column(String(10), nullable=True)
    release_date: Mapped[date | None] = mapped_column(sa.Date, nullable=True)
    runtime: Mapped[int | None] = mapped_column(Integer, nullable=True)
    vote_average: Mapped[float | None] = mapped_column(Float, nullable=True)
    streaming_platforms: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    cast_sync_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (Index("ix_productions_year_type", "year", "type"),)


class ArtistProductionModel(Base):
    """Credit link between an artist and a production. Role is the character or crew job."""

    __tablename__ = "artist_productions"

    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True
    )
    production_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("productions.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[str | None] = mapped_column(String(512), nullable=True)


class FavoriteModel(Base):
    """A user's favorite artist."""

    __tablename__ = "favorites"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (sa.UniqueConstraint("user_id", "artist_id", name="uq_favorites_user_artist"),)


class MusicalGroupModel(Base):
    """A K-pop group/band."""

    __tablename__ = "musical_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mbid: Mapped[str | None] = mapped_column(String(36), nullable=True, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )


class ArtistGroupMembershipModel(Base):
    """Membership of an artist in a musical group."""

    __tablename__ = "artist_group_memberships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("musical_groups.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=True, server_default="1"
    )
    role: Mapped[str | None] = mapped_column(String(255), nullable=True)
    leave_date: Mapped[date | None] = mapped_column(sa.Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    group: Mapped[MusicalGroupModel] = relationship("MusicalGroupModel")

    __table_args__ = (
        sa.UniqueConstraint("artist_id", "group_id", name="uq_membership_artist_group"),
    )


class NewsModel(Base):
    """A news article. Only the artist links matter to the enrichment core."""

    __tablename__ = "news"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )


class NewsArtistModel(Base):
    """Artist tagged in a news article."""

    __tablename__ = "news_artists"

    news_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("news.id", ondelete="CASCADE"), primary_key=True
    )
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True
    )


class AlbumModel(Base):
    """Album/EP/single of an artist."""

    __tablename__ = "albums"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    artist_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("artists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    # ALBUM / EP / SINGLE
    type: Mapped[str] = mapped_column(String(10), nullable=False, default="ALBUM")
    # Partial dates are common in MusicBrainz: 'YYYY', 'YYYY-MM' or 'YYYY-MM-DD'
    release_date: Mapped[str | None] = mapped_column(String(10), nullable=True)
    cover_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    mbid: Mapped[str | None] = mapped_column(String(36), nullable=True, unique=True)
    spotify_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    apple_music_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    youtube_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )


class ActivityModel(Base):
    """Activity feed entry. entity_id is polymorphic, so there is no foreign key."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (Index("ix_activities_entity", "entity_type", "entity_id"),)


# Hey future me - one row per cron job name. expires_at lets a crashed worker's lock
# be taken over instead of blocking the job forever.
class CronLockModel(Base):
    """Distributed lock for cron jobs."""

    __tablename__ = "cron_locks"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    locked_by: Mapped[str] = mapped_column(String(100), nullable=False)
    locked_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
