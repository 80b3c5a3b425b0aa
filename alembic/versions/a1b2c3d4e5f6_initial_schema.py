"""initial schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-01-12 10:00:00.000000

Hey future me - this is the WHOLE catalog schema the enrichment core touches:
artists + everything that points at them (favorites, credits, memberships, news
links, albums) plus the cron_locks table.

Unique columns that matter for the merge: artists.name_romanized, artists.mbid,
artists.tmdb_id. The merge deletes the duplicate BEFORE writing them to the keeper.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "agencies",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        _created_at(),
    )

    op.create_table(
        "artists",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name_romanized", sa.String(255), nullable=False, unique=True),
        sa.Column("name_hangul", sa.String(255), nullable=True),
        sa.Column("birth_name", sa.String(255), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("height", sa.String(20), nullable=True),
        sa.Column("blood_type", sa.String(5), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("primary_image_url", sa.String(512), nullable=True),
        sa.Column("place_of_birth", sa.String(255), nullable=True),
        sa.Column("stage_names", sa.JSON(), nullable=False),
        sa.Column("roles", sa.JSON(), nullable=False),
        sa.Column("mbid", sa.String(36), nullable=True, unique=True),
        sa.Column("tmdb_id", sa.String(20), nullable=True, unique=True),
        sa.Column(
            "agency_id",
            sa.String(36),
            sa.ForeignKey("agencies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("favorite_count", sa.Integer(), nullable=False),
        sa.Column("social_links", sa.JSON(), nullable=True),
        sa.Column("social_links_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "tmdb_sync_status", sa.String(20), nullable=False, server_default="PENDING"
        ),
        sa.Column("tmdb_last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tmdb_last_attempt", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discography_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("group_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "flagged_as_non_korean", sa.Boolean(), nullable=False, server_default="0"
        ),
        sa.Column("flagged_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_artists_name_hangul", "artists", ["name_hangul"])
    op.create_index("ix_artists_agency_id", "artists", ["agency_id"])
    op.create_index("ix_artists_tmdb_last_sync", "artists", ["tmdb_last_sync"])
    op.create_index(
        "ix_artists_name_romanized_lower", "artists", [sa.text("lower(name_romanized)")]
    )

    op.create_table(
        "productions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title_pt", sa.String(512), nullable=False),
        sa.Column("title_kr", sa.String(512), nullable=True),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("synopsis", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(512), nullable=True),
        sa.Column("tmdb_id", sa.String(20), nullable=True, unique=True),
        sa.Column("tmdb_type", sa.String(10), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("runtime", sa.Integer(), nullable=True),
        sa.Column("vote_average", sa.Float(), nullable=True),
        sa.Column("streaming_platforms", sa.JSON(), nullable=False),
        sa.Column("cast_sync_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_productions_year_type", "productions", ["year", "type"])

    op.create_table(
        "artist_productions",
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "production_id",
            sa.String(36),
            sa.ForeignKey("productions.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.String(512), nullable=True),
    )

    op.create_table(
        "favorites",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _created_at(),
        sa.UniqueConstraint("user_id", "artist_id", name="uq_favorites_user_artist"),
    )
    op.create_index("ix_favorites_user_id", "favorites", ["user_id"])
    op.create_index("ix_favorites_artist_id", "favorites", ["artist_id"])

    op.create_table(
        "musical_groups",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("mbid", sa.String(36), nullable=True, unique=True),
        _created_at(),
    )

    op.create_table(
        "artist_group_memberships",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.String(36),
            sa.ForeignKey("musical_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column("role", sa.String(255), nullable=True),
        sa.Column("leave_date", sa.Date(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("artist_id", "group_id", name="uq_membership_artist_group"),
    )
    op.create_index(
        "ix_artist_group_memberships_artist_id", "artist_group_memberships", ["artist_id"]
    )

    op.create_table(
        "news",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(512), nullable=False),
        _created_at(),
    )

    op.create_table(
        "news_artists",
        sa.Column(
            "news_id",
            sa.String(36),
            sa.ForeignKey("news.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "albums",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "artist_id",
            sa.String(36),
            sa.ForeignKey("artists.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(512), nullable=False),
        sa.Column("type", sa.String(10), nullable=False),
        sa.Column("release_date", sa.String(10), nullable=True),
        sa.Column("cover_url", sa.String(512), nullable=True),
        sa.Column("mbid", sa.String(36), nullable=True, unique=True),
        sa.Column("spotify_url", sa.String(512), nullable=True),
        sa.Column("apple_music_url", sa.String(512), nullable=True),
        sa.Column("youtube_url", sa.String(512), nullable=True),
        _created_at(),
    )
    op.create_index("ix_albums_artist_id", "albums", ["artist_id"])

    op.create_table(
        "activities",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        _created_at(),
    )
    op.create_index("ix_activities_entity", "activities", ["entity_type", "entity_id"])

    op.create_table(
        "cron_locks",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("locked_by", sa.String(100), nullable=False),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("cron_locks")
    op.drop_index("ix_activities_entity", table_name="activities")
    op.drop_table("activities")
    op.drop_index("ix_albums_artist_id", table_name="albums")
    op.drop_table("albums")
    op.drop_table("news_artists")
    op.drop_table("news")
    op.drop_index(
        "ix_artist_group_memberships_artist_id", table_name="artist_group_memberships"
    )
    op.drop_table("artist_group_memberships")
    op.drop_table("musical_groups")
    op.drop_index("ix_favorites_artist_id", table_name="favorites")
    op.drop_index("ix_favorites_user_id", table_name="favorites")
    op.drop_table("favorites")
    op.drop_table("artist_productions")
    op.drop_index("ix_productions_year_type", table_name="productions")
    op.drop_table("productions")
    op.drop_index("ix_artists_name_romanized_lower", table_name="artists")
    op.drop_index("ix_artists_tmdb_last_sync", table_name="artists")
    op.drop_index("ix_artists_agency_id", table_name="artists")
    op.drop_index("ix_artists_name_hangul", table_name="artists")
    op.drop_table("artists")
    op.drop_table("agencies")
