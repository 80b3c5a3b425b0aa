"""
Data Transfer Objects between the API clients and the sync services.

Hey future me - clients return raw JSON dicts, the services turn them into these DTOs
before touching the database. Keeps TMDB/MusicBrainz field names out of the
persistence code.

Flow: API Response → DTO (normalized) → Sync Service → ORM models
"""

from dataclasses import dataclass, field
from datetime import date

from hallyuhub.domain.entities import AlbumType, ProductionType


@dataclass
class TmdbProductionData:
    """A movie or TV show credit, normalized for the catalog."""

    tmdb_id: int
    tmdb_type: str  # "movie" | "tv"
    title: str
    title_kr: str | None = None
    year: int | None = None
    synopsis: str | None = None
    image_url: str | None = None
    release_date: date | None = None
    runtime: int | None = None
    vote_average: float | None = None
    streaming_platforms: list[str] = field(default_factory=list)
    role: str | None = None

    @property
    def production_type(self) -> ProductionType:
        return ProductionType.from_tmdb_type(self.tmdb_type)


@dataclass
class MusicBrainzRelease:
    """A release group (album/EP/single) from MusicBrainz."""

    mbid: str
    title: str
    type: AlbumType
    first_release_date: str | None = None  # 'YYYY-MM-DD', 'YYYY-MM' or 'YYYY'
    cover_url: str | None = None


@dataclass
class MusicBrainzGroup:
    """The band an artist currently belongs to."""

    mbid: str
    name: str
    role: str | None = None


__all__ = ["MusicBrainzGroup", "MusicBrainzRelease", "TmdbProductionData"]
