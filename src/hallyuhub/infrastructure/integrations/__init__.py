"""External API clients (TMDB, MusicBrainz)."""

from hallyuhub.infrastructure.integrations.musicbrainz_client import MusicBrainzClient
from hallyuhub.infrastructure.integrations.tmdb_client import TMDBClient

__all__ = ["MusicBrainzClient", "TMDBClient"]
