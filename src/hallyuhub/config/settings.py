"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/hallyuhub.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")
    pool_pre_ping: bool = Field(default=True)
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=3600, ge=-1)
    # Hey future me - only for dev/tests! Production schema comes from `alembic upgrade head`.
    auto_create_tables: bool = Field(default=False)


class TMDBSettings(BaseModel):
    """TMDB API settings."""

    # Either credential works: v4 read access token goes in the Authorization header,
    # v3 api_key goes in the query string.
    read_access_token: str | None = Field(default=None, description="TMDB v4 read access token")
    api_key: str | None = Field(default=None, description="TMDB v3 API key")
    base_url: str = Field(default="https://api.themoviedb.org/3")
    image_base_url: str = Field(default="https://image.tmdb.org/t/p/w500")
    backdrop_base_url: str = Field(default="https://image.tmdb.org/t/p/original")
    language: str = Field(default="ko-KR")
    translation_language: str = Field(default="pt", description="ISO 639-1 title language")
    watch_region: str = Field(default="BR")
    certification_country: str = Field(default="BR", description="ISO 3166-1 age rating country")
    max_retries: int = Field(default=3, ge=0)
    initial_retry_delay: float = Field(default=2.0, ge=0)


class MusicBrainzSettings(BaseModel):
    """MusicBrainz API settings."""

    app_name: str = Field(default="HallyuHub")
    app_version: str = Field(default="1.0")
    contact: str = Field(default="https://hallyuhub.com.br")
    min_search_score: int = Field(default=90, ge=0, le=100)


class SyncSettings(BaseModel):
    """Defaults for the enrichment sync jobs."""

    default_concurrency: int = Field(default=3, ge=1, le=10)
    outdated_after_days: int = Field(default=7, ge=1)
    stale_after_days: int = Field(default=30, ge=1)
    duplicate_sample_size: int = Field(default=500, ge=2)
    cron_lock_ttl_minutes: int = Field(default=30, ge=1)
    cron_max_limit: int = Field(default=20, ge=1)


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_json_format: bool = Field(default=False)


class Settings(BaseSettings):
    """Root settings object.

    Nested sections are populated from env vars using ``__`` as delimiter,
    e.g. ``DATABASE__URL`` or ``TMDB__API_KEY``.
    """

    app_name: str = Field(default="hallyuhub")
    app_version: str = Field(default="1.0.0")
    log_level: str = Field(default="INFO")
    cron_secret: str | None = Field(
        default=None, description="Shared secret required by /api/cron endpoints"
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    tmdb: TMDBSettings = Field(default_factory=TMDBSettings)
    musicbrainz: MusicBrainzSettings = Field(default_factory=MusicBrainzSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for non-file databases."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path.startswith(":memory:"):
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Return the cached settings instance."""
    return Settings()
