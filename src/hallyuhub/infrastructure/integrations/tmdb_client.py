"""TMDB HTTP client with rate limiting and retry."""

import asyncio
import logging
from typing import Any, cast

import httpx

from hallyuhub.config.settings import TMDBSettings
from hallyuhub.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    NotFoundError,
    RateLimitExceededError,
)
from hallyuhub.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60


class TMDBClient:
    """HTTP client for The Movie Database (TMDB) API v3.

    Every request goes through the shared token bucket and is retried on transient
    failures with exponential backoff (initial_retry_delay * 2^attempt).
    429 waits for Retry-After, 404 raises NotFoundError immediately.

    Usage:
        async with TMDBClient(settings.tmdb) as tmdb:
            person = await tmdb.find_person("IU", "아이유")
    """

    def __init__(
        self,
        settings: TMDBSettings,
        rate_limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter or RateLimiter.for_tmdb()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.read_access_token or self.settings.api_key)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            if not self.is_configured:
                raise ConfigurationError("TMDB API key is not configured")

            headers = {"Accept": "application/json"}
            params: dict[str, str] = {}
            if self.settings.read_access_token:
                headers["Authorization"] = f"Bearer {self.settings.read_access_token}"
            else:
                params["api_key"] = cast(str, self.settings.api_key)

            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers=headers,
                params=params,
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "TMDBClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # Hey future me, attempt counting: 429s and failures BOTH consume an attempt, so a provider
    # that keeps throttling us gives up after max_retries+1 tries instead of spinning forever.
    # 404 is a real answer ("no such person/show") and must never be retried.
    async def _request(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """GET a TMDB endpoint and return the decoded JSON body.

        Raises:
            NotFoundError: TMDB answered 404
            RateLimitExceededError: still throttled after all retries
            ExternalServiceError: other HTTP/transport failures after all retries
        """
        client = await self._get_client()
        max_retries = self.settings.max_retries
        last_error: ExternalServiceError | None = None

        for attempt in range(max_retries + 1):
            await self.rate_limiter.acquire()

            try:
                response = await client.get(path, params=params)
            except httpx.TransportError as e:
                last_error = ExternalServiceError(f"TMDB request failed: {e}")
            else:
                if response.status_code == 429:
                    retry_after = _parse_retry_after(response)
                    last_error = RateLimitExceededError(
                        f"TMDB rate limit exceeded on {path}", retry_after=retry_after
                    )
                    if attempt < max_retries:
                        await self.rate_limiter.handle_rate_limit_response(retry_after)
                    continue

                if response.status_code == 404:
                    raise NotFoundError(f"TMDB resource not found: {path}")

                if response.is_success:
                    self.rate_limiter.reset_backoff()
                    return cast(dict[str, Any], response.json())

                last_error = ExternalServiceError(
                    f"TMDB API error: {response.status_code} on {path}",
                    status_code=response.status_code,
                )

            if attempt < max_retries:
                delay = self.settings.initial_retry_delay * (2**attempt)
                logger.warning(
                    f"TMDB request failed (attempt {attempt + 1}/{max_retries + 1}), "
                    f"retrying in {delay:.1f}s: {last_error.message}"
                )
                await asyncio.sleep(delay)

        assert last_error is not None
        raise last_error

    # =========================================================================
    # PEOPLE
    # =========================================================================

    async def search_person(self, query: str) -> dict[str, Any] | None:
        """Search people by name and return the most popular hit (or None)."""
        data = await self._request(
            "/search/person", params={"query": query, "language": self.settings.language}
        )
        results = data.get("results") or []
        if not results:
            return None
        return cast(dict[str, Any], max(results, key=lambda p: p.get("popularity") or 0))

    async def find_person(self, name_romanized: str, name_hangul: str | None) -> dict[str, Any] | None:
        """Find a person by romanized name, falling back to the Hangul name."""
        person = await self.search_person(name_romanized)
        if person is None and name_hangul:
            person = await self.search_person(name_hangul)
        return person

    async def get_person_details(self, person_id: int) -> dict[str, Any]:
        return await self._request(
            f"/person/{person_id}", params={"language": self.settings.language}
        )

    async def get_person_combined_credits(self, person_id: int) -> dict[str, Any]:
        """Movie + TV credits of a person ({"cast": [...], "crew": [...]})."""
        return await self._request(
            f"/person/{person_id}/combined_credits", params={"language": self.settings.language}
        )

    async def get_person_external_ids(self, person_id: int | str) -> dict[str, Any]:
        """instagram_id, twitter_id, facebook_id, youtube_id, tiktok_id, imdb_id..."""
        return await self._request(f"/person/{person_id}/external_ids")

    # =========================================================================
    # PRODUCTIONS (tmdb_type is "movie" or "tv")
    # =========================================================================

    async def search_production(self, tmdb_type: str, query: str) -> list[dict[str, Any]]:
        """Search movies or TV shows by title, in TMDB's relevance order."""
        data = await self._request(
            f"/search/{tmdb_type}",
            params={"query": query, "language": self.settings.language, "page": 1},
        )
        return cast(list[dict[str, Any]], data.get("results") or [])

    async def get_production_details(
        self, tmdb_type: str, tmdb_id: int, append_to_response: str | None = None
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"language": self.settings.language}
        if append_to_response:
            params["append_to_response"] = append_to_response
        return await self._request(f"/{tmdb_type}/{tmdb_id}", params=params)

    async def get_production_translations(self, tmdb_type: str, tmdb_id: int) -> dict[str, Any]:
        return await self._request(f"/{tmdb_type}/{tmdb_id}/translations")

    async def get_watch_providers(self, tmdb_type: str, tmdb_id: int) -> dict[str, Any]:
        return await self._request(f"/{tmdb_type}/{tmdb_id}/watch/providers")

    async def get_production_credits(self, tmdb_type: str, tmdb_id: int) -> dict[str, Any]:
        return await self._request(
            f"/{tmdb_type}/{tmdb_id}/credits", params={"language": self.settings.language}
        )

    # Movies and shows publish ratings differently: movies per release (release_dates),
    # shows once per country (content_ratings). Both are lists keyed by iso_3166_1.
    async def get_production_certifications(
        self, tmdb_type: str, tmdb_id: int
    ) -> list[dict[str, Any]]:
        endpoint = "release_dates" if tmdb_type == "movie" else "content_ratings"
        data = await self._request(f"/{tmdb_type}/{tmdb_id}/{endpoint}")
        return cast(list[dict[str, Any]], data.get("results") or [])

    def image_url(self, path: str | None) -> str | None:
        """Build a full poster/profile URL from a TMDB image path."""
        if not path:
            return None
        return f"{self.settings.image_base_url}{path}"

    def backdrop_url(self, path: str | None) -> str | None:
        if not path:
            return None
        return f"{self.settings.backdrop_base_url}{path}"


def _parse_retry_after(response: httpx.Response) -> float:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return float(DEFAULT_RETRY_AFTER_SECONDS)
    try:
        return float(raw)
    except ValueError:
        return float(DEFAULT_RETRY_AFTER_SECONDS)
