"""MusicBrainz HTTP client implementation with rate limiting."""

import asyncio
import logging
from typing import Any, cast

import httpx

from hallyuhub.config.settings import MusicBrainzSettings
from hallyuhub.domain.dtos import MusicBrainzGroup, MusicBrainzRelease
from hallyuhub.domain.entities import AlbumType
from hallyuhub.domain.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

# MusicBrainz release-group type query value → our album type
RELEASE_TYPES: tuple[tuple[str, AlbumType], ...] = (
    ("album", AlbumType.ALBUM),
    ("ep", AlbumType.EP),
    ("single", AlbumType.SINGLE),
)

MEMBER_OF_BAND = "member of band"


class MusicBrainzClient:
    """HTTP client for MusicBrainz API operations with rate limiting."""

    API_BASE_URL = "https://musicbrainz.org/ws/2"
    COVER_ART_BASE_URL = "https://coverartarchive.org"
    RATE_LIMIT_DELAY = 1.1  # MusicBrainz allows 1 req/sec, keep a margin
    SERVICE_UNAVAILABLE_DELAY = 5.0

    # Hey future me, MusicBrainz is STRICT about rate limiting - 1 req/sec, NO EXCEPTIONS!
    # Batch syncs call us from several tasks at once, the lock serializes them. Cover Art
    # Archive requests go through the same lock (it's run by the same people).
    def __init__(
        self,
        settings: MusicBrainzSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()

    @property
    def user_agent(self) -> str:
        # Format matters: "AppName/Version ( contact )"
        return f"{self.settings.app_name}/{self.settings.app_version} ( {self.settings.contact} )"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE_URL,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=30.0,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "MusicBrainzClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    # Yo future me, _last_request_time is updated AFTER the request completes, not before.
    # Slow responses would otherwise let the next request start early.
    async def _rate_limited_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Make a rate-limited request (relative URLs hit the MusicBrainz API)."""
        async with self._rate_limit_lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self._last_request_time
            if time_since_last < self.RATE_LIMIT_DELAY:
                await asyncio.sleep(self.RATE_LIMIT_DELAY - time_since_last)

            client = await self._get_client()
            try:
                return await client.request(method, url, **kwargs)
            finally:
                self._last_request_time = loop.time()

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any] | None:
        """GET JSON. 404 → None, 503 → wait and retry once, other errors raise.

        Raises:
            ExternalServiceError: On non-404 HTTP errors or transport failures
        """
        params = {**params, "fmt": "json"}
        try:
            response = await self._rate_limited_request("GET", url, params=params)
            if response.status_code == 503:
                logger.warning(
                    f"MusicBrainz overloaded (503), retrying in {self.SERVICE_UNAVAILABLE_DELAY}s"
                )
                await asyncio.sleep(self.SERVICE_UNAVAILABLE_DELAY)
                response = await self._rate_limited_request("GET", url, params=params)

            if response.status_code == 404:
                return None
            response.raise_for_status()
            return cast(dict[str, Any], response.json())
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"MusicBrainz API error: {e.response.status_code} on {url}",
                status_code=e.response.status_code,
            ) from e
        except httpx.TransportError as e:
            raise ExternalServiceError(f"MusicBrainz request failed: {e}") from e

    # Hey future me, the quotes make it a Lucene phrase query. We only take the TOP hit and only
    # if MusicBrainz itself is confident (score >= 90) - a wrong mbid attaches someone else's
    # discography to the artist, which is much worse than no discography.
    async def search_artist(self, name: str) -> str | None:
        """Search an artist by name and return its MBID, or None if no confident match."""
        data = await self._get_json("/artist/", {"query": f'"{name}"', "limit": 5})
        artists = (data or {}).get("artists") or []
        if not artists:
            return None

        best = artists[0]
        if int(best.get("score", 0)) < self.settings.min_search_score:
            logger.debug(f"MusicBrainz: low score {best.get('score')} for '{name}'")
            return None
        return cast(str, best["id"])

    async def get_artist_releases(self, mbid: str) -> list[MusicBrainzRelease]:
        """Fetch albums, EPs and singles of an artist.

        Release groups with secondary types (compilation, live, remix...) are skipped.
        """
        releases: list[MusicBrainzRelease] = []

        for query_type, album_type in RELEASE_TYPES:
            data = await self._get_json(
                "/release-group", {"artist": mbid, "type": query_type, "limit": 100}
            )
            if not data:
                continue

            for group in data.get("release-groups") or []:
                if group.get("secondary-types"):
                    continue
                releases.append(
                    MusicBrainzRelease(
                        mbid=group["id"],
                        title=group["title"],
                        type=album_type,
                        first_release_date=group.get("first-release-date") or None,
                        cover_url=await self.get_cover_art(group["id"]),
                    )
                )

        return releases

    async def get_cover_art(self, release_group_mbid: str) -> str | None:
        """Front cover URL from the Cover Art Archive (final redirect target) or None."""
        url = f"{self.COVER_ART_BASE_URL}/release-group/{release_group_mbid}/front"
        try:
            response = await self._rate_limited_request("GET", url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.debug(f"Cover Art Archive lookup failed for {release_group_mbid}: {e}")
            return None

        if not response.is_success:
            return None
        return str(response.url)

    async def get_artist_group(self, mbid: str) -> MusicBrainzGroup | None:
        """Current band of an artist via the "member of band" relation.

        Ended memberships are ignored. Returns None for soloists.
        """
        data = await self._get_json(f"/artist/{mbid}", {"inc": "artist-rels"})
        if not data:
            return None

        for relation in data.get("relations") or []:
            if relation.get("type") != MEMBER_OF_BAND or relation.get("ended"):
                continue
            if relation.get("direction", "forward") != "forward":
                continue
            band = relation.get("artist") or {}
            if not band.get("id"):
                continue
            attributes = relation.get("attributes") or []
            return MusicBrainzGroup(
                mbid=band["id"],
                name=band.get("name", ""),
                role=", ".join(attributes) or None,
            )

        return None
