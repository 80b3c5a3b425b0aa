"""TMDB response cache.

Hey future me - a filmography sync fetches details + translations + watch providers for EVERY
credit, and the same K-drama shows up in the credits of all its cast members. Caching the
production lookups is what keeps a batch of 10 artists from burning thousands of requests.
"""

from typing import Any

from hallyuhub.application.cache.base_cache import InMemoryCache


class TmdbCache:
    """Cache for TMDB API responses, keyed by TMDB ids."""

    PERSON_TTL = 86400  # 24 hours (person search + credits)
    PRODUCTION_TTL = 604800  # 7 days (movie/TV details)

    def __init__(self) -> None:
        self._cache: InMemoryCache[str, Any] = InMemoryCache()

    def _make_person_key(self, name_romanized: str, name_hangul: str | None) -> str:
        return f"tmdb:person:{name_romanized}:{name_hangul or ''}"

    def _make_credits_key(self, person_id: int) -> str:
        return f"tmdb:credits:{person_id}"

    def _make_production_key(self, tmdb_type: str, tmdb_id: int) -> str:
        return f"tmdb:{tmdb_type}:{tmdb_id}"

    # =========================================================================
    # PERSON
    # =========================================================================

    async def get_person(self, name_romanized: str, name_hangul: str | None) -> dict[str, Any] | None:
        return await self._cache.get(self._make_person_key(name_romanized, name_hangul))

    async def cache_person(
        self, name_romanized: str, name_hangul: str | None, person: dict[str, Any]
    ) -> None:
        await self._cache.set(
            self._make_person_key(name_romanized, name_hangul), person, self.PERSON_TTL
        )

    async def get_credits(self, person_id: int) -> dict[str, Any] | None:
        return await self._cache.get(self._make_credits_key(person_id))

    async def cache_credits(self, person_id: int, credits: dict[str, Any]) -> None:
        await self._cache.set(self._make_credits_key(person_id), credits, self.PERSON_TTL)

    # =========================================================================
    # PRODUCTION
    # =========================================================================

    async def get_production(self, tmdb_type: str, tmdb_id: int) -> dict[str, Any] | None:
        return await self._cache.get(self._make_production_key(tmdb_type, tmdb_id))

    async def cache_production(
        self, tmdb_type: str, tmdb_id: int, details: dict[str, Any]
    ) -> None:
        await self._cache.set(
            self._make_production_key(tmdb_type, tmdb_id), details, self.PRODUCTION_TTL
        )

    async def clear(self) -> None:
        await self._cache.clear()

    def get_stats(self) -> dict[str, Any]:
        return self._cache.get_stats()
