"""Base cache interface and in-memory implementation."""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class CacheEntry[V]:
    """Cache entry with value and metadata."""

    value: V
    created_at: float
    ttl_seconds: int

    # Wall-clock based: a backwards clock jump can make entries look expired early.
    def is_expired(self) -> bool:
        return time.time() > (self.created_at + self.ttl_seconds)


class BaseCache[K, V](ABC):
    """Base cache interface for all cache implementations."""

    @abstractmethod
    async def get(self, key: K) -> V | None:
        """Return the cached value, or None if missing or expired."""

    @abstractmethod
    async def set(self, key: K, value: V, ttl_seconds: int = 3600) -> None:
        """Store a value for ttl_seconds."""

    @abstractmethod
    async def delete(self, key: K) -> bool:
        """Delete a key. Returns True if it existed."""

    @abstractmethod
    async def clear(self) -> None:
        """Clear all entries from cache."""


class InMemoryCache[K, V](BaseCache[K, V]):
    """In-memory cache implementation using a dictionary.

    Process-local: a restart drops everything, and several workers do not share entries.
    Good enough for TMDB responses, which are cheap to refetch.
    """

    def __init__(self) -> None:
        self._cache: dict[K, CacheEntry[V]] = {}
        self._lock = asyncio.Lock()

    # get() evicts expired entries on read, so it has a side effect.
    async def get(self, key: K) -> V | None:
        async with self._lock:
            entry = self._cache.get(key)
            if not entry:
                return None

            if entry.is_expired():
                del self._cache[key]
                return None

            return entry.value

    async def set(self, key: K, value: V, ttl_seconds: int = 3600) -> None:
        async with self._lock:
            self._cache[key] = CacheEntry(
                value=value,
                created_at=time.time(),
                ttl_seconds=ttl_seconds,
            )

    async def delete(self, key: K) -> bool:
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()

    async def cleanup_expired(self) -> int:
        """Remove expired entries from cache.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            expired_keys = [key for key, entry in self._cache.items() if entry.is_expired()]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)

    # Not locked: stats are for monitoring and may be slightly stale.
    def get_stats(self) -> dict[str, Any]:
        total_entries = len(self._cache)
        expired_entries = sum(1 for entry in self._cache.values() if entry.is_expired())

        return {
            "total_entries": total_entries,
            "active_entries": total_entries - expired_entries,
            "expired_entries": expired_entries,
        }
