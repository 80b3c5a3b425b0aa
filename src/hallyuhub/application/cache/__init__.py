"""Caching layer - Cache implementations for reducing API calls."""

from hallyuhub.application.cache.base_cache import BaseCache, InMemoryCache
from hallyuhub.application.cache.tmdb_cache import TmdbCache

__all__ = ["BaseCache", "InMemoryCache", "TmdbCache"]
