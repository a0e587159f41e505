"""
Disk-backed cache of TMDB responses, keyed by content identifier.

Provides a CatalogCache class that stores raw TMDB detail payloads on disk
using diskcache. Keys are the item's sampling identifier (midhash CID), not
the store's own content reference, so two files with identical sampled
content share one entry.

Key design decisions:
- SQLite-backed storage via diskcache
- Raw upstream payloads are stored, never normalized records, so
  normalization can evolve without invalidating the cache
- No expiry: an entry lives until force-recompute replaces it
- Best-effort: read failures are misses, write failures are logged and
  swallowed. Caching is an optimization, never a reason to fail a run.

Example:
    >>> from tmdb.cache import CatalogCache
    >>> cache = CatalogCache("/cache")
    >>> cache.put("bafkrei...", {"id": 603, "title": "The Matrix"})
    >>> cache.get("bafkrei...")["title"]
    'The Matrix'
"""

import asyncio
import logging
import os
from typing import Any, Dict, Optional

from diskcache import Cache

logger = logging.getLogger('tmdb_enricher.tmdb.cache')


class CatalogCache:
    """
    Disk-backed cache of raw TMDB payloads.

    Args:
        cache_dir: Directory for the cache database (created if missing)
        size_limit: Maximum cache size in bytes (default: 512MB)

    Example:
        >>> cache = CatalogCache("/cache")
        >>> if (payload := cache.get(sample_id)) is None:
        ...     payload = fetch_from_tmdb()
        ...     cache.put(sample_id, payload)
    """

    # Default size limit: 512MB (payloads are a few KB each)
    DEFAULT_SIZE_LIMIT = 512 * 1024 * 1024

    KEY_SUFFIX = "_tmdb"

    def __init__(self, cache_dir: str, size_limit: int = DEFAULT_SIZE_LIMIT) -> None:
        self._cache_dir = cache_dir
        self._size_limit = size_limit

        os.makedirs(cache_dir, exist_ok=True)
        self._cache = Cache(cache_dir, size_limit=size_limit)

        self._hits = 0
        self._misses = 0
        self._write_failures = 0

        logger.debug(f"CatalogCache initialized at {cache_dir} (limit: {size_limit} bytes)")

    def _make_key(self, sample_id: str) -> str:
        """Generate cache key for a sampling identifier."""
        return f"{sample_id}{self.KEY_SUFFIX}"

    def get(self, sample_id: str) -> Optional[Dict[str, Any]]:
        """
        Get the cached TMDB payload for a sampling identifier.

        Args:
            sample_id: Content identifier of the media file

        Returns:
            Raw TMDB payload dict, or None on miss or read failure
        """
        if not sample_id:
            return None

        try:
            result = self._cache.get(self._make_key(sample_id))
        except Exception as e:
            logger.debug(f"Cache read failed for {sample_id}: {e}")
            result = None

        if isinstance(result, dict):
            self._hits += 1
            logger.debug(f"Cache hit for {sample_id}")
            return result

        self._misses += 1
        logger.debug(f"Cache miss for {sample_id}")
        return None

    def put(self, sample_id: str, payload: Dict[str, Any]) -> bool:
        """
        Store a raw TMDB payload, replacing any previous entry.

        Args:
            sample_id: Content identifier of the media file
            payload: Raw TMDB payload

        Returns:
            True if written, False if the write failed (already logged)
        """
        if not sample_id:
            return False

        try:
            self._cache.set(self._make_key(sample_id), payload)
        except Exception as e:
            self._write_failures += 1
            logger.warning(f"Failed to cache TMDB data for {sample_id}: {e}")
            return False

        logger.debug(f"Cached TMDB data for {sample_id}")
        return True

    async def aget(self, sample_id: str) -> Optional[Dict[str, Any]]:
        """get() run in a worker thread, keeping SQLite I/O off the event loop."""
        return await asyncio.to_thread(self.get, sample_id)

    async def aput(self, sample_id: str, payload: Dict[str, Any]) -> bool:
        """put() run in a worker thread, keeping SQLite I/O off the event loop."""
        return await asyncio.to_thread(self.put, sample_id, payload)

    def delete(self, sample_id: str) -> None:
        """Remove the entry for a sampling identifier, if any."""
        self._cache.delete(self._make_key(sample_id))

    def clear(self) -> None:
        """Clear all cached data and reset statistics."""
        self._cache.clear()
        self._hits = 0
        self._misses = 0
        self._write_failures = 0
        logger.info("Cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache hit/miss statistics.

        Returns:
            Dict with keys:
            - hits: Number of cache hits this session
            - misses: Number of cache misses this session
            - hit_rate: Hit rate as percentage (0-100)
            - write_failures: Number of swallowed write failures
            - count: Number of cached entries
        """
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0.0

        try:
            count = len(self._cache)
        except Exception:
            count = 0

        return {
            'hits': self._hits,
            'misses': self._misses,
            'hit_rate': hit_rate,
            'write_failures': self._write_failures,
            'count': count,
        }

    def close(self) -> None:
        """Close the cache connection."""
        self._cache.close()
        logger.debug("Cache closed")

    def __repr__(self) -> str:
        stats = self.get_stats()
        return (
            f"CatalogCache(cache_dir={self._cache_dir!r}, "
            f"items={stats['count']}, "
            f"hit_rate={stats['hit_rate']:.1f}%)"
        )
