"""
Catalog resolution: turn partial, possibly noisy attributes into one TMDB record.

Strategies are tried in order and the first one that produces a record wins:

1. Cross-reference: the item carries an IMDb id -> /find -> /movie|tv/{id}
2. Title search: original title (or filename-derived title) with a trailing
   year stripped -> /search/movie|tv -> first hit -> /movie|tv/{id}

A strategy that is not applicable returns None. A strategy that fails
(TMDB error, timeout) is logged and the chain moves on. Running out of
strategies is a miss, not an error: resolve() returns None.

No ranking is attempted - TMDB's first result is accepted.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from tmdb.client import TmdbClient
from tmdb.exceptions import TmdbError
from tmdb.models import CatalogRecord, MediaType
from validation.sanitizers import strip_trailing_year

if TYPE_CHECKING:
    from worker.models import KnownAttributes

logger = logging.getLogger(__name__)


def build_search_query(attrs: "KnownAttributes") -> Optional[str]:
    """
    Title to search for, or None when the item has no usable title.

    Prefers the parsed original title over the filename-derived one and
    strips a trailing copy of the known year ("Sintel 2010" -> "Sintel").
    """
    title = attrs.original_title or attrs.file_name
    query = strip_trailing_year(title, attrs.movie_year)
    return query or None


class CatalogResolver:
    """
    Ordered fallback chain over TMDB lookups.

    Args:
        client:           TMDB API client
        strategy_timeout: Wall-clock budget for one strategy in seconds. A
                          strategy that exceeds it counts as failed.
    """

    def __init__(self, client: TmdbClient, strategy_timeout: float = 30.0) -> None:
        self._client = client
        self._strategy_timeout = strategy_timeout

    async def resolve(self, attrs: "KnownAttributes") -> Optional[CatalogRecord]:
        """
        Resolve *attrs* to a CatalogRecord.

        Returns:
            The first record any strategy produced, or None
        """
        strategies: list[tuple[str, Callable[["KnownAttributes"], Awaitable[Optional[CatalogRecord]]]]] = [
            ("cross-reference", self._by_cross_reference),
            ("title search", self._by_title),
        ]

        for name, strategy in strategies:
            try:
                record = await asyncio.wait_for(strategy(attrs), timeout=self._strategy_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"TMDB {name} timed out after {self._strategy_timeout}s, trying next strategy")
                continue
            except TmdbError as exc:
                logger.warning(f"TMDB {name} failed: {exc}")
                continue

            if record is not None:
                logger.info(
                    f"Resolved via {name}: tmdb {record.media_type.value}/{record.tmdb_id} "
                    f"({record.display_title})"
                )
                return record
            logger.debug(f"TMDB {name}: no match")

        return None

    async def _fetch(self, tmdb_id, media_type: MediaType) -> Optional[CatalogRecord]:
        payload = await self._client.get_details(tmdb_id, media_type)
        record = CatalogRecord.from_payload(payload)
        if record is None:
            logger.warning(f"TMDB {media_type.value}/{tmdb_id} returned a payload without an id")
        return record

    async def _by_cross_reference(self, attrs: "KnownAttributes") -> Optional[CatalogRecord]:
        if not attrs.imdb_id:
            return None

        found = await self._client.find_by_external_id(attrs.imdb_id, source="imdb_id")
        for bucket, media_type in (("movie_results", MediaType.MOVIE), ("tv_results", MediaType.TV)):
            hits = found.get(bucket) or []
            if hits and isinstance(hits[0], dict) and hits[0].get("id"):
                return await self._fetch(hits[0]["id"], media_type)
        return None

    async def _by_title(self, attrs: "KnownAttributes") -> Optional[CatalogRecord]:
        query = build_search_query(attrs)
        if not query:
            return None

        media_type = MediaType.from_video_type(attrs.video_type)
        hits = await self._client.search(query, media_type, year=attrs.movie_year)
        if not hits or not hits[0].get("id"):
            return None
        return await self._fetch(hits[0]["id"], media_type)
