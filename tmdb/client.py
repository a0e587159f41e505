"""
Async TMDB v3 API client.

Design notes:
- Supports v3 API keys (sent as the ``api_key`` query parameter) and v4
  read access tokens (sent as ``Authorization: Bearer``). The mode is
  inferred from the key shape: v4 tokens are JWTs and start with "eyJ".
- Every request carries the configured locale and an httpx timeout.
- Raises the tmdb.exceptions hierarchy; never returns partial data.
- Returns raw JSON dicts. Normalization lives in tmdb.models so the cache
  can store upstream payloads verbatim.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from tmdb.exceptions import TmdbError, TmdbPermanentError, translate_tmdb_exception
from tmdb.models import MediaType
from validation.config import EnricherConfig

logger = logging.getLogger(__name__)

BASE_URL = "https://api.themoviedb.org/3"
IMAGE_BASE_URL = "https://image.tmdb.org/t/p/original"


class TmdbClient:
    """
    Thin async wrapper around the three TMDB lookups the resolver needs,
    plus image download for artifact materialization.

    Usage::

        async with TmdbClient.from_config(config) as tmdb:
            found = await tmdb.find_by_external_id("tt0133093")
            movie = await tmdb.get_details(603, MediaType.MOVIE)
    """

    def __init__(
        self,
        api_key: str,
        language: str = "en-US",
        timeout: float = 10.0,
        download_timeout: float = 30.0,
        base_url: str = BASE_URL,
        image_base_url: str = IMAGE_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            api_key:          v3 API key or v4 bearer token
            language:         TMDB locale, e.g. "en-US"
            timeout:          Total timeout for API requests in seconds
            download_timeout: Total timeout for image downloads in seconds
            base_url:         API root (overridable for tests)
            image_base_url:   Image CDN root for original-size images
            client:           Optional pre-built httpx client (tests)
        """
        if not api_key:
            raise ValueError("TMDB api_key is required")

        self._api_key = api_key
        self._is_bearer = api_key.startswith("eyJ")
        self._language = language
        self._base_url = base_url.rstrip("/")
        self._image_base_url = image_base_url.rstrip("/")
        self._download_timeout = download_timeout

        headers = {"Accept": "application/json"}
        if self._is_bearer:
            headers["Authorization"] = f"Bearer {api_key}"

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
        )
        if client is not None and self._is_bearer:
            self._client.headers["Authorization"] = f"Bearer {api_key}"

        logger.debug(
            "TmdbClient initialised — auth=%s language=%s",
            "bearer" if self._is_bearer else "api_key",
            language,
        )

    @classmethod
    def from_config(cls, config: EnricherConfig, **kwargs: Any) -> "TmdbClient":
        """Build a client from a configuration snapshot."""
        return cls(
            api_key=config.api_key or "",
            language=config.language,
            timeout=config.request_timeout,
            download_timeout=config.download_timeout,
            **kwargs,
        )

    @property
    def uses_bearer_token(self) -> bool:
        return self._is_bearer

    @property
    def language(self) -> str:
        return self._language

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "TmdbClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _params(self, **params: Any) -> dict[str, str]:
        query = {"language": self._language}
        query.update({k: str(v) for k, v in params.items() if v is not None})
        if not self._is_bearer:
            query["api_key"] = self._api_key
        return query

    async def _get_json(self, path: str, **params: Any) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._client.get(url, params=self._params(**params))
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise translate_tmdb_exception(exc) from exc

        if not isinstance(body, dict):
            raise TmdbPermanentError(f"Unexpected TMDB response for {path}: {type(body).__name__}")
        return body

    async def find_by_external_id(
        self, external_id: str, source: str = "imdb_id"
    ) -> dict[str, Any]:
        """
        Look up TMDB entries by an external id (GET /find/{id}).

        Returns:
            Raw response with ``movie_results``, ``tv_results``, ... buckets
        """
        logger.debug(f"TMDB find {source}={external_id}")
        return await self._get_json(f"find/{external_id}", external_source=source)

    async def get_details(self, tmdb_id: int | str, media_type: MediaType) -> dict[str, Any]:
        """
        Fetch the full record for a movie or series (GET /movie/{id}, /tv/{id}).

        The returned payload is tagged with ``media_type`` so a cached copy
        still knows which endpoint it came from.
        """
        logger.debug(f"TMDB details {media_type.value}/{tmdb_id}")
        payload = await self._get_json(f"{media_type.value}/{tmdb_id}")
        payload.setdefault("media_type", media_type.value)
        return payload

    async def search(
        self,
        query: str,
        media_type: MediaType,
        year: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """
        Text search (GET /search/movie or /search/tv).

        Args:
            query:      Title to search for
            media_type: Which catalog to search
            year:       Optional release year (first air year for series)

        Returns:
            Search hits in TMDB's order (may be empty)
        """
        year_param = "first_air_date_year" if media_type is MediaType.TV else "year"
        params: dict[str, Any] = {"query": query}
        if year:
            params[year_param] = year
        logger.debug(f"TMDB search {media_type.value} query={query!r} year={year}")
        body = await self._get_json(f"search/{media_type.value}", **params)
        results = body.get("results") or []
        return [r for r in results if isinstance(r, dict)]

    def image_url(self, image_path: str) -> str:
        """Full original-size URL for a relative image path like "/abc.jpg"."""
        return f"{self._image_base_url}/{image_path.lstrip('/')}"

    async def download_image(self, image_path: str) -> bytes:
        """
        Download an image from the TMDB CDN.

        Raises:
            TmdbError: Download failed or returned an empty body
        """
        url = self.image_url(image_path)
        try:
            response = await self._client.get(url, timeout=self._download_timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise translate_tmdb_exception(exc) from exc

        if not response.content:
            raise TmdbPermanentError(f"Empty image body from {url}")
        logger.debug(f"Downloaded {len(response.content)} bytes from {url}")
        return response.content


__all__ = ["TmdbClient", "TmdbError", "BASE_URL", "IMAGE_BASE_URL"]
