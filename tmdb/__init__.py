"""
TMDB catalog module for the enricher.

This module provides everything needed to go from known file attributes to a
normalized TMDB record: the HTTP client, exception hierarchy, normalization,
the fallback resolver, and the response cache.

Classes:
    TmdbClient: Async TMDB v3 client (API key or v4 bearer token)
    CatalogResolver: Ordered cross-reference / title-search fallback chain
    CatalogRecord: Normalized movie or series record
    MediaType: Movie vs TV catalog
    CatalogCache: Disk-backed cache of raw payloads keyed by content id

Exceptions:
    TmdbError: Base class
    TmdbTemporaryError: Retry-able (network, timeout, 429, 5xx)
    TmdbPermanentError: Non-retry-able (auth, bad request)
    TmdbNotFound: Resource does not exist
"""

from tmdb.exceptions import (
    TmdbError,
    TmdbTemporaryError,
    TmdbPermanentError,
    TmdbNotFound,
    translate_tmdb_exception,
)
from tmdb.models import CatalogRecord, MediaType
from tmdb.client import TmdbClient
from tmdb.resolver import CatalogResolver, build_search_query
from tmdb.cache import CatalogCache

__all__ = [
    # Client
    'TmdbClient',
    # Exceptions
    'TmdbError',
    'TmdbTemporaryError',
    'TmdbPermanentError',
    'TmdbNotFound',
    'translate_tmdb_exception',
    # Records
    'CatalogRecord',
    'MediaType',
    # Resolution
    'CatalogResolver',
    'build_search_query',
    # Caching
    'CatalogCache',
]
