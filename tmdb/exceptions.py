"""
TMDB exception hierarchy.

Every failure talking to TMDB is translated into one of these so the
resolver can treat "this lookup didn't work" uniformly, while callers that
care can still tell a rate limit from a bad API key.

    TmdbError
    ├── TmdbTemporaryError (TransientError)  network, timeout, 429, 5xx
    ├── TmdbPermanentError (PermanentError)  401/403, other 4xx, bad JSON
    └── TmdbNotFound       (PermanentError)  404
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from validation.errors import PermanentError, TransientError, classify_exception

logger = logging.getLogger(__name__)


class TmdbError(Exception):
    """Base class for TMDB failures."""


class TmdbTemporaryError(TmdbError, TransientError):
    """Retry-able TMDB failure (network, timeout, rate limit, 5xx)."""


class TmdbPermanentError(TmdbError, PermanentError):
    """Non-retry-able TMDB failure (auth, bad request, malformed response)."""


class TmdbNotFound(TmdbError, PermanentError):
    """The requested TMDB resource does not exist."""


def translate_tmdb_exception(exc: BaseException) -> TmdbError:
    """
    Convert an httpx / asyncio exception into the TMDB hierarchy.

    Args:
        exc: Exception raised while talking to TMDB

    Returns:
        A TmdbError instance chained to the original via __cause__ by the caller
    """
    if isinstance(exc, TmdbError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return TmdbNotFound(f"TMDB resource not found: {exc.request.url.path}")
        if status in (401, 403):
            return TmdbPermanentError(f"TMDB rejected credentials (HTTP {status})")

    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return TmdbTemporaryError(f"TMDB request timed out: {exc}")

    if classify_exception(exc) is TransientError:
        return TmdbTemporaryError(f"TMDB temporarily unavailable: {type(exc).__name__}: {exc}")
    return TmdbPermanentError(f"TMDB request failed: {type(exc).__name__}: {exc}")
