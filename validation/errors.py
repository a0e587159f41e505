"""
Centralized error classification for upstream calls.

Provides consistent classification of failures from the TMDB catalog,
the meta-core store and the WebDAV backend so every component agrees on
what counts as "try again later" (transient) versus "this will not work"
(permanent).
"""

import asyncio
import logging
from typing import Type

import httpx


class TransientError(Exception):
    """Retry-able errors (network, timeout, 429, 5xx)"""
    pass


class PermanentError(Exception):
    """Non-retry-able errors (4xx except 429, bad data)"""
    pass


# HTTP status codes that indicate transient (retry-able) errors
# 408: Request timeout
# 429: Rate limited - TMDB enforces per-IP request limits
# 5xx: TMDB, meta-core or WebDAV having a bad moment
TRANSIENT_CODES = frozenset({408, 429, 500, 502, 503, 504})

# HTTP status codes that indicate permanent (non-retry-able) errors
# 400: Bad request - malformed query
# 401: Unauthorized - invalid API key / token
# 403: Forbidden - key lacks permission
# 404: Not found - id doesn't exist
# 405: Method not allowed - wrong verb for a store endpoint
# 410: Gone - WebDAV resource removed
# 422: Unprocessable entity - invalid parameters
PERMANENT_CODES = frozenset({400, 401, 403, 404, 405, 410, 422})

logger = logging.getLogger(__name__)


def classify_http_error(status_code: int) -> Type[Exception]:
    """
    Map an HTTP status from TMDB, meta-core or WebDAV onto the error roots.

    Listed codes win. Otherwise any other 4xx is the caller's fault and will
    not change on retry, while 5xx and anything unexpected is treated as the
    server's problem.

    Returns:
        TransientError or PermanentError (the class, not an instance)
    """
    if status_code in TRANSIENT_CODES:
        kind = TransientError
    elif status_code in PERMANENT_CODES or 400 <= status_code < 500:
        kind = PermanentError
    else:
        kind = TransientError

    logger.debug(f"Status {status_code} -> {kind.__name__}")
    return kind


def classify_exception(exc: BaseException) -> Type[Exception]:
    """
    Classify an exception as transient or permanent error.

    Handles:
    - Already classified: Return same type
    - httpx.HTTPStatusError: Classify by response status code
    - httpx transport errors (connect, read, timeout): Transient
    - asyncio / builtin timeouts and OS-level network errors: Transient
    - Validation errors (ValueError, TypeError, KeyError): Permanent
    - Unknown: Transient (safer, allows retry)

    Args:
        exc: The exception to classify

    Returns:
        TransientError or PermanentError class
    """
    if isinstance(exc, TransientError):
        return TransientError

    if isinstance(exc, PermanentError):
        return PermanentError

    if isinstance(exc, httpx.HTTPStatusError):
        return classify_http_error(exc.response.status_code)

    if isinstance(exc, httpx.TransportError):
        logger.debug(f"Transport error classified as transient: {type(exc).__name__}")
        return TransientError

    if isinstance(exc, (asyncio.TimeoutError, ConnectionError, TimeoutError, OSError)):
        logger.debug(f"Network error classified as transient: {type(exc).__name__}")
        return TransientError

    # ValueError covers json.JSONDecodeError from malformed bodies
    if isinstance(exc, (ValueError, TypeError, KeyError, AttributeError)):
        logger.debug(f"Validation error classified as permanent: {type(exc).__name__}")
        return PermanentError

    logger.debug(f"Unknown exception classified as transient: {type(exc).__name__}")
    return TransientError
