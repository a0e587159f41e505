"""
shared_lib.meta_core_client — Async client for the meta-core metadata store.

Design notes:
- Best-effort: no method raises for transport or HTTP failures. Every call
  returns a CallResult so the caller can log, retry or ignore per call site.
  An unavailable store degrades to logged warnings.
- All writes are idempotent on the server side: PUT and PATCH are
  last-write-wins per key, _add has set semantics.
- Uses httpx.AsyncClient with a short timeout (default 5 s). Caller must call
  close() when done, or use the client as an async context manager.

Exports:
    MetaCoreClient -- async store client
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import quote

import httpx

from shared_lib.result import CallResult, CallStatus
from validation.errors import TransientError, classify_exception, classify_http_error

log = logging.getLogger("shared_lib.meta_core_client")


class MetaCoreClient:
    """
    Async HTTP client for the meta-core key/value store.

    All operations are keyed by a store-level content reference (``cid``).

    Usage::

        async with MetaCoreClient("http://meta-core:9000") as store:
            result = await store.merge_metadata(cid, {"tmdbid": "603"})
            if not result.ok:
                ...
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Args:
            base_url: meta-core base URL. Trailing slashes are stripped.
            timeout:  Total request timeout in seconds.
            client:   Optional pre-built httpx client (tests).
        """
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
        )
        log.debug("MetaCoreClient initialised — url=%s", self._base_url)

    async def close(self) -> None:
        """Close the underlying httpx client and release connections."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "MetaCoreClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _url(self, cid: str, *parts: str) -> str:
        segments = [quote(cid, safe="")] + [quote(p, safe="/") for p in parts]
        return f"{self._base_url}/meta/" + "/".join(segments)

    async def _call(
        self,
        method: str,
        url: str,
        operation: str,
        json: Any = None,
        tolerate_404: bool = False,
    ) -> tuple[Optional[httpx.Response], CallResult]:
        """
        Perform one request and classify its outcome.

        Returns:
            (response, result). response is None when the request never
            produced one (connection error, timeout).
        """
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            kind = classify_exception(exc)
            log.warning(
                f"meta-core unavailable at {self._base_url} during {operation}: "
                f"{type(exc).__name__}: {exc}"
            )
            if kind is TransientError:
                return None, CallResult.transient(str(exc) or type(exc).__name__)
            return None, CallResult.permanent(str(exc) or type(exc).__name__)

        if response.status_code == 404:
            if not tolerate_404:
                log.warning(f"meta-core {operation} returned 404 for {url}")
            return response, CallResult.not_found(f"{operation}: 404")

        if not response.is_success:
            detail = f"{operation} failed: HTTP {response.status_code}"
            log.warning(f"meta-core {detail}")
            if classify_http_error(response.status_code) is TransientError:
                return response, CallResult.transient(detail)
            return response, CallResult.permanent(detail)

        return response, CallResult.success()

    async def set_property(self, cid: str, key: str, value: str) -> CallResult:
        """Set a single scalar property (last write wins)."""
        _, result = await self._call(
            "PUT", self._url(cid, key), f"set {key}", json={"value": value}
        )
        return result

    async def get_property(self, cid: str, key: str) -> CallResult:
        """Fetch a single scalar property. Value is None on not-found."""
        response, result = await self._call(
            "GET", self._url(cid, key), f"get {key}", tolerate_404=True
        )
        if not result.ok:
            return result
        try:
            data = response.json()
        except ValueError as exc:
            return CallResult.permanent(f"get {key}: invalid JSON: {exc}")
        return CallResult.success(data.get("value") if isinstance(data, dict) else None)

    async def merge_metadata(self, cid: str, metadata: Mapping[str, str]) -> CallResult:
        """Merge several scalar properties in one request (last write wins per key)."""
        _, result = await self._call(
            "PATCH", self._url(cid), "merge metadata", json=dict(metadata)
        )
        return result

    async def delete_property(self, cid: str, key: str) -> CallResult:
        """Delete a property. Deleting a missing property counts as success."""
        _, result = await self._call(
            "DELETE", self._url(cid, key), f"delete {key}", tolerate_404=True
        )
        if result.status is CallStatus.NOT_FOUND:
            return CallResult.success()
        return result

    async def add_to_set(self, cid: str, key: str, value: str) -> CallResult:
        """Add *value* to the set stored under *key* (repeats are no-ops)."""
        _, result = await self._call(
            "POST", self._url(cid, "_add", key), f"add to {key}", json={"value": value}
        )
        return result

    async def get_metadata(self, cid: str) -> CallResult:
        """Fetch all properties. Value is a dict (empty on not-found)."""
        response, result = await self._call(
            "GET", self._url(cid), "get metadata", tolerate_404=True
        )
        if result.status is CallStatus.NOT_FOUND:
            return CallResult.success({})
        if not result.ok:
            return result
        try:
            data = response.json()
        except ValueError as exc:
            return CallResult.permanent(f"get metadata: invalid JSON: {exc}")
        metadata = data.get("metadata") if isinstance(data, dict) else None
        return CallResult.success(metadata or {})
