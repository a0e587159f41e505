"""
shared_lib.byte_source — Byte access to media files and plugin output.

Design notes:
- One capability interface (ByteSource) with two interchangeable backends:
  LocalByteSource for mounted directories and WebDAVByteSource for the
  HTTP range-capable WebDAV endpoint. Callers (content addressing, artifact
  materialization) depend only on the interface.
- Async-only, matching the rest of shared_lib. Local filesystem calls run in
  a worker thread so a slow disk never blocks other work items.
- read_range uses Python slice semantics: start inclusive, end exclusive.
  The WebDAV backend converts that to an inclusive HTTP Range header.
- All failures surface as ByteSourceError (ByteSourceNotFound for missing
  paths) so callers can tell an I/O problem from a programming error.

Exports:
    ByteSource          -- abstract backend interface
    LocalByteSource     -- local filesystem backend
    WebDAVByteSource    -- WebDAV (HTTP HEAD/GET Range/PUT) backend
    FileStat            -- size and modification time of a path
    ByteSourceError     -- backend unreachable, short read, write failure
    ByteSourceNotFound  -- path does not exist
    create_byte_source  -- pick a backend from configuration
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx
from pydantic import BaseModel

log = logging.getLogger("shared_lib.byte_source")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ByteSourceError(Exception):
    """
    A byte source operation failed.

    Covers unreachable remote backends, timeouts, unexpected HTTP status
    codes, short reads and local OS errors.
    """


class ByteSourceNotFound(ByteSourceError):
    """The requested path does not exist in the backend."""


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class FileStat(BaseModel):
    """Size (bytes) and optional modification time of a stored file."""

    size: int
    mtime: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class ByteSource(ABC):
    """Abstract byte access backend."""

    @abstractmethod
    async def stat(self, path: str) -> FileStat:
        """
        Return size and modification time for *path*.

        Raises:
            ByteSourceNotFound: Path does not exist.
            ByteSourceError:    Backend failure.
        """

    @abstractmethod
    async def read_range(self, path: str, start: int, end: int) -> bytes:
        """
        Read bytes ``[start, end)`` of *path*.

        Raises:
            ByteSourceNotFound: Path does not exist.
            ByteSourceError:    Backend failure.
        """

    @abstractmethod
    async def read_all(self, path: str) -> bytes:
        """Read the whole content of *path*."""

    @abstractmethod
    async def write_all(self, path: str, data: bytes) -> None:
        """Create or replace *path* with *data*."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """
        Return True if *path* exists.

        Raises:
            ByteSourceError: Backend is unavailable, so existence is unknown.
        """

    async def close(self) -> None:
        """Release backend resources. No-op by default."""

    async def __aenter__(self) -> "ByteSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Local filesystem
# ---------------------------------------------------------------------------


class LocalByteSource(ByteSource):
    """
    Byte source over a local (or mounted) directory.

    Args:
        root: Directory that relative and absolute paths are resolved under.
              None means paths are used exactly as given.
    """

    def __init__(self, root: Optional[str] = None) -> None:
        self._root = os.path.realpath(root) if root else None

    @property
    def root(self) -> Optional[str]:
        return self._root

    def resolve(self, path: str) -> str:
        """Map *path* onto the filesystem, refusing to escape the root."""
        if self._root is None:
            return path
        full = os.path.realpath(os.path.join(self._root, path.lstrip("/")))
        if full != self._root and not full.startswith(self._root + os.sep):
            raise ByteSourceError(f"Path escapes byte source root: {path}")
        return full

    async def stat(self, path: str) -> FileStat:
        full = self.resolve(path)
        try:
            st = await asyncio.to_thread(os.stat, full)
        except FileNotFoundError as exc:
            raise ByteSourceNotFound(f"File not found: {path}") from exc
        except OSError as exc:
            raise ByteSourceError(f"Cannot stat {path}: {exc}") from exc
        return FileStat(
            size=st.st_size,
            mtime=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    async def read_range(self, path: str, start: int, end: int) -> bytes:
        full = self.resolve(path)
        if end <= start:
            return b""

        def _read() -> bytes:
            with open(full, "rb") as fh:
                fh.seek(start)
                return fh.read(end - start)

        try:
            return await asyncio.to_thread(_read)
        except FileNotFoundError as exc:
            raise ByteSourceNotFound(f"File not found: {path}") from exc
        except OSError as exc:
            raise ByteSourceError(f"Cannot read {path}: {exc}") from exc

    async def read_all(self, path: str) -> bytes:
        full = self.resolve(path)

        def _read() -> bytes:
            with open(full, "rb") as fh:
                return fh.read()

        try:
            return await asyncio.to_thread(_read)
        except FileNotFoundError as exc:
            raise ByteSourceNotFound(f"File not found: {path}") from exc
        except OSError as exc:
            raise ByteSourceError(f"Cannot read {path}: {exc}") from exc

    async def write_all(self, path: str, data: bytes) -> None:
        full = self.resolve(path)

        def _write() -> None:
            directory = os.path.dirname(full) or "."
            os.makedirs(directory, exist_ok=True)
            # Write to a temp file and rename so a crashed run never leaves a
            # partial file that a later run would mistake for a finished one
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(data)
                os.replace(tmp_path, full)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise

        try:
            await asyncio.to_thread(_write)
        except OSError as exc:
            raise ByteSourceError(f"Cannot write {path}: {exc}") from exc
        log.debug("Wrote %d bytes to %s", len(data), full)

    async def exists(self, path: str) -> bool:
        full = self.resolve(path)
        return await asyncio.to_thread(os.path.isfile, full)

    def __repr__(self) -> str:
        return f"LocalByteSource(root={self._root!r})"


# ---------------------------------------------------------------------------
# WebDAV
# ---------------------------------------------------------------------------


class WebDAVByteSource(ByteSource):
    """
    Byte source over an HTTP WebDAV endpoint.

    Usage::

        source = WebDAVByteSource("http://meta-sort/webdav")
        try:
            info = await source.stat("/files/watch/movie.mkv")
            head = await source.read_range("/files/watch/movie.mkv", 0, 16)
        finally:
            await source.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        strip_prefix: str = "/files",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Create the WebDAV byte source.

        Args:
            base_url:     WebDAV root URL, e.g. ``http://meta-sort/webdav``.
                          A trailing slash is stripped.
            timeout:      Total request timeout in seconds. Connect timeout is
                          fixed at 5 seconds.
            strip_prefix: Container mount prefix removed from incoming paths
                          ("/files/watch/a.mkv" -> "<base>/watch/a.mkv").
            client:       Optional pre-built httpx client (tests).
        """
        self._base_url = base_url.rstrip("/")
        self._strip_prefix = strip_prefix.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=5.0),
        )
        log.debug("WebDAVByteSource initialised — base_url=%s", self._base_url)

    def to_url(self, path: str) -> str:
        """Convert a container path to a WebDAV URL."""
        relative = path
        prefix = self._strip_prefix
        if prefix and (relative == prefix or relative.startswith(prefix + "/")):
            relative = relative[len(prefix):]
        if not relative.startswith("/"):
            relative = "/" + relative
        return self._base_url + relative

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = self.to_url(path)
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ByteSourceError(f"WebDAV {method} timed out for {path}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ByteSourceError(f"WebDAV {method} failed for {path}: {exc}") from exc

    @staticmethod
    def _check(response: httpx.Response, method: str, path: str) -> None:
        if response.status_code == 404:
            raise ByteSourceNotFound(f"WebDAV {method}: {path} not found")
        if not response.is_success:
            raise ByteSourceError(
                f"WebDAV {method} failed for {path}: "
                f"{response.status_code} {response.reason_phrase}"
            )

    async def stat(self, path: str) -> FileStat:
        response = await self._request("HEAD", path)
        self._check(response, "HEAD", path)

        content_length = response.headers.get("content-length")
        last_modified = response.headers.get("last-modified")
        mtime = None
        if last_modified:
            try:
                mtime = parsedate_to_datetime(last_modified)
            except (TypeError, ValueError):
                log.debug("Unparseable Last-Modified for %s: %s", path, last_modified)
        return FileStat(
            size=int(content_length) if content_length else 0,
            mtime=mtime,
        )

    async def read_range(self, path: str, start: int, end: int) -> bytes:
        if end <= start:
            return b""
        response = await self._request(
            "GET", path, headers={"Range": f"bytes={start}-{end - 1}"}
        )
        self._check(response, "Range GET", path)
        if response.status_code == 206:
            return response.content
        # Server ignored the Range header and sent the full body
        return response.content[start:end]

    async def read_all(self, path: str) -> bytes:
        response = await self._request("GET", path)
        self._check(response, "GET", path)
        return response.content

    async def write_all(self, path: str, data: bytes) -> None:
        response = await self._request(
            "PUT",
            path,
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        if not response.is_success:
            raise ByteSourceError(
                f"WebDAV PUT failed for {path}: "
                f"{response.status_code} {response.reason_phrase}"
            )
        log.debug("PUT %d bytes to %s", len(data), self.to_url(path))

    async def exists(self, path: str) -> bool:
        response = await self._request("HEAD", path)
        if response.is_success:
            return True
        if response.status_code in (404, 410):
            return False
        raise ByteSourceError(
            f"WebDAV HEAD failed for {path}: "
            f"{response.status_code} {response.reason_phrase}"
        )

    def __repr__(self) -> str:
        return f"WebDAVByteSource(base_url={self._base_url!r})"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def create_byte_source(
    webdav_url: Optional[str] = None,
    root: Optional[str] = None,
    timeout: float = 30.0,
) -> ByteSource:
    """
    Pick a byte source backend.

    Args:
        webdav_url: WebDAV URL. When set, the WebDAV backend is used.
        root:       Local directory for the filesystem backend.
        timeout:    WebDAV request timeout in seconds.

    Returns:
        WebDAVByteSource if webdav_url is set, otherwise LocalByteSource.
    """
    if webdav_url:
        log.info("Using WebDAV byte source at %s", webdav_url)
        return WebDAVByteSource(webdav_url, timeout=timeout)
    log.info("Using local byte source (root=%s)", root or "<absolute paths>")
    return LocalByteSource(root)
