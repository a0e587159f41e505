"""
Artifact materialization: make sure a TMDB image exists in plugin output
and identify it by content.

Output filenames are deterministic, derived from the title, year and TMDB id
rather than from the source file, so every file of the same movie shares one
poster. If the destination already exists the download is skipped, which is
what makes repeated runs converge instead of duplicating work.
"""

from __future__ import annotations

import logging
import posixpath
from typing import Optional, Protocol

from shared_lib.byte_source import ByteSource, ByteSourceError
from shared_lib.content_id import compute_content_id
from tmdb.exceptions import TmdbError
from validation.sanitizers import sanitize_filename
from worker.models import ArtifactRef

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = '.jpg'


class ImageDownloader(Protocol):
    async def download_image(self, image_path: str) -> bytes:
        ...


def build_artifact_filename(
    title: str,
    year: Optional[str],
    catalog_id: str,
    kind: str,
    ext: str = DEFAULT_EXTENSION,
    catalog_prefix: str = 'tmdb',
) -> str:
    """
    Deterministic artifact filename.

    >>> build_artifact_filename('Blade Runner: 2049', '2017', '335984', 'poster')
    'Blade Runner 2049 (2017)[tmdb335984]_poster.jpg'
    """
    safe_title = sanitize_filename(title) or 'Unknown'
    year_part = f" ({year})" if year else ''
    return f"{safe_title}{year_part}[{catalog_prefix}{catalog_id}]_{kind}{ext}"


class ArtifactMaterializer:
    """
    Download-once image store.

    Args:
        output: Byte source rooted at the plugin output folder
        downloader: Source of image bytes (TmdbClient)
        storage_prefix: Prefix of the path recorded in the store, relative to
                        the shared files root
        catalog_prefix: Catalog tag embedded in filenames
    """

    def __init__(
        self,
        output: ByteSource,
        downloader: ImageDownloader,
        storage_prefix: str = 'plugin/tmdb',
        catalog_prefix: str = 'tmdb',
    ) -> None:
        self._output = output
        self._downloader = downloader
        self._storage_prefix = storage_prefix.strip('/')
        self._catalog_prefix = catalog_prefix

    async def materialize(
        self,
        image_path: Optional[str],
        kind: str,
        title: str,
        year: Optional[str],
        catalog_id: str,
    ) -> Optional[ArtifactRef]:
        """
        Ensure the image exists in output and return its ArtifactRef.

        Args:
            image_path: TMDB relative image path ("/abc.jpg"); None/empty -> None
            kind: Artifact kind used in the filename ("poster", "backdrop")
            title: Display title for the filename
            year: Release year for the filename, if known
            catalog_id: TMDB id for the filename

        Returns:
            ArtifactRef, or None if anything failed (already logged)
        """
        if not image_path:
            return None

        ext = posixpath.splitext(image_path)[1] or DEFAULT_EXTENSION
        filename = build_artifact_filename(
            title, year, catalog_id, kind, ext, catalog_prefix=self._catalog_prefix
        )

        try:
            exists = await self._output.exists(filename)
        except ByteSourceError as e:
            logger.warning(f"Output backend unavailable, skipping {kind}: {e}")
            return None

        if exists:
            logger.info(f"Image already exists: {filename}")
        else:
            try:
                data = await self._downloader.download_image(image_path)
            except TmdbError as e:
                logger.error(f"Failed to download {kind} {image_path}: {e}")
                return None

            try:
                await self._output.write_all(filename, data)
            except ByteSourceError as e:
                logger.error(f"Failed to store {kind} as {filename}: {e}")
                return None
            logger.info(f"Downloaded {kind} to {filename} ({len(data)} bytes)")

        try:
            content_id = await compute_content_id(self._output, filename)
        except ByteSourceError as e:
            logger.warning(f"Failed to compute content id for {filename}: {e}")
            return None

        storage_path = f"{self._storage_prefix}/{filename}" if self._storage_prefix else filename
        logger.debug(f"Image {kind} content id: {content_id}")
        return ArtifactRef(content_id=content_id, storage_path=storage_path)
