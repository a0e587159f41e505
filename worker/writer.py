"""
Enrichment writer: translate a CatalogRecord into meta-core operations.

Every operation is idempotent (merge = last write wins per key, _add = set
semantics), so replaying a record after a partial failure converges on the
same final state. Store failures are logged and never raised: the store is
assumed to heal out of band.

Keys written:
    merge:   tmdbid, imdbid, title (only if localized != original),
             originalTitle, releasedate, movieYear, plot/<lang>, rating
    add:     genres, studio, tags (+ "tmdb-verified")
    set:     poster, posterPath, backdrop, backdropPath
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from shared_lib.result import CallResult
from tmdb.models import CatalogRecord
from worker.materializer import ArtifactMaterializer

logger = logging.getLogger(__name__)

VERIFIED_TAG = 'tmdb-verified'

# (record attribute, artifact kind, content id key, path key)
ARTIFACT_FIELDS = (
    ('poster_path', 'poster', 'poster', 'posterPath'),
    ('backdrop_path', 'backdrop', 'backdrop', 'backdropPath'),
)


class MetadataStore(Protocol):
    async def merge_metadata(self, cid: str, metadata: dict[str, str]) -> CallResult: ...
    async def add_to_set(self, cid: str, key: str, value: str) -> CallResult: ...
    async def set_property(self, cid: str, key: str, value: str) -> CallResult: ...


def plot_key(language_code: str) -> str:
    """Store key for plot text in a language ("en" -> "plot/eng", "de" -> "plot/de")."""
    code = (language_code or 'en').lower()
    return 'plot/eng' if code == 'en' else f'plot/{code}'


def format_rating(value: float) -> str:
    """Render a vote average the way it is shown elsewhere (8.0 -> "8", 7.25 -> "7.25")."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def build_scalar_metadata(record: CatalogRecord, language_code: str = 'en') -> dict[str, str]:
    """
    Scalar fields for the single merge write.

    Args:
        record: Normalized TMDB record
        language_code: Two-letter code of the metadata language

    Returns:
        Flat key -> string mapping
    """
    metadata: dict[str, str] = {'tmdbid': record.tmdb_id}

    if record.imdb_id:
        metadata['imdbid'] = record.imdb_id

    if record.title and record.title != record.original_title:
        metadata['title'] = record.title
    if record.original_title:
        metadata['originalTitle'] = record.original_title

    if record.release_date:
        metadata['releasedate'] = record.release_date
        if record.year:
            metadata['movieYear'] = record.year

    if record.overview:
        metadata[plot_key(language_code)] = record.overview

    if record.rating:
        metadata['rating'] = format_rating(record.rating)

    return metadata


class EnrichmentWriter:
    """
    Applies a CatalogRecord to the metadata store.

    Args:
        store: meta-core client (MetaCoreClient)
        materializer: Artifact materializer for poster/backdrop, or None to
                      skip images
        language_code: Two-letter code used for the plot key
    """

    def __init__(
        self,
        store: MetadataStore,
        materializer: Optional[ArtifactMaterializer] = None,
        language_code: str = 'en',
    ) -> None:
        self._store = store
        self._materializer = materializer
        self._language_code = language_code

    def _check(self, result: CallResult, what: str, store_ref: str) -> bool:
        if result.ok:
            return True
        logger.warning(f"Store write '{what}' for {store_ref} not applied: {result.status.value} ({result.error})")
        return False

    async def apply(self, store_ref: str, record: CatalogRecord) -> int:
        """
        Write *record* to the store entry *store_ref*.

        Returns:
            Number of store operations that succeeded (for logging/tests)
        """
        applied = 0

        metadata = build_scalar_metadata(record, self._language_code)
        if self._check(await self._store.merge_metadata(store_ref, metadata), 'merge', store_ref):
            applied += 1

        for genre in record.genres:
            if self._check(await self._store.add_to_set(store_ref, 'genres', genre), 'genres', store_ref):
                applied += 1

        for company in record.companies:
            if self._check(await self._store.add_to_set(store_ref, 'studio', company), 'studio', store_ref):
                applied += 1

        if self._check(await self._store.add_to_set(store_ref, 'tags', VERIFIED_TAG), 'tags', store_ref):
            applied += 1

        if self._materializer is not None and record.tmdb_id:
            for attr, kind, id_key, path_key in ARTIFACT_FIELDS:
                image_path = getattr(record, attr)
                if not image_path:
                    continue
                artifact = await self._materializer.materialize(
                    image_path, kind, record.display_title, record.year, record.tmdb_id
                )
                if artifact is None:
                    continue
                if self._check(await self._store.set_property(store_ref, id_key, artifact.content_id), id_key, store_ref):
                    applied += 1
                if self._check(await self._store.set_property(store_ref, path_key, artifact.storage_path), path_key, store_ref):
                    applied += 1
                logger.info(f"Set {kind} content id: {artifact.content_id}")

        logger.debug(f"Applied {applied} store operations for {store_ref}")
        return applied
