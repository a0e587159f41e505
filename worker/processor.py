"""
Enrichment pipeline for a single work item.

State machine:

    received -> skip_check -> cache_replay ----------> materialize_and_write -> done
                          \-> resolve (miss -> done) /
    any state -> failed on an unexpected error

Outcomes reported to intake:
- skipped:   no API key, not a video, or already resolved without override
- completed: cache replay, fresh resolution, or an honest miss (nothing written)
- failed:    anything unexpected; the only path that surfaces as a failure

Exactly one CompletionEvent is emitted per work item.
"""

import logging
import time
from enum import Enum
from typing import Optional, TYPE_CHECKING

from shared_lib.byte_source import ByteSourceError
from shared_lib.content_id import compute_content_id
from tmdb.models import CatalogRecord
from worker.models import CompletionEvent, CompletionStatus, WorkItem

logger = logging.getLogger('tmdb_enricher.worker')

if TYPE_CHECKING:
    from shared_lib.byte_source import ByteSource
    from tmdb.cache import CatalogCache
    from tmdb.resolver import CatalogResolver
    from validation.config import EnricherConfig
    from worker.sink import CompletionSink
    from worker.writer import EnrichmentWriter


class PipelineState(str, Enum):
    RECEIVED = 'received'
    SKIP_CHECK = 'skip_check'
    CACHE_REPLAY = 'cache_replay'
    RESOLVE = 'resolve'
    MATERIALIZE_AND_WRITE = 'materialize_and_write'
    DONE = 'done'
    FAILED = 'failed'


SKIP_NO_API_KEY = 'No API key configured'
SKIP_NOT_VIDEO = 'Not a video file'
SKIP_ALREADY_RESOLVED = 'Already has TMDB data'


class PipelineRun:
    """Tracks the state of one work item as it moves through the pipeline."""

    def __init__(self, item: WorkItem):
        self.item = item
        self.state = PipelineState.RECEIVED

    def advance(self, state: PipelineState) -> None:
        logger.debug(f"[{self.item.task_id}] {self.state.value} -> {state.value}")
        self.state = state


class EnrichmentProcessor:
    """
    Runs the resolution-and-caching pipeline for work items.

    One processor is built per configuration snapshot; it holds no
    per-item state, so concurrent process() calls are independent.

    Args:
        config: Configuration snapshot for this run
        resolver: TMDB fallback resolver (None only when no API key is configured)
        cache: Raw-payload cache keyed by content id
        writer: Enrichment writer (store + artifacts)
        source: Byte source for media files, used to compute the sampling
                identifier when intake did not supply one. None disables that.
    """

    def __init__(
        self,
        config: 'EnricherConfig',
        resolver: Optional['CatalogResolver'],
        cache: 'CatalogCache',
        writer: 'EnrichmentWriter',
        source: Optional['ByteSource'] = None,
    ):
        self.config = config
        self.resolver = resolver
        self.cache = cache
        self.writer = writer
        self.source = source

    def _skip_reason(self, item: WorkItem) -> Optional[str]:
        if not self.config.has_credentials:
            return SKIP_NO_API_KEY
        if not item.attributes.is_video:
            return SKIP_NOT_VIDEO
        if item.attributes.tmdb_id and not self.config.force_recompute:
            return SKIP_ALREADY_RESOLVED
        return None

    async def _sample_id(self, item: WorkItem) -> Optional[str]:
        """Sampling identifier from intake, or computed from the source file."""
        if item.attributes.midhash:
            return item.attributes.midhash
        if self.source is None:
            return None
        try:
            sample_id = await compute_content_id(self.source, item.file_path)
        except ByteSourceError as e:
            logger.warning(f"Could not compute content id for {item.file_path}, caching disabled: {e}")
            return None
        logger.debug(f"Computed content id {sample_id} for {item.file_path}")
        return sample_id

    async def _run(self, run: "PipelineRun") -> tuple[CompletionStatus, Optional[str]]:
        item = run.item
        run.advance(PipelineState.SKIP_CHECK)
        reason = self._skip_reason(item)
        if reason is not None:
            logger.info(f"Skipping {item.file_path}: {reason}")
            return CompletionStatus.SKIPPED, reason

        force = self.config.force_recompute
        if force:
            logger.info(f"Force recompute enabled for {item.file_path}")

        sample_id = await self._sample_id(item)

        if sample_id and not force:
            payload = await self.cache.aget(sample_id)
            record = CatalogRecord.from_payload(payload) if payload is not None else None
            if record is not None:
                run.advance(PipelineState.CACHE_REPLAY)
                logger.info(f"Using cached TMDB data for {item.file_path}")
                run.advance(PipelineState.MATERIALIZE_AND_WRITE)
                await self.writer.apply(item.cid, record)
                return CompletionStatus.COMPLETED, None
            if payload is not None:
                logger.warning(f"Ignoring unusable cache entry for {sample_id}")

        run.advance(PipelineState.RESOLVE)
        record = await self.resolver.resolve(item.attributes)
        if record is None:
            logger.info(f"No TMDB match found for {item.file_path}")
            return CompletionStatus.COMPLETED, None

        if sample_id:
            await self.cache.aput(sample_id, record.payload)

        run.advance(PipelineState.MATERIALIZE_AND_WRITE)
        await self.writer.apply(item.cid, record)
        logger.info(f"Fetched TMDB data for {item.file_path}")
        return CompletionStatus.COMPLETED, None

    async def process(self, item: WorkItem, sink: 'CompletionSink') -> CompletionEvent:
        """
        Run the pipeline for *item* and report the outcome to *sink*.

        Never raises for pipeline failures: they become a failed event.

        Returns:
            The emitted CompletionEvent
        """
        start = time.perf_counter()
        run = PipelineRun(item)
        error: Optional[str] = None
        reason: Optional[str] = None

        try:
            status, reason = await self._run(run)
            run.advance(PipelineState.DONE)
        except Exception as e:
            logger.exception(f"Enrichment failed for {item.file_path} in state {run.state.value}")
            run.advance(PipelineState.FAILED)
            status = CompletionStatus.FAILED
            error = str(e) or type(e).__name__

        event = CompletionEvent(
            task_id=item.task_id,
            status=status,
            duration_ms=int((time.perf_counter() - start) * 1000),
            error=error,
            reason=reason,
        )
        await sink.emit(event)
        return event
