"""Long-lived service state and per-request pipeline assembly.

EnricherRuntime owns what outlives a single work item (settings, config
snapshot store, catalog cache, byte sources, background tasks). For each
work item it snapshots the current plugin config, builds short-lived TMDB
and meta-core clients, runs the pipeline, and closes the clients again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from provider.config import ConfigStore, ProviderSettings
from provider.models import ProcessRequest
from shared_lib.byte_source import ByteSource, create_byte_source
from shared_lib.meta_core_client import MetaCoreClient
from tmdb.cache import CatalogCache
from tmdb.client import TmdbClient
from tmdb.resolver import CatalogResolver
from validation.config import EnricherConfig
from worker.materializer import ArtifactMaterializer
from worker.models import CompletionEvent, CompletionStatus, KnownAttributes, WorkItem
from worker.processor import EnrichmentProcessor
from worker.sink import CompletionSink, HttpCallbackSink
from worker.writer import EnrichmentWriter

logger = logging.getLogger(__name__)


def work_item_from_request(request: ProcessRequest) -> WorkItem:
    """Build the immutable WorkItem for a /process request."""
    return WorkItem(
        task_id=request.taskId,
        cid=request.cid,
        file_path=request.filePath,
        attributes=KnownAttributes.from_existing_meta(request.existingMeta),
    )


class EnricherRuntime:
    """
    Service-wide state shared by all work items.

    Args:
        settings: Service settings
        config_store: Holder of the current plugin config snapshot
        cache: Catalog cache (built from settings if omitted)
        source: Byte source for media files (built from settings if omitted)
        output: Byte source for plugin output (built from settings if omitted)
    """

    def __init__(
        self,
        settings: ProviderSettings,
        config_store: Optional[ConfigStore] = None,
        cache: Optional[CatalogCache] = None,
        source: Optional[ByteSource] = None,
        output: Optional[ByteSource] = None,
    ) -> None:
        self.settings = settings
        self.config_store = config_store or ConfigStore(settings.initial_config())
        self.cache = cache or CatalogCache(settings.cache_dir, size_limit=settings.cache_size_limit)
        self.source = source or create_byte_source(
            settings.webdav_url, root=None, timeout=settings.webdav_timeout
        )
        if output is None:
            output_url = (
                f"{settings.webdav_url.rstrip('/')}/{settings.storage_prefix.strip('/')}"
                if settings.webdav_url
                else None
            )
            output = create_byte_source(
                output_url, root=settings.output_path, timeout=settings.webdav_timeout
            )
        self.output = output
        self._tasks: set[asyncio.Task] = set()

    async def run(self, request: ProcessRequest, sink: CompletionSink) -> CompletionEvent:
        """
        Run the pipeline for one request with the current config snapshot.

        Reports exactly one completion event, including when the per-item
        clients cannot be built.
        """
        start = time.perf_counter()
        config = self.config_store.current()
        store: Optional[MetaCoreClient] = None
        tmdb: Optional[TmdbClient] = None
        try:
            try:
                item = work_item_from_request(request)
                store = MetaCoreClient(request.metaCoreUrl, timeout=config.store_timeout)
                tmdb = TmdbClient.from_config(config) if config.has_credentials else None
                processor = self._build_processor(config, store, tmdb)
            except Exception as e:
                logger.exception(f"Could not set up enrichment for {request.filePath}")
                event = CompletionEvent(
                    task_id=request.taskId,
                    status=CompletionStatus.FAILED,
                    duration_ms=int((time.perf_counter() - start) * 1000),
                    error=str(e) or type(e).__name__,
                )
                await sink.emit(event)
                return event
            return await processor.process(item, sink)
        finally:
            if store is not None:
                await store.close()
            if tmdb is not None:
                await tmdb.close()

    def _build_processor(
        self,
        config: EnricherConfig,
        store: MetaCoreClient,
        tmdb: Optional[TmdbClient],
    ) -> EnrichmentProcessor:
        materializer = (
            ArtifactMaterializer(self.output, tmdb, storage_prefix=self.settings.storage_prefix)
            if tmdb is not None
            else None
        )
        return EnrichmentProcessor(
            config=config,
            resolver=CatalogResolver(tmdb, strategy_timeout=config.strategy_timeout) if tmdb else None,
            cache=self.cache,
            writer=EnrichmentWriter(store, materializer, language_code=config.language_code),
            source=self.source if self.settings.compute_missing_midhash else None,
        )

    def submit(self, request: ProcessRequest) -> asyncio.Task:
        """Schedule a request in the background, reporting to its callback URL."""
        sink = HttpCallbackSink(request.callbackUrl, timeout=self.settings.callback_timeout)
        task = asyncio.create_task(self.run(request, sink), name=f"enrich-{request.taskId}")
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("Enrichment task cancelled", extra={"task": task.get_name()})
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Enrichment task crashed before reporting",
                extra={"task": task.get_name(), "error": repr(exc)},
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def aclose(self) -> None:
        """Wait for in-flight items, then release backends and the cache."""
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight work items")
            await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.source.close()
        await self.output.close()
        self.cache.close()
