"""
Completion sinks: where a finished work item reports its outcome.

The processor emits exactly one CompletionEvent per item to an injected
sink. Delivery guarantees belong to the sink: HttpCallbackSink makes a single
bounded attempt and logs failures, it never raises into the pipeline.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

import httpx

from worker.models import CompletionEvent

logger = logging.getLogger(__name__)


class CompletionSink(Protocol):
    async def emit(self, event: CompletionEvent) -> None:
        """Deliver *event*. Must not raise."""
        ...


class HttpCallbackSink:
    """
    POST the completion event as JSON to the intake's callback URL.

    Args:
        callback_url: URL supplied with the /process request
        timeout: Total request timeout in seconds
        client: Optional shared httpx client (not closed by the sink)
    """

    def __init__(
        self,
        callback_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._callback_url = callback_url
        self._timeout = timeout
        self._client = client

    async def emit(self, event: CompletionEvent) -> None:
        payload = event.to_callback_payload()
        try:
            if self._client is not None:
                response = await self._client.post(
                    self._callback_url, json=payload, timeout=self._timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(self._callback_url, json=payload)
        except httpx.HTTPError as exc:
            logger.error(
                "Callback delivery failed",
                extra={"task_id": event.task_id, "callback_url": self._callback_url, "error": str(exc)},
            )
            return

        if not response.is_success:
            logger.warning(
                "Callback rejected",
                extra={"task_id": event.task_id, "status_code": response.status_code},
            )


class RecordingSink:
    """Keeps emitted events in memory (tests, CLI runs)."""

    def __init__(self) -> None:
        self.events: list[CompletionEvent] = []

    async def emit(self, event: CompletionEvent) -> None:
        self.events.append(event)
