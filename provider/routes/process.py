"""POST /process — Accept one work item for background enrichment.

The response only acknowledges receipt. The outcome is reported later
through a POST to the request's callbackUrl.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from provider.models import ProcessRequest, ProcessResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/process")
async def process(body: ProcessRequest, request: Request) -> JSONResponse:
    """Validate the envelope and schedule the pipeline run."""
    missing = body.missing_fields()
    if missing:
        logger.warning("Rejected work item", extra={"missing": missing, "task_id": body.taskId})
        response = ProcessResponse(status="rejected", error="Missing required fields")
        return JSONResponse(content=response.model_dump(exclude_none=True))

    request.app.state.runtime.submit(body)
    logger.info(
        "Work item accepted",
        extra={"task_id": body.taskId, "cid": body.cid, "file_path": body.filePath},
    )
    return JSONResponse(content=ProcessResponse(status="accepted").model_dump(exclude_none=True))
