"""POST /configure — Replace the plugin configuration snapshot.

Items already running keep the snapshot they started with; the new one
applies from the next work item on.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from provider.models import ConfigureRequest, ConfigureResponse
from validation.config import validate_config

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/configure")
async def configure(body: ConfigureRequest, request: Request) -> JSONResponse:
    """Validate and install a new plugin configuration."""
    logger.info("Configure request received", extra={"keys": sorted(body.config)})

    config, error = validate_config(body.config)
    if config is None:
        logger.warning("Rejected configuration", extra={"error": error})
        response = ConfigureResponse(status="error", error=error)
        return JSONResponse(content=response.model_dump(exclude_none=True))

    request.app.state.runtime.config_store.replace(config)
    logger.info("Configuration updated")
    return JSONResponse(content=ConfigureResponse(status="ok").model_dump(exclude_none=True))
