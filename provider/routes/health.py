"""GET /health — Health status endpoint.

Reports whether the service has finished starting and can accept work.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from provider import __version__
from provider.models import HealthResponse

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Return service health and readiness."""
    # ready is set by the lifespan on app.state once the runtime is built
    ready: bool = getattr(request.app.state, "ready", False)

    body = HealthResponse(status="healthy", ready=ready, version=__version__)
    return JSONResponse(content=body.model_dump())
