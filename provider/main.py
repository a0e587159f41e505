"""FastAPI application for the TMDB enricher plugin.

Wires together configuration, structured logging, lifespan management,
route registration, and HTTP request logging middleware.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, Response

from provider import __version__
from provider.config import ProviderSettings, get_settings
from provider.logging_config import configure_logging
from provider.routes import configure, health, manifest, process
from provider.runtime import EnricherRuntime

logger = logging.getLogger(__name__)


def _print_startup_banner(settings: ProviderSettings, runtime: EnricherRuntime) -> None:
    """Log the startup banner at info level."""
    backend = settings.webdav_url or settings.files_path
    config = runtime.config_store.current()

    logger.info(
        "TMDB enricher starting",
        extra={
            "version": __version__,
            "port": settings.port,
            "files_backend": backend,
            "cache_dir": settings.cache_dir,
            "api_key_configured": config.has_credentials,
        },
    )
    # Also emit a human-readable summary for log tailing
    logger.info(
        f"TMDB enricher v{__version__} | "
        f"Port: {settings.port} | "
        f"Files: {backend} | "
        f"Cache: {settings.cache_dir} | "
        f"API key: {'configured' if config.has_credentials else 'missing'}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """FastAPI lifespan context manager.

    Startup: load settings, configure logging, build the runtime.
    Shutdown: stop accepting work and drain in-flight items.
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    runtime = EnricherRuntime(settings)
    app.state.runtime = runtime
    app.state.ready = True

    _print_startup_banner(settings, runtime)

    yield

    app.state.ready = False
    logger.info("TMDB enricher shutting down", extra={"pending": runtime.pending})
    await runtime.aclose()


# ── Application ──────────────────────────────────────────────────────────────

app = FastAPI(
    lifespan=lifespan,
    docs_url=None,    # Machine-to-machine API, no Swagger UI
    redoc_url=None,
)

app.include_router(health.router)
app.include_router(manifest.router)
app.include_router(configure.router)
app.include_router(process.router)


# ── Request logging middleware ────────────────────────────────────────────────

@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
    """Log all incoming requests with method, path, status, and response time."""
    start = time.perf_counter()
    response: Response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000

    # Health probes are frequent; keep them out of the info stream
    level = logging.DEBUG if request.url.path == "/health" else logging.INFO
    logger.log(
        level,
        "HTTP request",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 2),
        },
    )
    return response


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "provider.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle request logging ourselves
    )
