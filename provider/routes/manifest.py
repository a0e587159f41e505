"""GET /manifest — Plugin manifest endpoint.

Returns the static description the orchestrator uses to register this
plugin: identity, scheduling hints, the metadata keys it writes and the
configuration options it accepts.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from provider import __version__
from provider.models import ConfigField, PluginManifest, SchemaField

router = APIRouter()
logger = logging.getLogger(__name__)

PLUGIN_ID = "tmdb"


def build_manifest() -> PluginManifest:
    return PluginManifest(
        id=PLUGIN_ID,
        name="TMDB Metadata",
        version=__version__,
        description="Fetches metadata from The Movie Database (TMDB) API",
        author="MetaMesh",
        dependencies=["file-info", "filename-parser", "jellyfin-nfo"],
        priority=30,
        color="#01B4E4",
        defaultQueue="background",
        timeout=60000,
        schema={
            "tmdbid": SchemaField(label="TMDB ID", readonly=True),
            "imdbid": SchemaField(label="IMDB ID"),
            "originalTitle": SchemaField(label="Original Title"),
            "movieYear": SchemaField(label="Release Year", type="number"),
            "releasedate": SchemaField(label="Release Date"),
            "rating": SchemaField(label="Vote Average", readonly=True),
            "plot/eng": SchemaField(label="Plot (English)", readonly=True),
        },
        config={
            "apiKey": ConfigField(
                type="string",
                label="TMDB API Key or Bearer Token",
                required=True,
                secret=True,
            ),
            "language": ConfigField(type="select", label="Metadata Language", default="en-US"),
            "forceRecompute": ConfigField(type="boolean", label="Force Recompute", default=False),
        },
    )


@router.get("/manifest")
async def manifest() -> JSONResponse:
    """Return the plugin manifest."""
    logger.debug("Manifest requested", extra={"plugin_id": PLUGIN_ID})
    return JSONResponse(content=build_manifest().model_dump(by_alias=True))
