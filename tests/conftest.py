"""
Shared pytest fixtures for TMDB enricher tests.

Provides reusable fixtures for:
- Configuration snapshots (EnricherConfig)
- An in-memory metadata store that records every operation
- Sample TMDB detail payloads (movie, series)
- Intake-style existingMeta for a parsed video file

Network calls are mocked with respx; nothing here talks to TMDB or meta-core.
"""

import copy
from typing import Any

import pytest

from shared_lib.result import CallResult


# =============================================================================
# Sample TMDB payloads
# =============================================================================

MATRIX_MOVIE = {
    "id": 603,
    "imdb_id": "tt0133093",
    "title": "The Matrix",
    "original_title": "The Matrix",
    "release_date": "1999-03-30",
    "vote_average": 8.2,
    "overview": "A hacker learns the truth about his reality.",
    "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
    "production_companies": [{"id": 79, "name": "Village Roadshow Pictures"}],
    "poster_path": "/matrix-poster.jpg",
    "backdrop_path": "/matrix-backdrop.jpg",
    "media_type": "movie",
}

SINTEL_MOVIE = {
    "id": 45745,
    "imdb_id": "tt1727587",
    "title": "Sintel",
    "original_title": "Sintel",
    "release_date": "2010-09-27",
    "vote_average": 7.0,
    "overview": "A lonely young woman searches for her dragon.",
    "genres": [{"id": 16, "name": "Animation"}],
    "production_companies": [{"id": 1, "name": "Blender Foundation"}],
    "poster_path": "/sintel.jpg",
    "backdrop_path": None,
    "media_type": "movie",
}

BREAKING_BAD_TV = {
    "id": 1396,
    "name": "Breaking Bad",
    "original_name": "Breaking Bad",
    "first_air_date": "2008-01-20",
    "vote_average": 8.9,
    "overview": "A chemistry teacher turns to crime.",
    "genres": [{"id": 18, "name": "Drama"}],
    "production_companies": [],
    "poster_path": "/bb.png",
    "backdrop_path": None,
    "media_type": "tv",
}


@pytest.fixture
def matrix_payload() -> dict:
    """Full /movie/603 details payload."""
    return copy.deepcopy(MATRIX_MOVIE)


@pytest.fixture
def sintel_payload() -> dict:
    """Full /movie/45745 details payload (no backdrop)."""
    return copy.deepcopy(SINTEL_MOVIE)


@pytest.fixture
def tv_payload() -> dict:
    """Full /tv/1396 details payload."""
    return copy.deepcopy(BREAKING_BAD_TV)


# =============================================================================
# Metadata store double
# =============================================================================

class FakeStore:
    """
    In-memory meta-core double.

    Records every call in ``ops`` as (operation, cid, key, value) tuples and
    keeps the resulting state in ``data`` (scalars) and ``sets`` (set keys),
    with the same last-write-wins / set semantics as the real store.

    Set ``fail`` to a set of operation names to make those calls fail.
    """

    def __init__(self) -> None:
        self.ops: list[tuple] = []
        self.data: dict[str, dict[str, Any]] = {}
        self.sets: dict[str, dict[str, set]] = {}
        self.fail: set[str] = set()

    def _result(self, op: str) -> CallResult:
        if op in self.fail:
            return CallResult.transient(f"{op} unavailable")
        return CallResult.success()

    async def merge_metadata(self, cid: str, metadata: dict) -> CallResult:
        self.ops.append(("merge", cid, None, dict(metadata)))
        result = self._result("merge")
        if result.ok:
            self.data.setdefault(cid, {}).update(metadata)
        return result

    async def add_to_set(self, cid: str, key: str, value: str) -> CallResult:
        self.ops.append(("add", cid, key, value))
        result = self._result("add")
        if result.ok:
            self.sets.setdefault(cid, {}).setdefault(key, set()).add(value)
        return result

    async def set_property(self, cid: str, key: str, value: str) -> CallResult:
        self.ops.append(("set", cid, key, value))
        result = self._result("set")
        if result.ok:
            self.data.setdefault(cid, {})[key] = value
        return result

    def state(self, cid: str) -> tuple[dict, dict]:
        """Final (scalars, sets) for a store entry."""
        return self.data.get(cid, {}), self.sets.get(cid, {})


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def enricher_config():
    """Valid configuration snapshot with a v3 API key."""
    from validation.config import EnricherConfig
    return EnricherConfig(apiKey="abcdef1234567890", language="en-US")


@pytest.fixture
def video_meta() -> dict:
    """existingMeta for a parsed video file without TMDB data."""
    return {
        "fileType": "video",
        "fileName": "Sintel 2010",
        "originalTitle": "Sintel",
        "movieYear": "2010",
        "videoType": "movie",
    }


@pytest.fixture
def store_factory():
    """Factory for additional independent FakeStore instances."""
    return FakeStore
