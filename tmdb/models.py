"""
Normalized TMDB records.

CatalogRecord flattens the differences between TMDB movie and TV payloads
(title vs name, release_date vs first_air_date, ...) into one shape that the
artifact materializer and enrichment writer consume. The raw upstream payload
is kept alongside so it can be cached verbatim: normalization can change
without invalidating the cache.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MediaType(str, Enum):
    """TMDB catalog a record belongs to (doubles as the API path segment)."""

    MOVIE = "movie"
    TV = "tv"

    @classmethod
    def from_video_type(cls, video_type: Optional[str]) -> "MediaType":
        """Map the parser's videoType attribute ("movie", "tvshow", "tv") to a catalog."""
        if video_type and video_type.strip().lower() in ("tvshow", "tv"):
            return cls.TV
        return cls.MOVIE


def _names(items: Any) -> list[str]:
    """Ordered, de-duplicated ``name`` values from a list of TMDB objects."""
    names: list[str] = []
    if not isinstance(items, list):
        return names
    for item in items:
        name = item.get("name") if isinstance(item, dict) else None
        if name and name not in names:
            names.append(name)
    return names


class CatalogRecord(BaseModel):
    """A normalized TMDB movie or series."""

    model_config = ConfigDict(frozen=True)

    tmdb_id: str
    media_type: MediaType = MediaType.MOVIE
    imdb_id: Optional[str] = None
    original_title: Optional[str] = None
    title: Optional[str] = None
    release_date: Optional[str] = None
    rating: Optional[float] = None
    overview: Optional[str] = None
    genres: list[str] = Field(default_factory=list)
    companies: list[str] = Field(default_factory=list)
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None

    # Upstream response this record was built from (what gets cached)
    payload: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Optional["CatalogRecord"]:
        """
        Normalize a TMDB details payload.

        Returns:
            CatalogRecord, or None if the payload has no TMDB id
        """
        if not isinstance(payload, dict) or not payload.get("id"):
            return None

        media_type = MediaType.MOVIE
        declared = payload.get("media_type")
        if declared == MediaType.TV.value or (
            declared is None and "first_air_date" in payload and "release_date" not in payload
        ):
            media_type = MediaType.TV

        rating = payload.get("vote_average")
        if not isinstance(rating, (int, float)) or isinstance(rating, bool):
            rating = None

        return cls(
            tmdb_id=str(payload["id"]),
            media_type=media_type,
            imdb_id=payload.get("imdb_id") or (payload.get("external_ids") or {}).get("imdb_id") or None,
            original_title=payload.get("original_title") or payload.get("original_name") or None,
            title=payload.get("title") or payload.get("name") or None,
            release_date=payload.get("release_date") or payload.get("first_air_date") or None,
            rating=rating,
            overview=payload.get("overview") or None,
            genres=_names(payload.get("genres")),
            companies=_names(payload.get("production_companies")),
            poster_path=payload.get("poster_path") or None,
            backdrop_path=payload.get("backdrop_path") or None,
            payload=payload,
        )

    @property
    def year(self) -> Optional[str]:
        """Year part of release_date ("2010-09-27" -> "2010")."""
        if not self.release_date:
            return None
        return self.release_date.split("-")[0] or None

    @property
    def display_title(self) -> str:
        """Localized title, falling back to the original title."""
        return self.title or self.original_title or "Unknown"
