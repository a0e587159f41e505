"""
Work item and completion models for the enrichment pipeline.

The intake layer owns these: it builds a WorkItem from a /process request and
receives exactly one CompletionEvent back. The pipeline only reads WorkItems.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class KnownAttributes(BaseModel):
    """
    Attributes other plugins already attached to the file.

    Field aliases are the meta-core keys they come from, so an intake
    ``existingMeta`` mapping validates directly.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra='ignore')

    file_type: Optional[str] = Field(default=None, alias='fileType')
    original_title: Optional[str] = Field(default=None, alias='originalTitle')
    file_name: Optional[str] = Field(default=None, alias='fileName')
    movie_year: Optional[str] = Field(default=None, alias='movieYear')
    video_type: Optional[str] = Field(default=None, alias='videoType')
    imdb_id: Optional[str] = Field(default=None, alias='imdbid')
    midhash: Optional[str] = Field(default=None, alias='cid_midhash256')
    tmdb_id: Optional[str] = Field(default=None, alias='tmdbid')

    @classmethod
    def from_existing_meta(cls, meta: Optional[Mapping[str, Any]]) -> "KnownAttributes":
        """Build from a meta-core property mapping, ignoring unknown keys and blanks."""
        cleaned = {}
        for key, value in (meta or {}).items():
            if value is None:
                continue
            value = str(value).strip()
            if value:
                cleaned[key] = value
        return cls.model_validate(cleaned)

    @property
    def is_video(self) -> bool:
        return (self.file_type or '').lower() == 'video'


class WorkItem(BaseModel):
    """One enrichment attempt."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    cid: str
    file_path: str
    attributes: KnownAttributes = Field(default_factory=KnownAttributes)


class ArtifactRef(BaseModel):
    """A materialized image and where it is stored."""

    model_config = ConfigDict(frozen=True)

    content_id: str
    storage_path: str


class CompletionStatus(str, Enum):
    COMPLETED = 'completed'
    SKIPPED = 'skipped'
    FAILED = 'failed'


class CompletionEvent(BaseModel):
    """The single completion report emitted per work item."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    status: CompletionStatus
    duration_ms: int
    error: Optional[str] = None
    reason: Optional[str] = None

    def to_callback_payload(self) -> dict[str, Any]:
        """Wire format expected by the intake callback endpoint."""
        payload: dict[str, Any] = {
            'taskId': self.task_id,
            'status': self.status.value,
            'duration': self.duration_ms,
        }
        if self.error is not None:
            payload['error'] = self.error
        if self.reason is not None:
            payload['reason'] = self.reason
        return payload
