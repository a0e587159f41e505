"""Pydantic request/response models for the plugin HTTP protocol.

These models reflect the JSON envelopes exchanged with the orchestrator that
dispatches work items: health, manifest, configure and process.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """GET /health body."""

    status: Literal["healthy", "unhealthy"]
    ready: bool
    version: str


class SchemaField(BaseModel):
    """A metadata key this plugin writes, as shown in the orchestrator UI."""

    label: str
    type: str = "string"
    readonly: bool = False


class ConfigField(BaseModel):
    """A plugin configuration option."""

    type: Literal["string", "number", "boolean", "select"]
    label: str
    required: bool = False
    default: Any = None
    secret: bool = False


class PluginManifest(BaseModel):
    """GET /manifest body."""

    id: str
    name: str
    version: str
    description: str
    author: str
    dependencies: list[str] = Field(default_factory=list)
    priority: int
    color: str
    defaultQueue: Literal["fast", "background"]
    timeout: int
    schema_: dict[str, SchemaField] = Field(default_factory=dict, alias="schema")
    config: dict[str, ConfigField] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)


class ConfigureRequest(BaseModel):
    """POST /configure body."""

    config: dict[str, Any] = Field(default_factory=dict)


class ConfigureResponse(BaseModel):
    status: Literal["ok", "error"]
    error: Optional[str] = None


class ProcessRequest(BaseModel):
    """POST /process body: one work item plus where to report back."""

    model_config = ConfigDict(populate_by_name=True)

    taskId: str = ""
    cid: str = ""
    filePath: str = ""
    callbackUrl: str = ""
    metaCoreUrl: str = ""
    existingMeta: Optional[dict[str, Any]] = None

    def missing_fields(self) -> list[str]:
        """Names of required fields that are empty."""
        required = ("taskId", "cid", "filePath", "callbackUrl", "metaCoreUrl")
        return [name for name in required if not getattr(self, name)]


class ProcessResponse(BaseModel):
    status: Literal["accepted", "rejected"]
    error: Optional[str] = None
