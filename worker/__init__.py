"""
Enrichment worker.

Exports the pipeline (EnrichmentProcessor), its collaborators
(ArtifactMaterializer, EnrichmentWriter) and the work item / completion
models exchanged with the intake layer.
"""

from worker.models import (
    ArtifactRef,
    CompletionEvent,
    CompletionStatus,
    KnownAttributes,
    WorkItem,
)
from worker.materializer import ArtifactMaterializer, build_artifact_filename
from worker.writer import EnrichmentWriter, build_scalar_metadata
from worker.processor import EnrichmentProcessor, PipelineState
from worker.sink import CompletionSink, HttpCallbackSink, RecordingSink

__all__ = [
    'ArtifactRef',
    'CompletionEvent',
    'CompletionStatus',
    'KnownAttributes',
    'WorkItem',
    'ArtifactMaterializer',
    'build_artifact_filename',
    'EnrichmentWriter',
    'build_scalar_metadata',
    'EnrichmentProcessor',
    'PipelineState',
    'CompletionSink',
    'HttpCallbackSink',
    'RecordingSink',
]
