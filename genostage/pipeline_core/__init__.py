"""
Pipeline infrastructure for genostage.

This package provides the shared building blocks of the annotation pipeline:
- Workspace: Temporary artifact naming and cleanup
- error_handling: Exception taxonomy and validation helpers
"""

from .error_handling import (
    AnnotationPipelineError,
    FileFormatError,
    MalformedRowError,
    PipelineError,
    StageExecutionError,
    ToolExecutionError,
    ToolNotFoundError,
    UnreadableSourceError,
)
from .workspace import Workspace

__all__ = [
    "AnnotationPipelineError",
    "FileFormatError",
    "MalformedRowError",
    "PipelineError",
    "StageExecutionError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "UnreadableSourceError",
    "Workspace",
]
