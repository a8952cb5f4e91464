"""
Error handling utilities for the staging and annotation pipeline.

This module provides:
- Custom exception classes for the failure kinds a single file can hit
- Validation of source files handed over on the command line
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional, Union

from ..utils import to_local_path

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, stage: Optional[str] = None, details: Optional[Dict] = None):
        """Initialize pipeline error.

        Parameters
        ----------
        message : str
            Error message
        stage : str, optional
            Stage where error occurred
        details : dict, optional
            Additional error details
        """
        super().__init__(message)
        self.stage = stage
        self.details = details or {}


class UnreadableSourceError(PipelineError):
    """Raised when a source file is missing, unreadable, or a corrupt archive."""

    def __init__(self, path: str, reason: str, stage: Optional[str] = None):
        """Initialize unreadable source error."""
        message = f"Unreadable source {path}: {reason}"
        super().__init__(message, stage, {"file": path, "reason": reason})
        self.path = path


class ToolNotFoundError(PipelineError):
    """Raised when a required external tool is not found."""

    def __init__(self, tool: str, stage: Optional[str] = None):
        """Initialize tool not found error."""
        message = f"Required tool '{tool}' not found in PATH"
        super().__init__(message, stage, {"tool": tool})


class ToolExecutionError(PipelineError):
    """Raised when an external tool signals non-zero completion."""

    def __init__(
        self,
        tool: str,
        returncode: int,
        stderr: Optional[str] = None,
        stage: Optional[str] = None,
    ):
        """Initialize tool execution error."""
        message = f"Tool '{tool}' exited with status {returncode}"
        if stderr:
            message = f"{message}: {stderr.strip()}"
        super().__init__(
            message, stage, {"tool": tool, "returncode": returncode, "stderr": stderr or ""}
        )
        self.tool = tool
        self.returncode = returncode


class FileFormatError(PipelineError):
    """Raised when a file has an invalid format."""

    def __init__(self, file_path: str, expected_format: str, stage: Optional[str] = None):
        """Initialize file format error."""
        message = f"Invalid file format for {file_path}. Expected: {expected_format}"
        super().__init__(message, stage, {"file": file_path, "expected_format": expected_format})


class MalformedRowError(PipelineError):
    """Raised when a data row does not have as many fields as the header."""

    def __init__(self, line_number: int, expected: int, found: int, stage: Optional[str] = None):
        """Initialize malformed row error."""
        message = f"Line {line_number} has {found} fields, header has {expected}"
        super().__init__(
            message,
            stage,
            {"line_number": line_number, "expected": expected, "found": found},
        )


class StageExecutionError(PipelineError):
    """Raised when a stage fails to execute properly."""

    def __init__(self, stage_name: str, original_error: Exception):
        """Initialize stage execution error."""
        message = f"Stage '{stage_name}' failed: {str(original_error)}"
        super().__init__(
            message,
            stage_name,
            {
                "original_error": str(original_error),
                "error_type": type(original_error).__name__,
            },
        )
        self.original_error = original_error


class AnnotationPipelineError(StageExecutionError):
    """Raised by the annotation pipeline after it cleaned up a failed run."""


def validate_source_file(location: Union[str, os.PathLike], stage_name: str) -> Path:
    """Resolve a source location and check that it holds readable data.

    Parameters
    ----------
    location : str or PathLike
        Path or ``file://`` URL handed over on the command line.
    stage_name : str
        Stage name for error reporting

    Returns
    -------
    Path
        Local path of the source file

    Raises
    ------
    UnreadableSourceError
        If the location cannot be resolved, the file is missing, is not a
        regular file, is empty, or cannot be opened.
    """
    try:
        path = Path(to_local_path(location))
    except ValueError as e:
        raise UnreadableSourceError(str(location), str(e), stage_name)

    if not path.exists():
        raise UnreadableSourceError(str(path), "file not found", stage_name)

    if not path.is_file():
        raise UnreadableSourceError(str(path), "not a regular file", stage_name)

    if path.stat().st_size == 0:
        raise UnreadableSourceError(str(path), "file is empty", stage_name)

    try:
        with open(path, "rb"):
            pass
    except PermissionError:
        raise UnreadableSourceError(str(path), "permission denied", stage_name)

    return path
