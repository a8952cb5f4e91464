"""Test mocks for genostage tests."""

from .external_tools import RecordingTool, make_tools

__all__ = [
    "RecordingTool",
    "make_tools",
]
