"""
Editor Errors - Exception hierarchy for the editing core.
"""

from typing import Any, Dict, Optional


class EditorError(Exception):
    """Base class for editing-core failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class InvalidRangeError(EditorError):
    """Raised when a range is inverted or falls outside the document."""

    def __init__(self, start: int, end: int, size: int):
        super().__init__(
            f"Range ({start}, {end}) is not valid for a document of size {size}",
            {"start": start, "end": end, "size": size},
        )
        self.start = start
        self.end = end
        self.size = size


class SpliceError(EditorError):
    """Raised when a replacement fragment cannot be applied to the document."""


class GenerationError(EditorError):
    """Wraps a failed call to the generation capability."""

    def __init__(self, action: str, cause: Exception):
        super().__init__(f"{action} failed: {cause}", {"action": action})
        self.action = action
        self.cause = cause
