"""stagefs exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class StageError(Exception):
    """Base exception for all stagefs failures."""


class StageConfigError(StageError):
    """Raised for invalid runtime configuration."""


class LoadError(StageError):
    """Raised when a loader fails for a reason other than a missing path."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class DuplicateFileError(StageError):
    """Raised when a pipeline run emits two records for the same path."""

    def __init__(self, path: str) -> None:
        super().__init__(
            f"Duplicated file {path} was emitted by the pipeline. "
            "Pass resolve_conflict or allow_override to choose a survivor."
        )
        self.path = path


class StageTransformError(StageError):
    """Raised for invalid output from transform helper stages."""
