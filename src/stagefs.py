"""Public SDK surface for stagefs.

This module provides a stable import path for store users.
It re-exports the store factory, record model, and option types.
"""

from __future__ import annotations

from core.config import StageConfig
from core.errors import (
    DuplicateFileError,
    LoadError,
    StageConfigError,
    StageError,
    StageTransformError,
)
from core.types import FileRecord, PipelineOptions, StreamOptions
from ingest.file_loader import FileLoader, build_disk_loader
from store.change_events import ChangeBroadcaster
from store.memory_store import MemoryStore, create_store
from transforms.path_rename import move_to_directory, rename_extension
from transforms.record_stage import compose_transforms, filter_transform, record_transform

__all__ = [
    "ChangeBroadcaster",
    "DuplicateFileError",
    "FileLoader",
    "FileRecord",
    "LoadError",
    "MemoryStore",
    "PipelineOptions",
    "StageConfig",
    "StageConfigError",
    "StageError",
    "StageTransformError",
    "StreamOptions",
    "build_disk_loader",
    "compose_transforms",
    "create_store",
    "filter_transform",
    "move_to_directory",
    "record_transform",
    "rename_extension",
]
