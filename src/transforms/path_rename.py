"""Path rewriting transforms.

This module provides stages that move staged records to new paths,
the common case when scaffolding renames template files.
"""

from __future__ import annotations

import os

from core.types import FileRecord, FileTransform
from transforms.record_stage import record_transform


def rename_extension(old_extension: str, new_extension: str) -> FileTransform:
    """Build a stage replacing one file extension with another.

    Records whose extension differs from ``old_extension`` pass through
    unchanged.

    Args:
        old_extension: Extension to replace, including the dot.
        new_extension: Replacement extension, including the dot, or "".

    Returns:
        Pipeline stage.
    """

    def rename(record: FileRecord) -> FileRecord:
        if old_extension and record.path.endswith(old_extension):
            record.path = record.path[: -len(old_extension)] + new_extension
        return record

    return record_transform(rename)


def move_to_directory(source_dir: str, target_dir: str) -> FileTransform:
    """Build a stage relocating records under ``source_dir`` to ``target_dir``.

    Args:
        source_dir: Absolute directory records are moved out of.
        target_dir: Absolute directory records are moved into.

    Returns:
        Pipeline stage.
    """
    source_root = os.path.normpath(source_dir)
    target_root = os.path.normpath(target_dir)

    def move(record: FileRecord) -> FileRecord:
        if _is_within(record.path, source_root):
            relative_path = os.path.relpath(record.path, source_root)
            record.path = os.path.normpath(os.path.join(target_root, relative_path))
        return record

    return record_transform(move)


def _is_within(path: str, directory: str) -> bool:
    """Return whether a path sits inside a directory."""
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)
