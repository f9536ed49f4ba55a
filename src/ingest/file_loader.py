"""Disk-backed file loaders.

This module builds the synchronous and asynchronous loader pair the
store calls on a cache miss. Missing paths degrade to empty records.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import os
from pathlib import Path
import stat as stat_module
from typing import Awaitable, Callable

from core.errors import LoadError
from core.logging_config import get_logger
from core.types import FileRecord

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class FileLoader:
    """Pair of loader functions used on cache misses.

    Attributes:
        load_sync: Loads one absolute path inline.
        load_async: Loads one absolute path without blocking the event loop.
    """

    load_sync: Callable[[str], FileRecord]
    load_async: Callable[[str], Awaitable[FileRecord]]


def build_disk_loader(base_dir: Path) -> FileLoader:
    """Build a loader pair reading from the local filesystem.

    Args:
        base_dir: Directory recorded as ``cwd`` and ``base`` on records.

    Returns:
        Loader pair bound to ``base_dir``.
    """
    base = str(base_dir)

    def load_sync(filepath: str) -> FileRecord:
        return read_file_record(filepath, base)

    async def load_async(filepath: str) -> FileRecord:
        return await asyncio.to_thread(read_file_record, filepath, base)

    return FileLoader(load_sync=load_sync, load_async=load_async)


def read_file_record(filepath: str, base: str) -> FileRecord:
    """Read one path into a file record.

    Args:
        filepath: Absolute path to read.
        base: Directory used for ``cwd`` and ``base``.

    Returns:
        Record with contents for regular files, or an empty record for
        directories and missing paths.

    Raises:
        LoadError: If the path exists but cannot be read.
    """
    try:
        file_stat = os.stat(filepath)
    except FileNotFoundError:
        return create_empty_record(filepath, base)
    except OSError as error:
        raise _load_error(filepath, error) from error
    if stat_module.S_ISDIR(file_stat.st_mode):
        return FileRecord(path=filepath, contents=None, cwd=base, base=base, stat=file_stat)
    try:
        contents = Path(filepath).read_bytes()
    except FileNotFoundError:
        return create_empty_record(filepath, base)
    except OSError as error:
        raise _load_error(filepath, error) from error
    _LOGGER.debug("file_loaded", path=filepath, size=len(contents))
    return FileRecord(path=filepath, contents=contents, cwd=base, base=base, stat=file_stat)


def create_empty_record(filepath: str, base: str) -> FileRecord:
    """Create the placeholder record used for paths with no content."""
    return FileRecord(path=filepath, contents=None, cwd=base, base=base, stat=None)


def _load_error(filepath: str, error: OSError) -> LoadError:
    """Build a load error for an unreadable path.

    Args:
        filepath: Path that failed to load.
        error: Underlying filesystem error.

    Returns:
        Load error carrying the failing path.
    """
    _LOGGER.warning("file_load_failed", path=filepath, error=str(error))
    return LoadError(
        filepath,
        f"Failed to load {filepath}: {error.strerror or error}. "
        "Check file permissions and retry.",
    )
