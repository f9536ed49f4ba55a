"""Shared typed models.

This module defines the file record cached by the store and the
option models accepted by streaming and pipeline operations.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
import os
import stat as stat_module
from typing import AsyncIterator, Callable

FilePredicate = Callable[["FileRecord"], bool]
ConflictResolver = Callable[["FileRecord", "FileRecord"], "FileRecord"]
ChangeListener = Callable[[str], None]
FileTransform = Callable[[AsyncIterator["FileRecord"]], AsyncIterator["FileRecord"]]


@dataclass(eq=False)
class FileRecord:
    """In-memory file staged by the store.

    Records compare by identity: two records holding the same path and
    bytes are still distinct entries as far as change detection goes.

    Attributes:
        path: Absolute path, also the cache key while resident.
        contents: File bytes, or None for missing files and directories.
        cwd: Working directory the record was created relative to.
        base: Base directory used to compute ``relative``.
        stat: Filesystem metadata when the path existed on disk.
    """

    path: str
    contents: bytes | None = None
    cwd: str = ""
    base: str = ""
    stat: os.stat_result | None = field(default=None, repr=False)

    @property
    def relative(self) -> str:
        """Return the path relative to ``base``."""
        if not self.base:
            return self.path
        return os.path.relpath(self.path, self.base)

    @property
    def basename(self) -> str:
        """Return the final path component."""
        return os.path.basename(self.path)

    @property
    def extname(self) -> str:
        """Return the extension including its leading dot."""
        return os.path.splitext(self.path)[1]

    def is_null(self) -> bool:
        """Return whether the record carries no contents."""
        return self.contents is None

    def is_directory(self) -> bool:
        """Return whether the record was loaded from a directory."""
        return self.stat is not None and stat_module.S_ISDIR(self.stat.st_mode)

    def clone(self) -> "FileRecord":
        """Return a new record with the same path, contents, and metadata."""
        return FileRecord(
            path=self.path,
            contents=self.contents,
            cwd=self.cwd,
            base=self.base,
            stat=copy.copy(self.stat),
        )


@dataclass(frozen=True)
class StreamOptions:
    """Options for streaming cached records.

    Attributes:
        filter: Optional predicate selecting which records are yielded.
    """

    filter: FilePredicate | None = None


@dataclass(frozen=True)
class PipelineOptions:
    """Options for a pipeline run.

    Attributes:
        filter: Predicate routing records through the transforms; records it
            rejects go straight to the replacement cache.
        resolve_conflict: Picks the survivor when two records share a path.
        refresh: Whether the run commits a replacement cache.
        allow_override: Let the later record win a path collision.
    """

    filter: FilePredicate | None = None
    resolve_conflict: ConflictResolver | None = None
    refresh: bool = True
    allow_override: bool = False
