"""In-memory staging store.

This module caches file records by absolute path, loads them from the
backing filesystem on first access, and commits pipeline output as a
replacement cache with precise change notifications.
"""

from __future__ import annotations

import asyncio
import os
from typing import Callable, Iterator

from core.config import StageConfig
from core.logging_config import get_logger
from core.types import (
    ChangeListener,
    FileRecord,
    FileTransform,
    PipelineOptions,
    StreamOptions,
)
from ingest.file_loader import FileLoader, build_disk_loader
from store.change_events import ChangeBroadcaster
from store.pipeline_engine import diff_caches, run_pipeline

_LOGGER = get_logger(__name__)


class MemoryStore:
    """Path-keyed cache of staged file records.

    The store owns its cache dictionary exclusively. Records handed out by
    ``get`` stay shared with callers, so in-place edits are visible to the
    store immediately; renames only take effect at the next pipeline run.
    """

    def __init__(self, config: StageConfig, loader: FileLoader | None = None) -> None:
        """Initialize an empty store.

        Args:
            config: Runtime configuration providing the base directory.
            loader: Optional loader pair; defaults to the disk loader.
        """
        self._base_dir = str(config.base_dir)
        self._loader = loader or build_disk_loader(config.base_dir)
        self._cache: dict[str, FileRecord] = {}
        self._pending: dict[str, asyncio.Task[FileRecord]] = {}
        self.changes = ChangeBroadcaster()

    @property
    def base_dir(self) -> str:
        """Return the directory relative paths resolve against."""
        return self._base_dir

    def resolve_path(self, filepath: str | os.PathLike[str]) -> str:
        """Normalize a path into its absolute cache key."""
        return os.path.normpath(os.path.join(self._base_dir, os.fspath(filepath)))

    def get(self, filepath: str | os.PathLike[str]) -> FileRecord:
        """Return the cached record for a path, loading it on a miss.

        Args:
            filepath: Absolute path or path relative to the base directory.

        Returns:
            Cached or freshly loaded record.

        Raises:
            LoadError: If the loader cannot read an existing path.
        """
        key = self.resolve_path(filepath)
        record = self._cache.get(key)
        if record is not None:
            return record
        record = self._loader.load_sync(key)
        self._cache[key] = record
        return record

    def get_async(self, filepath: str | os.PathLike[str]) -> asyncio.Future[FileRecord]:
        """Return a future resolving to the record for a path.

        Concurrent calls for the same uncached path share one in-flight
        load. Must be called while an event loop is running.

        Args:
            filepath: Absolute path or path relative to the base directory.

        Returns:
            Future resolving to the cached or loaded record.
        """
        key = self.resolve_path(filepath)
        record = self._cache.get(key)
        if record is not None:
            resolved: asyncio.Future[FileRecord] = asyncio.get_running_loop().create_future()
            resolved.set_result(record)
            return resolved
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load_async(key))
            self._pending[key] = task
        # Cancelling one caller's shield leaves the shared load running.
        return asyncio.shield(task)

    async def _load_async(self, key: str) -> FileRecord:
        try:
            record = await self._loader.load_async(key)
        finally:
            self._pending.pop(key, None)
        # An add() that landed while the load was in flight wins.
        return self._cache.setdefault(key, record)

    def exists_in_memory(self, filepath: str | os.PathLike[str]) -> bool:
        """Return whether a path is resident in the cache."""
        return self.resolve_path(filepath) in self._cache

    def add(self, record: FileRecord) -> "MemoryStore":
        """Insert or replace a record under its own path.

        Args:
            record: Record to stage; ``record.path`` is used verbatim.

        Returns:
            The store, for chaining.
        """
        self._cache[record.path] = record
        self.changes.emit(record.path)
        return self

    def each(self, visitor: Callable[[FileRecord, int], None]) -> "MemoryStore":
        """Visit every cached record in insertion order.

        Args:
            visitor: Called with each record and its index.

        Returns:
            The store, for chaining.
        """
        for index, record in enumerate(list(self._cache.values())):
            visitor(record, index)
        return self

    def all(self) -> list[FileRecord]:
        """Return a new list of every cached record."""
        return list(self._cache.values())

    def stream(self, options: StreamOptions | None = None) -> Iterator[FileRecord]:
        """Return a lazy single-pass iterator over cached records.

        Args:
            options: Optional stream options with a record filter.

        Returns:
            Iterator yielding matching records in insertion order.
        """
        file_filter = options.filter if options else None
        return self._iter_records(file_filter)

    def _iter_records(
        self,
        file_filter: Callable[[FileRecord], bool] | None,
    ) -> Iterator[FileRecord]:
        for record in list(self._cache.values()):
            if file_filter is None or file_filter(record):
                yield record

    def subscribe(self, listener: ChangeListener) -> ChangeListener:
        """Register a ``change`` listener."""
        return self.changes.subscribe(listener)

    def unsubscribe(self, listener: ChangeListener) -> bool:
        """Remove a ``change`` listener."""
        return self.changes.unsubscribe(listener)

    async def pipeline(
        self,
        *transforms: FileTransform,
        options: PipelineOptions | None = None,
    ) -> "MemoryStore":
        """Run cached records through transforms and commit the output.

        Args:
            transforms: Stages applied left to right.
            options: Routing, conflict, and refresh options.

        Returns:
            The store, for chaining.

        Raises:
            DuplicateFileError: If two output records share a path and no
                conflict policy is configured.
        """
        run_options = options or PipelineOptions()
        try:
            result = await run_pipeline(list(self._cache.values()), transforms, run_options)
        except Exception as error:
            _LOGGER.error(
                "pipeline_failed",
                error_type=type(error).__name__,
                error=str(error),
                transform_count=len(transforms),
            )
            raise
        if result.cache is None:
            _LOGGER.debug(
                "pipeline_skipped_refresh",
                routed_count=result.routed_count,
                emitted_count=result.emitted_count,
            )
            return self
        old_cache = self._cache
        self._cache = result.cache
        changed_paths = diff_caches(old_cache, result.cache)
        _LOGGER.info(
            "pipeline_committed",
            transform_count=len(transforms),
            routed_count=result.routed_count,
            bypassed_count=result.bypassed_count,
            emitted_count=result.emitted_count,
            record_count=len(result.cache),
            changed_count=len(changed_paths),
        )
        for path in changed_paths:
            self.changes.emit(path)
        return self


def create_store(
    config: StageConfig | None = None,
    loader: FileLoader | None = None,
) -> MemoryStore:
    """Create a store from explicit or environment configuration.

    Args:
        config: Optional runtime configuration.
        loader: Optional loader pair.

    Returns:
        Empty store.
    """
    return MemoryStore(config or StageConfig.from_env(), loader)
