"""Pipeline engine for staged file records.

This module routes cached records through a chain of transforms,
collects the output into a replacement cache, resolves path
collisions, and diffs old and new caches for change notifications.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Callable, Sequence

from core.errors import DuplicateFileError
from core.logging_config import get_logger
from core.types import FilePredicate, FileRecord, FileTransform, PipelineOptions

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of a pipeline run.

    Attributes:
        cache: Replacement cache, or None when refresh is disabled.
        routed_count: Records sent into the transform chain.
        bypassed_count: Records sent straight to the replacement cache.
        emitted_count: Records that came out of the transform chain.
    """

    cache: dict[str, FileRecord] | None
    routed_count: int
    bypassed_count: int
    emitted_count: int


class _ReplacementCollector:
    """Accumulates pipeline output keyed by record path."""

    def __init__(self, options: PipelineOptions) -> None:
        self._options = options
        self.cache: dict[str, FileRecord] | None = {} if options.refresh else None

    def collect(self, record: FileRecord) -> None:
        if self.cache is None:
            return
        current = self.cache.get(record.path)
        if current is None:
            self.cache[record.path] = record
            return
        if self._options.resolve_conflict is not None:
            self.cache[record.path] = self._options.resolve_conflict(current, record)
            _LOGGER.debug("pipeline_conflict_resolved", path=record.path)
            return
        if self._options.allow_override:
            self.cache[record.path] = record
            return
        raise DuplicateFileError(record.path)


class _RoutedSource:
    """Lazy source feeding filtered records into the transform chain.

    Records rejected by the filter are handed to the collector as the
    source advances, so they keep their relative position in the output.
    """

    def __init__(
        self,
        records: Sequence[FileRecord],
        file_filter: FilePredicate,
        bypass: Callable[[FileRecord], None],
    ) -> None:
        self._records = records
        self._filter = file_filter
        self._bypass = bypass
        self._position = 0
        self.routed_count = 0
        self.bypassed_count = 0

    def __aiter__(self) -> "_RoutedSource":
        return self

    async def __anext__(self) -> FileRecord:
        record = self._advance()
        if record is None:
            raise StopAsyncIteration
        return record

    def drain(self) -> None:
        """Bypass remaining filtered-out records after the chain stops early."""
        while self._advance() is not None:
            pass

    def _advance(self) -> FileRecord | None:
        while self._position < len(self._records):
            record = self._records[self._position]
            self._position += 1
            if self._filter(record):
                self.routed_count += 1
                return record
            self.bypassed_count += 1
            self._bypass(record)
        return None


async def run_pipeline(
    records: Sequence[FileRecord],
    transforms: Sequence[FileTransform],
    options: PipelineOptions,
) -> PipelineResult:
    """Drain records through transforms into a replacement cache.

    Args:
        records: Snapshot of cached records in insertion order.
        transforms: Stages applied left to right.
        options: Routing, conflict, and refresh options.

    Returns:
        Pipeline result holding the replacement cache when refreshing.

    Raises:
        DuplicateFileError: If two records share a path with no policy.
    """
    collector = _ReplacementCollector(options)
    source = _RoutedSource(records, _select_filter(options, transforms), collector.collect)
    stages: list[AsyncIterator[FileRecord]] = []
    stream: AsyncIterator[FileRecord] = source
    for transform in transforms:
        stream = transform(stream)
        stages.append(stream)
    emitted_count = 0
    try:
        async for record in stream:
            emitted_count += 1
            collector.collect(record)
    finally:
        await _close_stages(stages)
    source.drain()
    return PipelineResult(
        cache=collector.cache,
        routed_count=source.routed_count,
        bypassed_count=source.bypassed_count,
        emitted_count=emitted_count,
    )


async def _close_stages(stages: list[AsyncIterator[FileRecord]]) -> None:
    """Close stages outermost first so their cleanup runs before returning."""
    for stage in reversed(stages):
        aclose = getattr(stage, "aclose", None)
        if aclose is not None:
            await aclose()


def diff_caches(
    old_cache: dict[str, FileRecord],
    new_cache: dict[str, FileRecord],
) -> list[str]:
    """List keys whose record identity changed between two caches.

    Args:
        old_cache: Cache before the pipeline run.
        new_cache: Replacement cache.

    Returns:
        Changed and removed keys in old order, then added keys in new order.
    """
    changed = [path for path, record in old_cache.items() if new_cache.get(path) is not record]
    added = [path for path in new_cache if path not in old_cache]
    return changed + added


def _select_filter(
    options: PipelineOptions,
    transforms: Sequence[FileTransform],
) -> FilePredicate:
    """Pick the routing predicate for a run."""
    if options.filter is not None:
        return options.filter
    if not transforms:
        return _bypass_all
    return _route_all


def _bypass_all(record: FileRecord) -> bool:
    return False


def _route_all(record: FileRecord) -> bool:
    return True
