"""Transform stage adapters.

This module wraps per-record functions into pipeline stages so callers
can write simple mappers instead of async generators.
"""

from __future__ import annotations

import inspect
from typing import Any, AsyncIterator, Callable, Iterable

from core.errors import StageTransformError
from core.types import FilePredicate, FileRecord, FileTransform

RecordFunction = Callable[[FileRecord], Any]


def record_transform(function: RecordFunction) -> FileTransform:
    """Build a stage applying a function to every record.

    The function may be sync or async. It returns a record to emit,
    None to drop the input, or an iterable of records to emit.

    Args:
        function: Per-record mapper.

    Returns:
        Pipeline stage.
    """

    async def stage(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            output = function(record)
            if inspect.isawaitable(output):
                output = await output
            for emitted in _normalize_output(output, record):
                yield emitted

    return stage


def filter_transform(predicate: FilePredicate) -> FileTransform:
    """Build a stage keeping only records matching a predicate."""

    async def stage(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            if predicate(record):
                yield record

    return stage


def compose_transforms(*stages: FileTransform) -> FileTransform:
    """Chain stages left to right into a single stage."""

    def stage(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        stream = records
        for next_stage in stages:
            stream = next_stage(stream)
        return stream

    return stage


def _normalize_output(output: Any, source: FileRecord) -> Iterable[FileRecord]:
    """Turn a record function result into records to emit.

    Args:
        output: Value returned by the record function.
        source: Input record, for error context.

    Returns:
        Records to emit, possibly empty.

    Raises:
        StageTransformError: If the output contains non-record values.
    """
    if output is None:
        return ()
    if isinstance(output, FileRecord):
        return (output,)
    if isinstance(output, (str, bytes)) or not isinstance(output, Iterable):
        raise StageTransformError(
            f"Record transform returned {type(output).__name__} for {source.path}. "
            "Return a FileRecord, None, or an iterable of FileRecord."
        )
    emitted = list(output)
    for item in emitted:
        if not isinstance(item, FileRecord):
            raise StageTransformError(
                f"Record transform emitted {type(item).__name__} for {source.path}. "
                "Every emitted item must be a FileRecord."
            )
    return emitted
