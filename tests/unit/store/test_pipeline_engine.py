"""Unit tests for pipeline runs against the memory store."""

from __future__ import annotations

from typing import AsyncIterator

import pytest

from core.errors import DuplicateFileError
from core.types import FileRecord, PipelineOptions
from store.memory_store import MemoryStore
from store.pipeline_engine import diff_caches, run_pipeline
from tests.fixture_paths import fixture_config


def _store_with(*paths: str) -> tuple[MemoryStore, list[FileRecord]]:
    store = MemoryStore(fixture_config())
    records = [FileRecord(path=path, contents=path.encode("utf-8")) for path in paths]
    for record in records:
        store.add(record)
    return store, records


def _listen(store: MemoryStore) -> list[str]:
    seen: list[str] = []
    store.subscribe(seen.append)
    return seen


async def _drop_markdown(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
    async for record in records:
        if record.extname != ".md":
            yield record


@pytest.mark.asyncio
async def test_empty_pipeline_keeps_records_without_events() -> None:
    """A no-op run should rebuild the cache with the same identities."""
    store, records = _store_with("/work/a.txt", "/work/b.txt")
    seen = _listen(store)
    old_cache = store._cache

    await store.pipeline()

    assert store._cache is not old_cache
    assert store.all() == records
    assert all(left is right for left, right in zip(store.all(), records))
    assert seen == []


@pytest.mark.asyncio
async def test_run_pipeline_builds_new_cache_container() -> None:
    """The engine should return a fresh mapping keyed by record path."""
    records = [FileRecord(path="/work/a.txt")]

    result = await run_pipeline(records, (), PipelineOptions())

    assert result.cache == {"/work/a.txt": records[0]}
    assert (result.bypassed_count, result.routed_count) == (1, 0)


@pytest.mark.asyncio
async def test_renamed_record_moves_to_new_key() -> None:
    """Renaming a record in memory should move it at the next run."""
    store, (record,) = _store_with("/work/a.txt")
    seen = _listen(store)
    record.path = "/work/a.txt.renamed"

    await store.pipeline()

    assert store.exists_in_memory("/work/a.txt") is False
    assert store.exists_in_memory("/work/a.txt.renamed") is True
    assert sorted(seen) == ["/work/a.txt", "/work/a.txt.renamed"]


@pytest.mark.asyncio
async def test_duplicate_paths_fail_and_keep_cache() -> None:
    """Colliding records without a policy should abort the commit."""
    store, (first, second) = _store_with("/work/a.txt", "/work/b.txt")
    seen = _listen(store)
    second.path = first.path

    with pytest.raises(DuplicateFileError) as error_info:
        await store.pipeline()

    assert error_info.value.path == "/work/a.txt"
    assert store.get("/work/a.txt") is first
    assert store.get("/work/b.txt") is second
    assert seen == []


@pytest.mark.asyncio
async def test_allow_override_keeps_later_record() -> None:
    """Allow override should let the later record win the key."""
    store, (first, second) = _store_with("/work/a.txt", "/work/b.txt")
    second.path = first.path

    await store.pipeline(options=PipelineOptions(allow_override=True))

    assert store.all() == [second]
    assert store.get("/work/a.txt").contents == b"/work/b.txt"


@pytest.mark.asyncio
async def test_resolve_conflict_takes_precedence_over_override() -> None:
    """An explicit resolver should decide the survivor."""
    store, (first, second) = _store_with("/work/a.txt", "/work/b.txt")
    second.path = first.path
    options = PipelineOptions(
        resolve_conflict=lambda current, incoming: current,
        allow_override=True,
    )

    await store.pipeline(options=options)

    assert store.all() == [first]
    assert store.get("/work/a.txt").contents == b"/work/a.txt"


@pytest.mark.asyncio
async def test_dropped_record_is_removed_with_event() -> None:
    """Records a transform does not re-emit should leave the cache."""
    store, _ = _store_with("/work/a.txt", "/work/b.md")
    seen = _listen(store)

    await store.pipeline(_drop_markdown)

    assert store.exists_in_memory("/work/b.md") is False
    assert seen == ["/work/b.md"]


@pytest.mark.asyncio
async def test_invented_record_is_added_with_event() -> None:
    """Records created inside a transform should be committed."""
    store, _ = _store_with("/work/a.txt")
    seen = _listen(store)

    async def add_index(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            yield record
        yield FileRecord(path="/work/index.txt", contents=b"a.txt")

    await store.pipeline(add_index)

    assert store.get("/work/index.txt").contents == b"a.txt"
    assert seen == ["/work/index.txt"]


@pytest.mark.asyncio
async def test_in_place_edit_keeps_identity_without_event() -> None:
    """Mutating records in place should not count as a change."""
    store, (record,) = _store_with("/work/a.txt")
    seen = _listen(store)

    async def upper(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for item in records:
            item.contents = (item.contents or b"").upper()
            yield item

    await store.pipeline(upper)

    assert store.get("/work/a.txt") is record
    assert record.contents == b"/WORK/A.TXT"
    assert seen == []


@pytest.mark.asyncio
async def test_cloned_record_emits_change() -> None:
    """Replacing a record with a clone should notify its path."""
    store, (record,) = _store_with("/work/a.txt")
    seen = _listen(store)

    async def clone(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for item in records:
            yield item.clone()

    await store.pipeline(clone)

    assert store.get("/work/a.txt") is not record
    assert seen == ["/work/a.txt"]


@pytest.mark.asyncio
async def test_filter_routes_only_matching_records() -> None:
    """Records rejected by the filter should bypass the transforms."""
    store, (text_record, markdown_record) = _store_with("/work/a.txt", "/work/b.md")
    visited: list[str] = []

    async def drop_all(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            visited.append(record.path)
        return
        yield

    options = PipelineOptions(filter=lambda record: record.extname == ".txt")
    await store.pipeline(drop_all, options=options)

    assert visited == ["/work/a.txt"]
    assert store.all() == [markdown_record]
    assert text_record not in store.all()


@pytest.mark.asyncio
async def test_bypassed_records_survive_early_stopping_stage() -> None:
    """Bypassed records after a stage stops reading should still commit."""
    store, records = _store_with("/work/a.txt", "/work/b.md", "/work/c.txt", "/work/d.md")

    async def first_only(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            yield record
            return

    options = PipelineOptions(filter=lambda record: record.extname == ".txt")
    await store.pipeline(first_only, options=options)

    assert [record.path for record in store.all()] == ["/work/a.txt", "/work/b.md", "/work/d.md"]


@pytest.mark.asyncio
async def test_refresh_disabled_runs_transforms_only() -> None:
    """Without refresh the cache should stay untouched."""
    store, (first, second) = _store_with("/work/a.txt", "/work/b.txt")
    seen = _listen(store)
    visited: list[str] = []
    second.path = first.path

    async def record_paths(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            visited.append(record.path)
            yield record

    await store.pipeline(record_paths, options=PipelineOptions(refresh=False))

    assert visited == ["/work/a.txt", "/work/a.txt"]
    assert store.all() == [first, second]
    assert seen == []


@pytest.mark.asyncio
async def test_transform_error_aborts_run() -> None:
    """A failing transform should leave the previous cache committed."""
    store, records = _store_with("/work/a.txt", "/work/b.txt")
    seen = _listen(store)

    async def explode(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        async for record in records:
            record.path = "/work/moved.txt"
            yield record
            raise RuntimeError("transform failed")

    with pytest.raises(RuntimeError, match="transform failed"):
        await store.pipeline(explode)

    assert store.all() == records
    assert store.exists_in_memory("/work/a.txt") is True
    assert seen == []


@pytest.mark.asyncio
async def test_pipeline_returns_store() -> None:
    """Pipeline should return the store for chaining."""
    store, _ = _store_with("/work/a.txt")

    assert await store.pipeline() is store


def test_diff_caches_reports_changed_removed_and_added() -> None:
    """Diff should list keys whose identity changed, vanished, or appeared."""
    kept = FileRecord(path="/work/kept.txt")
    old_cache = {
        "/work/kept.txt": kept,
        "/work/replaced.txt": FileRecord(path="/work/replaced.txt"),
        "/work/removed.txt": FileRecord(path="/work/removed.txt"),
    }
    new_cache = {
        "/work/kept.txt": kept,
        "/work/replaced.txt": FileRecord(path="/work/replaced.txt"),
        "/work/added.txt": FileRecord(path="/work/added.txt"),
    }

    changed = diff_caches(old_cache, new_cache)

    assert changed == ["/work/replaced.txt", "/work/removed.txt", "/work/added.txt"]


@pytest.mark.asyncio
async def test_failed_run_closes_stages_before_raising() -> None:
    """Stage cleanup should run before a duplicate error reaches the caller."""
    store, (first, second) = _store_with("/work/a.txt", "/work/b.txt")
    second.path = first.path
    cleaned: list[str] = []

    async def tracked(records: AsyncIterator[FileRecord]) -> AsyncIterator[FileRecord]:
        try:
            async for record in records:
                yield record
        finally:
            cleaned.append("tracked")

    with pytest.raises(DuplicateFileError):
        await store.pipeline(tracked)

    assert cleaned == ["tracked"]
