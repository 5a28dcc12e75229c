from __future__ import annotations

import asyncio

import pytest

from registry_fakes import IDENTITY, REPUTATION, VALIDATION, FakeEventSource, InMemoryStore
from registry_indexer.config import Deployments
from registry_indexer.decoders import build_decoders
from registry_indexer.errors import SyncError
from registry_indexer.infrastructure.schema import WATERMARK_KEY
from registry_indexer.scheduler import Scheduler, block_windows
from registry_indexer.sync_engine import SyncEngine

DEPLOYMENTS = Deployments(
    chain_id=31337,
    identity_registry=IDENTITY,
    reputation_registry=REPUTATION,
    validation_registry=VALIDATION,
)


def _scheduler(source: FakeEventSource, store: InMemoryStore, **kwargs) -> Scheduler:
    engine = SyncEngine(source, store, build_decoders(DEPLOYMENTS, source))
    return Scheduler(engine, source, store, **kwargs)


def test_block_windows_splits_inclusive_ranges():
    assert list(block_windows(0, 4500, 2000)) == [(0, 1999), (2000, 3999), (4000, 4500)]
    assert list(block_windows(5, 5, 2000)) == [(5, 5)]
    assert list(block_windows(10, 9, 2000)) == []
    assert list(block_windows(0, 10_000, 0)) == [(0, 10_000)]


@pytest.mark.asyncio
async def test_start_is_the_higher_of_from_block_and_watermark():
    store = InMemoryStore()
    assert await _scheduler(FakeEventSource(), store, from_block=100).resolve_start() == 100

    store.tables["meta"][WATERMARK_KEY] = 250
    assert await _scheduler(FakeEventSource(), store, from_block=100).resolve_start() == 250
    assert await _scheduler(FakeEventSource(), store, from_block=900).resolve_start() == 900


@pytest.mark.asyncio
async def test_catch_up_applies_to_head_in_chunks():
    source = FakeEventSource(head=4500)
    store = InMemoryStore()
    scheduler = _scheduler(source, store, max_block_range=2000)

    reports = await scheduler.catch_up()

    assert [(r.from_block, r.to_block) for r in reports] == [(0, 1999), (2000, 3999), (4000, 4500)]
    assert scheduler.cursor == 4501
    assert store.tables["meta"][WATERMARK_KEY] == 4500
    assert {request[1:] for request in source.log_requests} == {(0, 1999), (2000, 3999), (4000, 4500)}


@pytest.mark.asyncio
async def test_cycle_is_a_noop_when_head_is_behind_cursor():
    source = FakeEventSource(head=10)
    store = InMemoryStore()
    scheduler = _scheduler(source, store)

    await scheduler.catch_up()
    source.log_requests.clear()

    assert await scheduler.run_cycle() == []
    assert source.log_requests == []
    assert scheduler.cursor == 11


@pytest.mark.asyncio
async def test_failed_window_keeps_cursor_at_first_unapplied_block():
    source = FakeEventSource(head=30)
    store = InMemoryStore()
    scheduler = _scheduler(source, store, max_block_range=10)

    source.failing.add(REPUTATION)
    with pytest.raises(SyncError):
        await scheduler.catch_up()
    assert scheduler.cursor == 0

    source.failing.clear()
    reports = await scheduler.catch_up()
    assert len(reports) == 4
    assert scheduler.cursor == 31


@pytest.mark.asyncio
async def test_follow_retries_after_errors_and_stops():
    source = FakeEventSource(head=5)
    source.failing.add(IDENTITY)
    store = InMemoryStore()
    scheduler = _scheduler(source, store, poll_interval=0.01)

    task = asyncio.create_task(scheduler.follow())
    await asyncio.sleep(0.1)
    assert isinstance(scheduler.last_error, SyncError)

    source.failing.clear()
    await asyncio.sleep(0.1)
    scheduler.stop()
    await asyncio.wait_for(task, timeout=1)

    assert scheduler.stopped
    assert scheduler.last_error is None
    assert store.tables["meta"][WATERMARK_KEY] == 5
