"""Tests for in-flight request coalescing."""

import asyncio

import pytest

from pricecompare.services.deduplicator import RequestDeduplicator


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_run():
    dedup = RequestDeduplicator()
    runs = 0
    release = asyncio.Event()

    async def work():
        nonlocal runs
        runs += 1
        await release.wait()
        return "done"

    first = asyncio.create_task(dedup.dedupe("k", work))
    second = asyncio.create_task(dedup.dedupe("k", work))
    await asyncio.sleep(0.01)
    release.set()

    assert await first == "done"
    assert await second == "done"
    assert runs == 1
    assert dedup.get_stats() == {"in_flight": 0, "started": 1, "joined": 1}


@pytest.mark.asyncio
async def test_sequential_callers_run_again():
    dedup = RequestDeduplicator()
    calls = []

    async def work():
        calls.append(1)
        return len(calls)

    assert await dedup.dedupe("k", work) == 1
    assert await dedup.dedupe("k", work) == 2


@pytest.mark.asyncio
async def test_errors_reach_every_waiter():
    dedup = RequestDeduplicator()

    async def boom():
        await asyncio.sleep(0.01)
        raise RuntimeError("upstream exploded")

    results = await asyncio.gather(
        dedup.dedupe("k", boom), dedup.dedupe("k", boom), return_exceptions=True
    )

    assert all(isinstance(r, RuntimeError) for r in results)
    assert dedup.get_stats()["in_flight"] == 0


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_shared_work():
    dedup = RequestDeduplicator()
    finished = asyncio.Event()

    async def work():
        await asyncio.sleep(0.02)
        finished.set()
        return "ok"

    caller = asyncio.create_task(dedup.dedupe("k", work))
    await asyncio.sleep(0)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    await asyncio.wait_for(finished.wait(), 1)


@pytest.mark.asyncio
async def test_cancel_all():
    dedup = RequestDeduplicator()

    async def forever():
        await asyncio.Event().wait()

    caller = asyncio.create_task(dedup.dedupe("k", forever))
    await asyncio.sleep(0)

    assert await dedup.cancel_all() == 1
    with pytest.raises(asyncio.CancelledError):
        await caller
