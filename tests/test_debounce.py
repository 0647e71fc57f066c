"""Tests for devwatch_core.debounce."""

import asyncio

import pytest

from devwatch_core.debounce import DebouncedTrigger


class Recorder:
    """Synchronous action recording each batch."""

    def __init__(self):
        self.batches: list[set[str]] = []

    def __call__(self, batch):
        self.batches.append(batch)


@pytest.mark.asyncio
async def test_initial_state():
    trigger = DebouncedTrigger(Recorder())
    assert trigger.pending == set()
    assert not trigger.scheduled


@pytest.mark.asyncio
async def test_burst_is_coalesced():
    """Two changes within 10ms and a 50ms window fire once with both files."""
    action = Recorder()
    trigger = DebouncedTrigger(action, delay=0.05)

    trigger.on_change("a.js")
    await asyncio.sleep(0.01)
    trigger.on_change("b.js")

    await asyncio.sleep(0.2)
    assert action.batches == [{"a.js", "b.js"}]


@pytest.mark.asyncio
async def test_duplicates_are_collapsed():
    action = Recorder()
    trigger = DebouncedTrigger(action, delay=0.01)

    for _ in range(5):
        trigger.on_change("a.js")

    await asyncio.sleep(0.1)
    assert action.batches == [{"a.js"}]


@pytest.mark.asyncio
async def test_separate_bursts_fire_separately():
    action = Recorder()
    trigger = DebouncedTrigger(action, delay=0.02)

    trigger.on_change("a.js")
    await asyncio.sleep(0.15)
    trigger.on_change("b.js")
    trigger.on_change("c.js")
    await asyncio.sleep(0.15)

    assert action.batches == [{"a.js"}, {"b.js", "c.js"}]


@pytest.mark.asyncio
async def test_zero_delay_fires_after_burst():
    """With no window, events queued in the same loop iteration share one batch."""
    action = Recorder()
    trigger = DebouncedTrigger(action)

    trigger.on_change("a.js")
    trigger.on_change("b.js")
    trigger.on_change("c.js")
    assert action.batches == []

    await asyncio.sleep(0.05)
    assert action.batches == [{"a.js", "b.js", "c.js"}]
    assert trigger.pending == set()
    assert not trigger.scheduled


@pytest.mark.asyncio
async def test_batch_is_replaced_before_action_runs():
    """Events arriving while the action runs start a new batch."""
    batches = []
    started = asyncio.Event()
    release = asyncio.Event()

    async def action(batch):
        batches.append(set(batch))
        started.set()
        await release.wait()

    trigger = DebouncedTrigger(action, delay=0.01)
    trigger.on_change("a.js")
    await asyncio.wait_for(started.wait(), timeout=1)

    trigger.on_change("b.js")
    assert trigger.pending == {"b.js"}

    release.set()
    await asyncio.sleep(0.1)
    assert batches == [{"a.js"}, {"b.js"}]


@pytest.mark.asyncio
async def test_async_action_is_awaited_as_task():
    done = asyncio.Event()
    received = []

    async def action(batch):
        received.append(batch)
        done.set()

    trigger = DebouncedTrigger(action, delay=0)
    trigger.on_change("x")
    await asyncio.wait_for(done.wait(), timeout=1)
    assert received == [{"x"}]


@pytest.mark.asyncio
async def test_nothing_lost_or_duplicated():
    action = Recorder()
    trigger = DebouncedTrigger(action, delay=0.005)

    expected = set()
    for burst in range(3):
        for i in range(10):
            name = f"f{burst}-{i}"
            expected.add(name)
            trigger.on_change(name)
        await asyncio.sleep(0.08)

    delivered = [item for batch in action.batches for item in batch]
    assert len(delivered) == len(set(delivered))
    assert set(delivered) == expected


@pytest.mark.asyncio
async def test_cancel_drops_scheduled_fire():
    action = Recorder()
    trigger = DebouncedTrigger(action, delay=0.01)

    trigger.on_change("a.js")
    trigger.cancel()

    await asyncio.sleep(0.05)
    assert action.batches == []
    assert trigger.pending == {"a.js"}
