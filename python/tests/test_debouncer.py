"""
Tests for DebounceTimer and DebounceQueue.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from unitsync.watcher import DebounceQueue, DebounceTimer


@pytest.mark.asyncio
async def test_timer_rejects_bad_delay():
    with pytest.raises(ValueError):
        DebounceTimer(0, AsyncMock())


@pytest.mark.asyncio
async def test_timer_fires_once_after_quiet_period():
    callback = AsyncMock()
    timer = DebounceTimer(0.1, callback)

    for _ in range(5):
        timer.trigger()
        await asyncio.sleep(0.02)

    assert timer.is_pending()
    callback.assert_not_called()

    await asyncio.sleep(0.2)
    await timer.wait()

    callback.assert_called_once()
    assert not timer.is_pending()


@pytest.mark.asyncio
async def test_timer_cancel():
    callback = AsyncMock()
    timer = DebounceTimer(0.05, callback)
    timer.trigger()
    timer.cancel()
    await asyncio.sleep(0.1)
    callback.assert_not_called()


@pytest.mark.asyncio
async def test_timer_errors_go_to_handler():
    on_error = MagicMock()
    timer = DebounceTimer(0.01, AsyncMock(side_effect=RuntimeError("boom")), on_error=on_error)

    timer.trigger()
    await asyncio.sleep(0.05)
    await timer.wait()

    on_error.assert_called_once()
    assert str(on_error.call_args[0][0]) == "boom"


@pytest.mark.asyncio
async def test_direct_flush_propagates_errors():
    timer = DebounceTimer(1.0, AsyncMock(side_effect=RuntimeError("boom")))
    with pytest.raises(RuntimeError, match="boom"):
        await timer.flush()


@pytest.mark.asyncio
async def test_queue_batches_distinct_items_in_order():
    callback = AsyncMock()
    queue = DebounceQueue(0.05, callback)

    queue.add("A/x.lua")
    queue.add("B/y.lua")
    queue.add("A/x.lua")
    assert len(queue) == 2

    await asyncio.sleep(0.1)
    await queue.wait()

    callback.assert_called_once_with(["A/x.lua", "B/y.lua"])
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_queue_items_after_flush_start_new_batch():
    callback = AsyncMock()
    queue = DebounceQueue(0.05, callback)

    queue.add("A/x.lua")
    await queue.flush()
    queue.add("B/y.lua")
    await queue.flush()

    assert [c.args[0] for c in callback.call_args_list] == [["A/x.lua"], ["B/y.lua"]]


@pytest.mark.asyncio
async def test_queue_clear():
    callback = AsyncMock()
    queue = DebounceQueue(0.05, callback)
    queue.add("A/x.lua")
    queue.clear()
    await asyncio.sleep(0.1)
    callback.assert_not_called()
    assert queue.pending() == []
