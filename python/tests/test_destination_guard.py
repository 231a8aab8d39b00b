"""
Tests for DestinationGuard: echo suppression, debounced resync, polling.
"""

import asyncio
import os
import time

import pytest

from unitsync.build import sync_units
from unitsync.watcher import DestinationGuard, WriteCoordinator


def make_guard(config, sync_fn, clock=time.monotonic, units=("A", "B")):
    coordinator = WriteCoordinator(config, sync_fn, clock=clock)
    for unit in units:
        coordinator.known_units.add(unit)
    guard = DestinationGuard(config, coordinator)
    return guard, coordinator


def touch(path, mtime_ns):
    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.write_text("external\n")
    os.utime(path, ns=(mtime_ns, mtime_ns))


async def wait_for_timer(guard):
    await asyncio.sleep(guard.timer.debounce_delay + 0.1)
    await guard.timer.wait()


# ============================================================================
# ECHO SUPPRESSION
# ============================================================================


@pytest.mark.asyncio
async def test_change_within_cooldown_is_ignored(config, recorder, clock, destination):
    """Destination modified 1s after our write, cooldown 2s → no resync."""
    touch(destination, 1_000_000_000)
    guard, coordinator = make_guard(config, recorder, clock=clock)
    coordinator.mark_write()

    clock.advance(1.0)
    guard.on_change()

    assert not guard.timer.is_pending()
    await wait_for_timer(guard)
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_external_change_after_cooldown_resyncs_all_units(
    config, recorder, clock, destination
):
    """Destination modified 10s after our write, cooldown 2s → one full resync."""
    touch(destination, 1_000_000_000)
    guard, coordinator = make_guard(config, recorder, clock=clock)
    coordinator.mark_write()

    clock.advance(10.0)
    guard.on_change()
    assert guard.timer.is_pending()

    await wait_for_timer(guard)

    assert recorder.calls == [["A", "B"]]
    assert coordinator.last_write_time == clock.now
    assert guard.resync_count == 1


@pytest.mark.asyncio
async def test_burst_of_external_changes_resyncs_once(config, recorder, clock, destination):
    touch(destination, 1_000_000_000)
    guard, _ = make_guard(config, recorder, clock=clock)

    for _ in range(4):
        guard.on_change()
        await asyncio.sleep(0.01)
    await wait_for_timer(guard)

    assert recorder.calls == [["A", "B"]]


@pytest.mark.asyncio
async def test_cooldown_rechecked_when_timer_fires(config, recorder, clock, destination):
    touch(destination, 1_000_000_000)
    guard, coordinator = make_guard(config, recorder, clock=clock)

    guard.on_change()
    assert guard.timer.is_pending()

    # A source-triggered sync lands while we wait
    coordinator.mark_write()

    await wait_for_timer(guard)
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_missing_destination_is_not_recreated(config, recorder, clock, destination):
    guard, _ = make_guard(config, recorder, clock=clock)

    guard.on_change()
    await wait_for_timer(guard)

    assert recorder.calls == []
    assert not destination.exists()


@pytest.mark.asyncio
async def test_new_units_are_included_in_resync(config, recorder, clock, destination):
    touch(destination, 1_000_000_000)
    guard, coordinator = make_guard(config, recorder, clock=clock)
    coordinator.known_units.add("C")

    guard.on_change()
    await wait_for_timer(guard)

    assert recorder.calls == [["A", "B", "C"]]


# ============================================================================
# POLLING
# ============================================================================


@pytest.mark.asyncio
async def test_poll_once_detects_mtime_change(config, recorder, clock, destination):
    touch(destination, 1_000_000_000)
    guard, _ = make_guard(config, recorder, clock=clock)

    assert guard.poll_once() is False
    touch(destination, 2_000_000_000)
    assert guard.poll_once() is True
    assert guard.poll_once() is False
    guard.stop()


@pytest.mark.asyncio
async def test_poll_detects_atomic_replace(config, recorder, clock, destination, tmp_path):
    touch(destination, 1_000_000_000)
    guard, _ = make_guard(config, recorder, clock=clock)
    guard.start()
    try:
        replacement = tmp_path / "replacement.lua"
        replacement.write_text("Reset = true\n")
        os.utime(replacement, ns=(3_000_000_000, 3_000_000_000))
        os.replace(replacement, destination)

        await asyncio.sleep(config.poll_interval * 3)
        await wait_for_timer(guard)

        assert recorder.calls == [["A", "B"]]
    finally:
        guard.stop()
    assert not guard.is_running()


@pytest.mark.asyncio
async def test_poll_treats_deletion_as_change_but_skips_resync(
    config, recorder, clock, destination
):
    touch(destination, 1_000_000_000)
    guard, _ = make_guard(config, recorder, clock=clock)

    destination.unlink()
    assert guard.poll_once() is True
    await wait_for_timer(guard)

    assert recorder.calls == []


@pytest.mark.asyncio
async def test_start_twice_raises(config, recorder):
    guard, _ = make_guard(config, recorder)
    guard.start()
    try:
        with pytest.raises(RuntimeError):
            guard.start()
    finally:
        guard.stop()


@pytest.mark.asyncio
async def test_self_write_is_not_mistaken_for_external(make_config, destination):
    """Real clock, real writes: our own sync must never trigger a resync."""
    config = make_config(cooldown=1.0, poll_interval=0.05, destination_debounce=0.05)
    guard, coordinator = make_guard(config, sync_units)
    guard.start()
    try:
        await coordinator.sync(["A", "B"])
        assert destination.exists()

        await asyncio.sleep(0.5)
        await guard.timer.wait()

        assert guard.resync_count == 0
        assert coordinator.sync_count == 1
    finally:
        guard.stop()
