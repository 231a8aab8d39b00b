"""
Tests for SourceEventHandler: watchdog event normalization.
"""

import asyncio
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from unitsync.watcher import FileEvent, SourceEventHandler


async def dispatch(event):
    on_event = MagicMock()
    handler = SourceEventHandler(asyncio.get_running_loop(), on_event)
    handler.dispatch(event)
    await asyncio.sleep(0)  # let call_soon_threadsafe callbacks run
    return [c.args for c in on_event.call_args_list]


@pytest.mark.asyncio
async def test_file_events_are_forwarded():
    assert await dispatch(FileCreatedEvent("/src/A/x.lua")) == [
        (FileEvent.CREATED, Path("/src/A/x.lua"))
    ]
    assert await dispatch(FileModifiedEvent("/src/A/x.lua")) == [
        (FileEvent.MODIFIED, Path("/src/A/x.lua"))
    ]
    assert await dispatch(FileDeletedEvent("/src/A/x.lua")) == [
        (FileEvent.DELETED, Path("/src/A/x.lua"))
    ]


@pytest.mark.asyncio
async def test_move_reports_both_ends():
    events = await dispatch(FileMovedEvent("/src/A/x.lua.tmp", "/src/A/x.lua"))
    assert events == [
        (FileEvent.MOVED, Path("/src/A/x.lua.tmp")),
        (FileEvent.MOVED, Path("/src/A/x.lua")),
    ]


@pytest.mark.asyncio
async def test_directory_events_are_dropped():
    assert await dispatch(DirCreatedEvent("/src/C")) == []
