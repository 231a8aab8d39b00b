"""
Internal event handler for watchdog file system monitoring.

Watchdog delivers events on its observer thread. The handler converts them
to (FileEvent, Path) pairs and hands them to the event loop, which owns all
watcher state.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable

from unitsync.watcher.types import FileEvent

logger = logging.getLogger(__name__)


class SourceEventHandler:
    """
    Internal event handler for watchdog.

    Directory events are dropped here: new unit directories are picked up by
    discovery when the files inside them produce events.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_event: Callable[[FileEvent, Path], None],
    ) -> None:
        """
        Args:
        -----
        loop: Event loop that on_event must run on
        on_event: Loop-side receiver of normalized events
        """
        self._loop = loop
        self._on_event = on_event

    def _post(self, event_type: FileEvent, path: str) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._on_event, event_type, Path(path))

    def dispatch(self, event) -> None:
        """Dispatch file system events to the loop."""
        from watchdog.events import (
            FileCreatedEvent,
            FileDeletedEvent,
            FileModifiedEvent,
            FileMovedEvent,
        )

        if event.is_directory:
            return

        if isinstance(event, FileCreatedEvent):
            self._post(FileEvent.CREATED, event.src_path)
        elif isinstance(event, FileModifiedEvent):
            self._post(FileEvent.MODIFIED, event.src_path)
        elif isinstance(event, FileDeletedEvent):
            self._post(FileEvent.DELETED, event.src_path)
        elif isinstance(event, FileMovedEvent):
            # Editors often save via rename; both ends may belong to units
            self._post(FileEvent.MOVED, event.src_path)
            self._post(FileEvent.MOVED, event.dest_path)
