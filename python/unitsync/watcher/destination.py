"""
Destination file guard.

The consuming application may rewrite the destination at any time (often by
writing a new file and renaming it over the old one), discarding the content
we synced. DestinationGuard polls the file's modification time, ignores
changes that are echoes of our own writes, and resyncs every known unit after
a genuine external overwrite.

Polling is used instead of notifications because atomic replaces are missed
or misreported by some notification backends.
"""

import asyncio
import logging
import os
from typing import Optional

from unitsync.config import Config
from unitsync.watcher.coordinator import WriteCoordinator
from unitsync.watcher.debouncer import DebounceTimer, ErrorHandler

logger = logging.getLogger(__name__)


class DestinationGuard:
    """
    Polls the destination mtime and re-applies our content after external writes.

    Echo suppression is a timing heuristic: a change seen within the cooldown
    after our last write is assumed to be that write. A foreign write landing
    inside the cooldown is therefore missed until the next change.
    """

    def __init__(
        self,
        config: Config,
        coordinator: WriteCoordinator,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        self._path = config.destination
        self._poll_interval = config.poll_interval
        self._coordinator = coordinator
        self._loop = loop or asyncio.get_running_loop()
        self._on_error = on_error

        self._timer = DebounceTimer(
            debounce_delay=config.destination_debounce,
            callback=self._resync,
            loop=self._loop,
            on_error=on_error,
        )

        self._last_mtime: Optional[int] = self.observe()
        self._poll_task: Optional[asyncio.Task] = None
        self.resync_count = 0

    @property
    def timer(self) -> DebounceTimer:
        return self._timer

    def observe(self) -> Optional[int]:
        """Current mtime in nanoseconds, or None if the file is absent."""
        try:
            return os.stat(self._path).st_mtime_ns
        except FileNotFoundError:
            return None

    def poll_once(self) -> bool:
        """
        Compare the current mtime with the last observation.

        Returns:
        --------
        True if a change was observed
        """
        mtime = self.observe()
        if mtime == self._last_mtime:
            return False
        self._last_mtime = mtime
        self.on_change()
        return True

    def on_change(self) -> None:
        """React to an observed destination change."""
        if self._coordinator.is_within_cooldown():
            logger.debug("Destination changed during cooldown - treating as our own write")
            return
        self._timer.trigger()

    async def _resync(self) -> None:
        # A source sync may have written while we were waiting
        if self._coordinator.is_within_cooldown():
            return

        if not self._path.exists():
            logger.debug(f"Destination {self._path} is gone - nothing to re-apply")
            return

        units = self._coordinator.known_units.snapshot()
        if not units:
            return

        logger.info(
            f"[RELOAD] {self._path.name} overwritten externally - re-syncing all {len(units)} unit(s)"
        )
        if await self._coordinator.sync(units, skip_if_cooling=True):
            self.resync_count += 1

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            self.poll_once()

    def _on_poll_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if self._on_error is not None:
            self._on_error(exc)
        else:
            logger.error(f"Destination polling stopped: {exc}", exc_info=exc)

    def start(self) -> None:
        """Take a fresh observation and begin polling."""
        if self._poll_task is not None:
            raise RuntimeError("DestinationGuard is already running")
        self._last_mtime = self.observe()
        self._poll_task = self._loop.create_task(self._poll_loop())
        self._poll_task.add_done_callback(self._on_poll_done)

    def stop(self) -> None:
        """Stop polling and disarm any pending resync."""
        self._timer.cancel()
        if self._poll_task is not None:
            self._poll_task.cancel()
            self._poll_task = None

    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()
