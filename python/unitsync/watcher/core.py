"""
Top-level watcher wiring.

SyncWatcher owns the WriteCoordinator, the SourceChangeAggregator (fed by a
watchdog observer) and the DestinationGuard. Everything except the observer
thread runs on one asyncio event loop.
"""

import asyncio
import logging
import time
from functools import partial
from typing import Callable, Optional

from unitsync.build import sync_units
from unitsync.config import Config
from unitsync.errors import NoUnitsError
from unitsync.ignore_patterns import build_ignore_spec
from unitsync.units import discover_units, summarize_units
from unitsync.watcher.coordinator import WriteCoordinator
from unitsync.watcher.destination import DestinationGuard
from unitsync.watcher.handlers import SourceEventHandler
from unitsync.watcher.source import SourceChangeAggregator
from unitsync.watcher.types import DiscoverFn, SyncFn

logger = logging.getLogger(__name__)


class SyncWatcher:
    """
    Keeps the destination file in step with the source tree.

    Constructor Args:
    -----------------
    config: Validated configuration
    sync_fn: Collaborator that regenerates units in the destination
    discover_fn: Collaborator that lists units under the source root
    clock: Monotonic time source for the cooldown

    Example Usage:
    --------------
    >>> watcher = SyncWatcher(load_config())
    >>> asyncio.run(watcher.run())   # until Ctrl+C or a failed sync
    """

    def __init__(
        self,
        config: Config,
        sync_fn: SyncFn = sync_units,
        discover_fn: Optional[DiscoverFn] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Raises:
        -------
        FileNotFoundError: If the source root doesn't exist
        ValueError: If the source root is not a directory
        """
        root = config.source_root
        if not root.exists():
            raise FileNotFoundError(f"Source root does not exist: {root}")
        if not root.is_dir():
            raise ValueError(f"Source root is not a directory: {root}")

        self._config = config
        self._root = root
        self._ignore_spec = build_ignore_spec(config.ignore)
        if discover_fn is None:
            discover_fn = partial(
                discover_units, extension=config.extension, ignore_spec=self._ignore_spec
            )
        self._discover = discover_fn

        self.coordinator = WriteCoordinator(config, sync_fn, clock=clock)
        self.aggregator: Optional[SourceChangeAggregator] = None
        self.guard: Optional[DestinationGuard] = None

        self._observer = None
        self._failure: Optional[asyncio.Future] = None

    async def start(self) -> None:
        """
        Discover units, run the initial full sync, then start both watchers.

        Raises:
        -------
        RuntimeError: If already running
        NoUnitsError: If no units are found
        """
        if self.is_running():
            raise RuntimeError("SyncWatcher is already running")

        loop = asyncio.get_running_loop()

        units = self._discover(self._root)
        if not units:
            raise NoUnitsError(f"No unit directories found in {self._root}")
        for unit in units:
            self.coordinator.known_units.add(unit)

        summary = summarize_units(units, self._root, self._config.extension, self._ignore_spec)
        logger.info(f"Watching {self._root} - {len(units)} unit(s) ({summary})")

        await self.coordinator.sync(units)

        self._failure = loop.create_future()
        self.aggregator = SourceChangeAggregator(
            self._config,
            self.coordinator,
            discover_fn=self._discover,
            loop=loop,
            on_error=self._on_background_error,
            ignore_spec=self._ignore_spec,
        )
        self.guard = DestinationGuard(
            self._config, self.coordinator, loop=loop, on_error=self._on_background_error
        )
        self.guard.start()
        self._start_observer(loop)

        logger.info("Watching for changes... (Ctrl+C to stop)")
        logger.info(f"Watching {self._config.destination} for external changes")

    def _start_observer(self, loop: asyncio.AbstractEventLoop) -> None:
        from watchdog.observers import Observer

        handler = SourceEventHandler(loop, self.aggregator.handle_event)
        self._observer = Observer()
        self._observer.schedule(handler, str(self._root), recursive=True)
        self._observer.start()

    def _on_background_error(self, exc: BaseException) -> None:
        logger.error(f"Sync failed: {exc}", exc_info=exc)
        if self._failure is not None and not self._failure.done():
            self._failure.set_exception(exc)

    async def run(self) -> None:
        """
        Start and block until stop() is called or a background sync fails.

        Raises:
        -------
        The first exception raised by a debounced sync or the destination poll
        """
        await self.start()
        try:
            await self._failure
        finally:
            self.stop()

    def stop(self) -> None:
        """Stop watching and clean up resources."""
        if self._observer is not None:
            logger.info("Stopping source watcher")
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None

        if self.aggregator is not None:
            self.aggregator.cancel()
        if self.guard is not None:
            self.guard.stop()

        if self._failure is not None and not self._failure.done():
            self._failure.set_result(None)

    def is_running(self) -> bool:
        """Check if the watcher is currently active."""
        return self._observer is not None and self._observer.is_alive()
