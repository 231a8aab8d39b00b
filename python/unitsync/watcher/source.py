"""
Source tree change aggregation.

SourceChangeAggregator receives normalized file events (from the watchdog
handler), keeps the ones that can affect the destination, and after a quiet
period syncs exactly the units those changes touch.
"""

import asyncio
import logging
from functools import partial
from pathlib import Path
from typing import Optional

from pathspec import PathSpec

from unitsync.config import Config
from unitsync.ignore_patterns import build_ignore_spec, is_ignored, relative_posix
from unitsync.units import discover_units
from unitsync.watcher.coordinator import KnownUnits, WriteCoordinator
from unitsync.watcher.debouncer import DebounceQueue, ErrorHandler
from unitsync.watcher.types import DiscoverFn, FileEvent

logger = logging.getLogger(__name__)


class SourceChangeAggregator:
    """
    Debounces source changes and turns them into sync targets.

    Flush Rules:
    ------------
    1. A file directly in the source root is shared: every known unit syncs
    2. Any other file marks its top-level directory (its unit) as affected
    3. Units that discovery finds for the first time are added and synced
    4. Nothing is synced for an empty target
    5. Changes under directories that are not known units are dropped

    Errors from discovery or sync propagate out of flush(); timer-driven
    flushes hand them to on_error.
    """

    def __init__(
        self,
        config: Config,
        coordinator: WriteCoordinator,
        discover_fn: Optional[DiscoverFn] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_error: Optional[ErrorHandler] = None,
        ignore_spec: Optional[PathSpec] = None,
    ) -> None:
        self._config = config
        self._coordinator = coordinator
        self._root = config.source_root
        self._extension = config.extension
        self._destination = config.destination.resolve()
        self._ignore_spec = ignore_spec if ignore_spec is not None else build_ignore_spec(config.ignore)

        if discover_fn is None:
            discover_fn = partial(
                discover_units, extension=self._extension, ignore_spec=self._ignore_spec
            )
        self._discover = discover_fn

        self._queue: DebounceQueue[str] = DebounceQueue(
            debounce_delay=config.debounce,
            flush_callback=self._sync_changes,
            loop=loop,
            on_error=on_error,
        )

    @property
    def queue(self) -> DebounceQueue[str]:
        return self._queue

    def qualify(self, file_path: Path) -> Optional[str]:
        """
        Root-relative path if the file can affect the destination, else None.
        """
        file_path = Path(file_path)
        if not file_path.is_absolute():
            file_path = self._root / file_path

        if not file_path.name.lower().endswith(self._extension):
            return None

        rel_path = relative_posix(file_path, self._root)
        if rel_path is None:
            # Reported through a symlinked path
            rel_path = relative_posix(file_path.resolve(), self._root)
            if rel_path is None:
                return None

        # Our own output must never feed back into a sync
        if self._root / rel_path == self._destination:
            return None

        if is_ignored(rel_path, self._ignore_spec):
            return None
        return rel_path

    def handle_event(self, event_type: FileEvent, file_path: Path) -> bool:
        """
        Add a qualifying event to the pending batch and restart the debounce.

        Returns:
        --------
        True if the event was queued, False if it was filtered out
        """
        rel_path = self.qualify(file_path)
        if rel_path is None:
            return False

        logger.debug(f"Queued {event_type.value}: {rel_path}")
        self._queue.add(rel_path)
        return True

    def classify(self, changes: list[str]) -> tuple[bool, KnownUnits]:
        """
        Split changed paths into (shared, affected units).
        """
        shared = False
        affected = KnownUnits()
        for rel_path in changes:
            parts = rel_path.split("/")
            if len(parts) == 1:
                shared = True
                logger.info(f"Changed: {rel_path} (shared)")
            else:
                affected.add(parts[0])
                logger.info(f"Changed: {rel_path}")
        return shared, affected

    async def flush(self) -> None:
        """Flush the pending batch now."""
        await self._queue.flush()

    async def _sync_changes(self, changes: list[str]) -> None:
        if not changes:
            return

        shared, affected = self.classify(changes)
        known = self._coordinator.known_units

        for unit in await asyncio.to_thread(self._discover, self._root):
            if known.add(unit):
                affected.add(unit)
                logger.info(f"[NEW UNIT] Detected {unit}/ - creating its segment")

        if shared:
            target = known.snapshot()
        else:
            target = [unit for unit in affected if unit in known]
            skipped = [unit for unit in affected if unit not in known]
            if skipped:
                logger.debug(f"Ignoring changes outside known units: {', '.join(skipped)}")

        if not target:
            return

        await self._coordinator.sync(target)

    def cancel(self) -> None:
        """Drop pending changes (shutdown)."""
        self._queue.clear()
