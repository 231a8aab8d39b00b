"""
Shared state for the source and destination watchers.

WriteCoordinator holds the known unit set, the time of our last write, and
the lock that serializes sync calls. It is only touched from the event loop
thread; watchdog callbacks reach it through loop.call_soon_threadsafe.
"""

import asyncio
import logging
import time
from typing import Callable, Iterable, Iterator, Optional, Sequence

from unitsync.config import Config
from unitsync.watcher.types import SyncFn

logger = logging.getLogger(__name__)


class KnownUnits:
    """Insertion-ordered set of unit names that only grows."""

    def __init__(self, units: Iterable[str] = ()) -> None:
        self._units: dict[str, None] = {}
        for unit in units:
            self.add(unit)

    def add(self, name: str) -> bool:
        """Add a unit; returns False if it was already known."""
        if name in self._units:
            return False
        self._units[name] = None
        return True

    def __contains__(self, name: object) -> bool:
        return name in self._units

    def __iter__(self) -> Iterator[str]:
        return iter(self._units)

    def __len__(self) -> int:
        return len(self._units)

    def snapshot(self) -> list[str]:
        return list(self._units)

    def __repr__(self) -> str:
        return f"KnownUnits({list(self._units)!r})"


class WriteCoordinator:
    """
    Known units, write mark and sync serialization.

    Args:
    -----
    config: Watcher configuration (cooldown, and passed through to sync_fn)
    sync_fn: Collaborator that regenerates the destination for some units
    clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        config: Config,
        sync_fn: SyncFn,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not callable(sync_fn):
            raise TypeError("sync_fn must be callable")

        self.config = config
        self.known_units = KnownUnits()
        self.last_write_time: Optional[float] = None
        self.sync_count = 0

        self._sync_fn = sync_fn
        self._clock = clock
        self._lock = asyncio.Lock()

    def mark_write(self) -> None:
        """Record that we just wrote the destination."""
        self.last_write_time = self._clock()

    def is_within_cooldown(self, now: Optional[float] = None) -> bool:
        """True while destination changes are presumed to be echoes of our write."""
        if self.last_write_time is None:
            return False
        if now is None:
            now = self._clock()
        return now - self.last_write_time < self.config.cooldown

    async def sync(self, units: Sequence[str], *, skip_if_cooling: bool = False) -> bool:
        """
        Run the sync collaborator for units, one call at a time.

        The collaborator runs in a worker thread so the loop keeps collecting
        events; the lock keeps a second sync from starting until it returns.

        Args:
        -----
        units: Non-empty target unit names
        skip_if_cooling: Re-check the cooldown once the lock is held and skip
            the sync if a write landed while we waited

        Returns:
        --------
        True if the sync ran, False if it was skipped

        Raises:
        -------
        Whatever sync_fn raises; the write mark is only set on success
        """
        if not units:
            raise ValueError("sync target must not be empty")

        async with self._lock:
            if skip_if_cooling and self.is_within_cooldown():
                logger.debug("Skipping sync: our own write landed during the wait")
                return False

            target = list(units)
            await asyncio.to_thread(self._sync_fn, self.config, target)
            self.mark_write()
            self.sync_count += 1
            return True
