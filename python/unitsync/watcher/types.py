"""
Watcher type definitions and protocol.

This module defines the core types shared by the watchers:
- FileEvent enum: source events that can trigger a sync
- SyncFn / DiscoverFn: the collaborator call signatures
- SyncWatcherProtocol: lifecycle contract of the top-level watcher
"""

from enum import Enum
from pathlib import Path
from typing import Callable, Protocol, Sequence

from unitsync.config import Config

# sync_fn(config, unit_names) -> None; must be deterministic and idempotent
SyncFn = Callable[[Config, Sequence[str]], None]

# discover_fn(root) -> sorted unit names, stable for an unchanged tree
DiscoverFn = Callable[[Path], list[str]]


class FileEvent(Enum):
    """Source tree event types that qualify for a sync."""

    CREATED = "created"  # New file added to the source tree
    MODIFIED = "modified"  # Existing file content changed
    DELETED = "deleted"  # File removed (its unit still needs regenerating)
    MOVED = "moved"  # File renamed or moved (both ends are reported)


class SyncWatcherProtocol(Protocol):
    """
    Protocol defining the top-level watcher interface.

    Expected Behavior:
    ------------------
    1. Discover units and perform one full sync on start
    2. Watch the source tree recursively, debounce, sync affected units
    3. Poll the destination and resync everything after external overwrites
    4. Serialize every sync so destination writes never interleave
    5. Surface sync failures instead of swallowing them

    Thread Safety:
    --------------
    - Watchdog runs in a separate thread and only schedules work on the loop
    - All shared state is owned by the asyncio event loop
    """

    async def start(self) -> None:
        """
        Discover units, run the initial sync and begin watching.

        Error Conditions:
        -----------------
        - Raises RuntimeError if already started
        - Raises NoUnitsError if the source root holds no units
        """
        ...

    async def run(self) -> None:
        """Start, then block until stop() or a background sync failure (re-raised)."""
        ...

    def stop(self) -> None:
        """Stop watching. Safe to call more than once."""
        ...

    def is_running(self) -> bool:
        """True between a successful start() and stop()."""
        ...
