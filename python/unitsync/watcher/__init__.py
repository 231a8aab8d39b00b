"""
Source and destination watchers.

Two event sources share one WriteCoordinator:

- SourceChangeAggregator: watchdog notifications for the source tree,
  debounced, attributed to units, synced
- DestinationGuard: mtime polling of the destination file, with echo
  suppression for our own writes, full resync on external overwrite

Typical usage:
--------------
    from unitsync.config import load_config
    from unitsync.watcher import SyncWatcher

    watcher = SyncWatcher(load_config())
    asyncio.run(watcher.run())

TIMING SUMMARY
==============

1. SOURCE DEBOUNCE (watch.debounce, 0.3s):
   - Every qualifying event restarts the timer
   - One sync per quiet period, covering every unit touched in it

2. DESTINATION POLL (watch.poll_interval, 1s):
   - mtime comparison, so atomic replaces are seen too

3. COOLDOWN (watch.cooldown, 2s):
   - Destination changes within the cooldown of our last write are echoes
   - Must exceed the poll interval or our writes look external

4. DESTINATION DEBOUNCE (watch.destination_debounce, 0.5s):
   - Lets an external writer finish before we re-apply our content
   - Cooldown is checked again when it fires

5. SERIALIZATION:
   - One sync at a time (asyncio.Lock in WriteCoordinator)
"""

from unitsync.watcher.coordinator import KnownUnits, WriteCoordinator
from unitsync.watcher.core import SyncWatcher
from unitsync.watcher.debouncer import DebounceQueue, DebounceTimer
from unitsync.watcher.destination import DestinationGuard
from unitsync.watcher.handlers import SourceEventHandler
from unitsync.watcher.source import SourceChangeAggregator
from unitsync.watcher.types import FileEvent, SyncWatcherProtocol

__all__ = [
    "DebounceQueue",
    "DebounceTimer",
    "DestinationGuard",
    "FileEvent",
    "KnownUnits",
    "SourceChangeAggregator",
    "SourceEventHandler",
    "SyncWatcher",
    "SyncWatcherProtocol",
    "WriteCoordinator",
]
