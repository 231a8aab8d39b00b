"""
Event debouncing for the watchers.

DebounceTimer fires an async callback once a quiet period has passed since
the last trigger. DebounceQueue adds the batch of distinct items collected
during that period.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Hashable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Hashable)

ErrorHandler = Callable[[BaseException], None]


class DebounceTimer:
    """
    Cancel-and-restart timer around an async callback.

    Behavior:
    ---------
    Every trigger() cancels the pending timer and starts a new one, so the
    callback only runs after debounce_delay seconds with no new triggers.

    Exceptions raised by a timer-driven callback are handed to on_error; when
    flush is awaited directly they propagate to the caller instead.
    """

    def __init__(
        self,
        debounce_delay: float,
        callback: Callable[[], Awaitable[None]],
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        """
        Args:
        -----
        debounce_delay: Seconds of quiet required before firing
        callback: Coroutine function run when the timer fires
        loop: Event loop to schedule on (default: the running loop)
        on_error: Receives exceptions from timer-driven callbacks

        Raises:
        -------
        ValueError: If debounce_delay is not positive
        """
        if debounce_delay <= 0:
            raise ValueError("debounce_delay must be positive")

        self._debounce_delay = debounce_delay
        self._callback = callback
        self._loop = loop or asyncio.get_running_loop()
        self._on_error = on_error

        self._timer_handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def debounce_delay(self) -> float:
        return self._debounce_delay

    def is_pending(self) -> bool:
        """True while a timer is armed and has not fired yet."""
        return self._timer_handle is not None

    def trigger(self) -> None:
        """(Re)start the quiet period."""
        if self._timer_handle:
            self._timer_handle.cancel()
        self._timer_handle = self._loop.call_later(self._debounce_delay, self._fire)

    def cancel(self) -> None:
        """Disarm the timer without firing."""
        if self._timer_handle:
            self._timer_handle.cancel()
            self._timer_handle = None

    def _fire(self) -> None:
        self._timer_handle = None
        self._task = self._loop.create_task(self.flush())
        self._task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if self._on_error is not None:
            self._on_error(exc)
        else:
            logger.error(f"Error in debounced callback: {exc}", exc_info=exc)

    async def flush(self) -> None:
        """Cancel the timer and run the callback now."""
        self.cancel()
        await self._callback()

    async def wait(self) -> None:
        """Wait for the most recent timer-driven callback to finish (tests, shutdown)."""
        if self._task is not None and not self._task.done():
            await asyncio.wait({self._task})


class DebounceQueue(DebounceTimer, Generic[T]):
    """
    Collects distinct items and hands them over as one batch.

    Example:
    --------
    mage/arcane.lua changed at t=0ms
    mage/fire.lua changed at t=50ms      } Collected
    mage/arcane.lua changed at t=100ms   }
    → Flush at t=400ms (300ms debounce) with [mage/arcane.lua, mage/fire.lua]
    """

    def __init__(
        self,
        debounce_delay: float,
        flush_callback: Callable[[list[T]], Awaitable[None]],
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> None:
        super().__init__(debounce_delay, self._flush_batch, loop=loop, on_error=on_error)
        self._flush_callback = flush_callback

        # Insertion-ordered set of pending items
        self._queue: dict[T, None] = {}

    def add(self, item: T) -> None:
        """Add item to the batch and reset the debounce timer."""
        self._queue[item] = None
        self.trigger()

    def __len__(self) -> int:
        return len(self._queue)

    def pending(self) -> list[T]:
        return list(self._queue)

    def take(self) -> list[T]:
        """Snapshot and clear the batch."""
        items = list(self._queue)
        self._queue.clear()
        return items

    def clear(self) -> None:
        """Drop the batch and disarm the timer."""
        self.cancel()
        self._queue.clear()

    async def _flush_batch(self) -> None:
        await self._flush_callback(self.take())
