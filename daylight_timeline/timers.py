"""Cancellable timers for debounced interaction."""

import asyncio
import heapq
import itertools
import logging
from typing import Any, Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """Schedules callbacks on the event loop."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any: ...

    def cancel(self, handle: Any) -> None: ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def cancel(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()


class ManualScheduler:
    """
    Scheduler driven by a logical clock.

    Time only moves when advance() is called, which runs every callback
    that has come due, in order.
    """

    def __init__(self, start: float = 0.0):
        self._now = start
        self._queue: list = []
        self._cancelled: set[int] = set()
        self._ids = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> int:
        handle = next(self._ids)
        heapq.heappush(self._queue, (self._now + delay, handle, callback))
        return handle

    def cancel(self, handle: int) -> None:
        self._cancelled.add(handle)

    @property
    def pending(self) -> int:
        return sum(1 for _, h, _ in self._queue if h not in self._cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due callbacks."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, handle, callback = heapq.heappop(self._queue)
            if handle in self._cancelled:
                self._cancelled.discard(handle)
                continue
            self._now = due
            callback()
        self._now = target


class CancellableTimer:
    """
    A single pending callback that is replaced, never stacked.

    Scheduling while a callback is pending cancels the old one first.
    """

    def __init__(self, scheduler: Scheduler):
        self.scheduler = scheduler
        self._handle: Any = None
        self._due_at: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def due_at(self) -> Optional[float]:
        return self._due_at

    def replace(self, delay: float, callback: Callable[[], None]) -> None:
        """Cancel any pending callback and schedule a new one."""
        self.cancel()

        def fire() -> None:
            self._handle = None
            self._due_at = None
            callback()

        self._due_at = self.scheduler.now() + delay
        self._handle = self.scheduler.call_later(delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self.scheduler.cancel(self._handle)
            self._handle = None
            self._due_at = None
