"""
Cancellable timers for the preview runtime.

`AsyncioScheduler` drives real-time preview on the running event loop.
`ManualScheduler` keeps a virtual clock that only moves when `advance()` is
called, which is how non-real-time rendering steps a graphic and how tests
observe transition timing without sleeping.
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Tuple


class TimerHandle:
    """Handle to one scheduled callback. Cancelling twice is harmless."""

    def __init__(self, due_ms: float, callback: Callable[[], None]):
        self.due_ms = due_ms
        self._callback = callback
        self.cancelled = False
        self.fired = False
        self._loop_handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if not self.pending:
            return
        self.cancelled = True
        if self._loop_handle is not None:
            self._loop_handle.cancel()

    def _fire(self) -> None:
        if not self.pending:
            return
        self.fired = True
        self._callback()


class Scheduler:
    """Interface: `call_later(delay_ms, callback) -> TimerHandle`."""

    def now_ms(self) -> float:
        raise NotImplementedError

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def pending_count(self) -> int:
        raise NotImplementedError


class AsyncioScheduler(Scheduler):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: List[TimerHandle] = []

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now_ms(self) -> float:
        return self.loop.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.now_ms() + delay_ms, callback)
        handle._loop_handle = self.loop.call_later(max(delay_ms, 0) / 1000.0, handle._fire)
        self._handles = [h for h in self._handles if h.pending] + [handle]
        return handle

    def pending_count(self) -> int:
        return sum(1 for h in self._handles if h.pending)


class ManualScheduler(Scheduler):
    """Virtual clock. Callbacks run inside `advance()` in due order."""

    def __init__(self):
        self._now = 0.0
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, TimerHandle]] = []

    def now_ms(self) -> float:
        return self._now

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self._now + max(delay_ms, 0), callback)
        heapq.heappush(self._queue, (handle.due_ms, next(self._seq), handle))
        return handle

    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._queue if h.pending)

    def advance(self, ms: float) -> int:
        """Move the clock forward by `ms`, firing every timer that comes due. Returns how many fired."""
        target = self._now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self._now = due
            if handle.pending:
                handle._fire()
                fired += 1
        self._now = target
        return fired

    def run_all(self) -> int:
        """Fire everything still pending, however far in the future."""
        fired = 0
        while self._queue:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            if handle.pending:
                handle._fire()
                fired += 1
        return fired
