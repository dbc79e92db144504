"""Cancellable single-shot timers.

State machines never sleep. They ask a scheduler to call them back later and
keep the returned handle, cancelling it when the owning view is torn down.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional


class ScheduledTask(ABC):
    """Handle for a callback that has been scheduled but may not have run."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. Safe to call more than once."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        """Whether cancel() was called."""


class Scheduler(ABC):
    """Source of single-shot timers."""

    @abstractmethod
    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
    ) -> ScheduledTask:
        """Run callback(*args) once after delay seconds."""

    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""


class _AsyncioTask(ScheduledTask):
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler(Scheduler):
    """
    Scheduler backed by an asyncio event loop.

    Without an explicit loop, each call uses the loop running at that moment.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
    ) -> ScheduledTask:
        return _AsyncioTask(self.loop.call_later(max(0.0, delay), callback, *args))

    def now(self) -> float:
        return self.loop.time()


class _ManualTask(ScheduledTask):
    def __init__(self, due: float, callback: Callable[..., Any], args: tuple) -> None:
        self.due = due
        self.callback = callback
        self.args = args
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """
    Virtual-clock scheduler.

    Time only moves when advance() is called, which makes countdowns and
    simulated latency deterministic in tests and offline tooling.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, _ManualTask]] = []
        self._seq = itertools.count()

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Any],
        *args: Any,
    ) -> ScheduledTask:
        task = _ManualTask(self._now + max(0.0, delay), callback, args)
        heapq.heappush(self._queue, (task.due, next(self._seq), task))
        return task

    def now(self) -> float:
        return self._now

    @property
    def pending(self) -> int:
        """Number of scheduled callbacks not yet run or cancelled."""
        return sum(1 for _, _, task in self._queue if not task.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move the clock forward, running every callback that falls due.

        Callbacks scheduled while advancing run too if they fall inside the
        window, so a recursively armed one-second timer ticks once per
        simulated second.

        Returns:
            Number of callbacks run
        """
        target = self._now + seconds
        ran = 0

        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self._now = due
            if task.cancelled:
                continue
            task.callback(*task.args)
            ran += 1

        self._now = target
        return ran

    def run_until_idle(self, limit: float = 3600.0) -> int:
        """Advance until nothing is pending, or until limit seconds pass."""
        ran = 0
        deadline = self._now + limit
        while self.pending and self._now < deadline:
            next_due = min(task.due for _, _, task in self._queue if not task.cancelled)
            ran += self.advance(max(0.0, next_due - self._now))
        return ran
