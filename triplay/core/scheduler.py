"""Cooperative scheduling of delayed, cancelable callbacks.

Round engines never sleep or spawn threads; every timed step (round
start, pattern reveal, settle delays, the Timing pulse tick) is a
``ScheduledTask`` obtained from a ``Scheduler``. Cancelling a task
guarantees its callback never runs.
"""

from __future__ import annotations

import heapq
import itertools
import time
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Set, Tuple

from PySide6.QtCore import QObject, QTimer


class ScheduledTask:
    """Handle for one pending callback."""

    def __init__(self, callback: Callable[[], None], on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._callback = callback
        self._on_cancel = on_cancel
        self._cancelled = False
        self._done = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def pending(self) -> bool:
        return not (self._cancelled or self._done)

    def cancel(self) -> None:
        if not self.pending:
            return
        self._cancelled = True
        if self._on_cancel is not None:
            self._on_cancel()

    def fire(self) -> None:
        if not self.pending:
            return
        self._done = True
        self._callback()


class Scheduler(ABC):
    @abstractmethod
    def now(self) -> float:
        """Monotonic time in seconds."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        """Run ``callback`` after ``delay`` seconds unless cancelled first."""


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler. Time only moves when ``advance`` is called."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(callback)
        heapq.heappush(self._queue, (self._now + max(0.0, delay), next(self._sequence), task))
        return task

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, task in self._queue if task.pending)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due tasks in order."""
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self._now = max(self._now, due)
            task.fire()
        self._now = target

    def run_until_idle(self, max_steps: int = 100_000) -> None:
        """Fire tasks until nothing is pending."""
        steps = 0
        while self._queue:
            due, _, task = heapq.heappop(self._queue)
            if not task.pending:
                continue
            self._now = max(self._now, due)
            task.fire()
            steps += 1
            if steps >= max_steps:
                raise RuntimeError(f"scheduler still busy after {max_steps} tasks")


class QtScheduler(Scheduler):
    """Scheduler backed by single-shot ``QTimer``s on the Qt event loop."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent
        self._timers: Set[QTimer] = set()

    def now(self) -> float:
        return time.monotonic()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(max(0, int(round(delay * 1000))))

        def _release() -> None:
            timer.stop()
            self._timers.discard(timer)
            timer.deleteLater()

        task = ScheduledTask(callback, on_cancel=_release)

        def _on_timeout() -> None:
            self._timers.discard(timer)
            timer.deleteLater()
            task.fire()

        timer.timeout.connect(_on_timeout)
        self._timers.add(timer)
        timer.start()
        return task

    @property
    def pending_count(self) -> int:
        return len(self._timers)
