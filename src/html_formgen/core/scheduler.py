"""
Cancellable timer scheduling for transition steps.

Transitions wait between style mutations. A Scheduler hands out TimerHandles
that can be cancelled, so a newer transition for the same element replaces a
pending one instead of stacking effects.

Implementations:
- ImmediateScheduler: runs callbacks synchronously (no real waiting)
- ManualScheduler: virtual clock advanced explicitly, deterministic for tests
- html_formgen.qt.scheduler.QtTimerScheduler: QTimer based, for Qt event loops
"""

import heapq
import logging
from abc import ABC, abstractmethod
from itertools import count
from typing import Callable, List, Tuple

logger = logging.getLogger(__name__)


class TimerHandle(ABC):
    """Handle for a scheduled callback."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent the callback from running. No-op if it already ran."""
        pass

    @property
    @abstractmethod
    def active(self) -> bool:
        """True while the callback is still pending."""
        pass


class Scheduler(ABC):
    """Schedules callbacks after a delay in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        pass


class _CompletedHandle(TimerHandle):
    def cancel(self) -> None:
        pass

    @property
    def active(self) -> bool:
        return False


class ImmediateScheduler(Scheduler):
    """Runs every callback at once, collapsing all waits to zero."""

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        callback()
        return _CompletedHandle()


class _ManualHandle(TimerHandle):
    def __init__(self):
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)


class ManualScheduler(Scheduler):
    """
    Virtual-clock scheduler.

    Nothing runs until advance() moves the clock past a callback's due time.
    Callbacks due at the same time run in scheduling order.

    Usage:
        scheduler = ManualScheduler()
        scheduler.call_later(300, finalize)
        scheduler.advance(299)  # nothing
        scheduler.advance(1)    # finalize()
    """

    def __init__(self):
        self.now_ms = 0
        self._sequence = count()
        self._queue: List[Tuple[int, int, _ManualHandle, Callable[[], None]]] = []

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = _ManualHandle()
        due = self.now_ms + max(0, int(delay_ms))
        heapq.heappush(self._queue, (due, next(self._sequence), handle, callback))
        return handle

    def advance(self, delta_ms: int) -> int:
        """Move the clock forward, running due callbacks. Returns how many ran."""
        target = self.now_ms + delta_ms
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now_ms = due
            if not handle.active:
                continue
            handle._fired = True
            callback()
            ran += 1
        self.now_ms = target
        return ran

    def run_all(self, limit: int = 10000) -> int:
        """Run until the queue is empty (callbacks may schedule more)."""
        ran = 0
        while self._queue:
            if ran >= limit:
                raise RuntimeError(f"ManualScheduler.run_all exceeded {limit} callbacks")
            due = self._queue[0][0]
            ran += self.advance(max(0, due - self.now_ms))
        return ran

    @property
    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if handle.active)
