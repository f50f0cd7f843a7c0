"""QTimer backed Scheduler for transitions running inside a Qt event loop."""

import logging
from typing import Callable, Optional

from PyQt6.QtCore import QTimer

from html_formgen.core.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class QtTimerHandle(TimerHandle):
    """Single-shot QTimer wrapped as a cancellable handle."""

    def __init__(self, delay_ms: int, callback: Callable[[], None]):
        self._callback = callback
        self._done = False
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)
        self._timer.start(max(0, int(delay_ms)))

    def _fire(self) -> None:
        if self._done:
            return
        self._done = True
        self._callback()

    def cancel(self) -> None:
        if not self._done:
            self._done = True
            self._timer.stop()

    @property
    def active(self) -> bool:
        return not self._done


class QtTimerScheduler(Scheduler):
    """
    Schedules transition steps on the Qt event loop.

    Handles are kept alive until they fire or are cancelled; a QTimer that
    loses its last Python reference is destroyed and never fires.
    """

    def __init__(self):
        self._handles = set()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle: Optional[QtTimerHandle] = None

        def run() -> None:
            self._handles.discard(handle)
            callback()

        handle = QtTimerHandle(delay_ms, run)
        self._handles.add(handle)
        return handle

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        logger.debug(f"[QtTimerScheduler] Cancelled {len(self._handles)} pending timers")
        self._handles.clear()

    @property
    def pending(self) -> int:
        return sum(1 for handle in self._handles if handle.active)
