"""
Single-slot scheduled tasks built on QTimer.
Requests never queue more than one pending run.
"""

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer
from PySide6.QtGui import QGuiApplication

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_RATE = 60.0


def frame_interval_ms(refresh_rate: Optional[float] = None) -> int:
    """One display refresh interval in milliseconds (primary screen when not given)."""
    if refresh_rate is None:
        screen = QGuiApplication.primaryScreen() if QGuiApplication.instance() else None
        refresh_rate = screen.refreshRate() if screen is not None else DEFAULT_REFRESH_RATE
    if not refresh_rate or refresh_rate <= 0:
        refresh_rate = DEFAULT_REFRESH_RATE
    return max(1, round(1000.0 / refresh_rate))


class ScheduledSlot(QObject):
    """
    A cancelable task with at most one pending run.

    By default schedule() cancels whatever is pending and arms a fresh run
    after `delay_ms` (trailing-edge debounce). With `restart=False` a pending
    run keeps its deadline, so repeated requests coalesce into one run per
    interval, like a frame callback.
    """

    def __init__(self, callback: Callable[[], None], delay_ms: int,
                 parent: Optional[QObject] = None, restart: bool = True):
        super().__init__(parent)
        self._callback = callback
        self._restart = restart
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(int(delay_ms))
        self._timer.timeout.connect(self._run)

    @property
    def delay_ms(self) -> int:
        return self._timer.interval()

    def set_delay(self, delay_ms: int):
        self._timer.setInterval(int(delay_ms))

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    def schedule(self):
        """Request a run. Debounce slots push the deadline back; frame slots keep it."""
        if self._timer.isActive():
            if not self._restart:
                return
            self._timer.stop()
        self._timer.start()

    def cancel(self) -> bool:
        """Drop the pending run. Returns True if something was pending."""
        was_pending = self._timer.isActive()
        self._timer.stop()
        return was_pending

    def flush(self) -> bool:
        """Run the pending task now instead of waiting. Returns True if it ran."""
        if not self.cancel():
            return False
        self._run()
        return True

    def _run(self):
        self._callback()
