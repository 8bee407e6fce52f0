from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from stopwatch.core.logger import log


class TickDriver(QObject):
    """Periodic callback that only runs while it is acquired."""

    ticked = pyqtSignal()

    def __init__(self, interval_ms: int = 100, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._timer = QTimer(self)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self.ticked.emit)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    @property
    def is_active(self) -> bool:
        return self._timer.isActive()

    def acquire(self) -> None:
        if self._timer.isActive():
            return
        self._timer.start()
        log.debug(f"Tick driver started every {self._timer.interval()}ms")

    def release(self) -> None:
        if not self._timer.isActive():
            return
        self._timer.stop()
        log.debug("Tick driver stopped")

    @contextmanager
    def running(self) -> Iterator[TickDriver]:
        self.acquire()
        try:
            yield self
        finally:
            self.release()
