from __future__ import annotations

from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal

from stopwatch.core.config import StopwatchSettings, load_settings
from stopwatch.core.logger import log
from stopwatch.core.timer import (
    IntervalValidationError,
    TimerEngine,
    TimerPhase,
    TimerSnapshot,
    parse_interval_text,
    wall_clock_ms,
)
from stopwatch.data.storage import Storage
from stopwatch.host.driver import TickDriver


class StopwatchSession(QObject):
    """Connects user intents, the tick driver and storage to a TimerEngine."""

    snapshot_changed = pyqtSignal(object)
    interval_elapsed = pyqtSignal()
    interval_rejected = pyqtSignal(str)
    suspension_reconciled = pyqtSignal(object)

    def __init__(
        self,
        storage: Storage | None = None,
        settings: StopwatchSettings | None = None,
        clock: Callable[[], int] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._storage = storage
        if settings is None:
            settings = load_settings(storage) if storage else StopwatchSettings()
        self.settings = settings
        self._clock = clock or wall_clock_ms
        self.engine = TimerEngine(clock=self._clock)
        if settings.default_interval_seconds is not None:
            self.engine.set_interval_seconds(settings.default_interval_seconds)
        self.driver = TickDriver(settings.tick_interval_ms, self)
        self.driver.ticked.connect(self._on_driver_tick)
        self._last_advance_ms: int | None = None

    @property
    def snapshot(self) -> TimerSnapshot:
        return self.engine.snapshot()

    def toggle(self, now_ms: int | None = None) -> TimerSnapshot:
        return self._publish(self.engine.toggle(now_ms))

    def reset(self, now_ms: int | None = None) -> TimerSnapshot:
        return self._publish(self.engine.reset(now_ms))

    def set_interval(self, value: int | str | None) -> bool:
        """Apply an interval from a dropdown or text field; returns False if rejected."""
        try:
            interval = parse_interval_text(value) if isinstance(value, str) else value
            snapshot = self.engine.set_interval_seconds(interval)
        except IntervalValidationError as exc:
            log.warning(f"Rejected interval {value!r}: {exc}")
            self.interval_rejected.emit(str(exc))
            return False
        self._publish(snapshot)
        return True

    def advance(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._clock() if now_ms is None else now_ms
        if not self.engine.is_running:
            return self.engine.snapshot()
        gap = 0 if self._last_advance_ms is None else now_ms - self._last_advance_ms
        self._last_advance_ms = now_ms
        if gap > self.settings.suspension_gap_ms:
            snapshot = self.engine.reconcile_after_suspension(now_ms)
            self.suspension_reconciled.emit(gap)
            return self._publish(snapshot)
        snapshot = self.engine.tick(now_ms)
        return self._publish(snapshot, persist=snapshot.interval_boundary_crossed)

    def resume_from_suspension(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._clock() if now_ms is None else now_ms
        snapshot = self.engine.reconcile_after_suspension(now_ms)
        self._last_advance_ms = now_ms if snapshot.phase == TimerPhase.RUNNING else None
        return self._publish(snapshot)

    def restore(self, now_ms: int | None = None) -> TimerSnapshot:
        """Reload the saved state and fold in the time the app was away."""
        if self._storage is None:
            return self.engine.snapshot()
        now_ms = self._clock() if now_ms is None else now_ms
        state = self._storage.load_timer_state(now_ms)
        if state is None:
            log.info("No saved timer state, starting fresh")
            return self.engine.snapshot()
        self.driver.release()
        self.engine = TimerEngine(state, clock=self._clock)
        log.info(f"Restored {state.phase.value} timer with {state.elapsed_ms}ms elapsed")
        return self.resume_from_suspension(now_ms)

    def shutdown(self) -> None:
        self.driver.release()
        self._last_advance_ms = None
        self._persist()

    def _on_driver_tick(self) -> None:
        self.advance()

    def _publish(self, snapshot: TimerSnapshot, persist: bool = True) -> TimerSnapshot:
        self._sync_driver(snapshot.phase)
        if persist:
            self._persist()
        self.snapshot_changed.emit(snapshot)
        if snapshot.interval_boundary_crossed:
            self.interval_elapsed.emit()
        return snapshot

    def _sync_driver(self, phase: TimerPhase) -> None:
        if phase == TimerPhase.RUNNING:
            if not self.driver.is_active:
                self._last_advance_ms = self.engine.state.last_reference_ms
                self.driver.acquire()
        else:
            self.driver.release()
            self._last_advance_ms = None

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save_timer_state(self.engine.state)
