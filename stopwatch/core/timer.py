from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from stopwatch.core.logger import log


HOUR_MS = 3_600_000
DISABLED_INTERVAL_WORDS = {"", "off", "none", "disabled"}


class TimerPhase(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class IntervalValidationError(ValueError):
    """Raised when an alert interval is not a positive whole number of seconds."""


@dataclass
class TimerState:
    phase: TimerPhase = TimerPhase.STOPPED
    elapsed_ms: int = 0
    pause_started_at_ms: int | None = None
    last_reference_ms: int | None = None
    interval_seconds: int | None = None
    last_flash_elapsed_ms: int = 0
    total_paused_ms: int = 0


@dataclass(frozen=True)
class TimerSnapshot:
    phase: TimerPhase
    elapsed_ms: int
    formatted_time: str
    status_label: str
    interval_boundary_crossed: bool
    interval_seconds: int | None
    total_paused_ms: int


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


def format_time(elapsed_ms: int) -> str:
    """Render elapsed time as ``MM:SS.t``, or ``HH:MM:SS.t`` from one hour up."""
    elapsed_ms = max(0, int(elapsed_ms))
    tenths = (elapsed_ms % 1000) // 100
    total_seconds = elapsed_ms // 1000
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if elapsed_ms >= HOUR_MS:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{tenths}"
    return f"{minutes:02d}:{seconds:02d}.{tenths}"


def status_label(phase: TimerPhase) -> str:
    if phase == TimerPhase.RUNNING:
        return "tap to pause"
    if phase == TimerPhase.PAUSED:
        return "tap to resume"
    return "tap to start"


def debug_label(state: TimerState) -> str:
    return f"State: {state.phase.value.capitalize()} | Paused: {state.total_paused_ms}ms"


def validate_interval(value: object) -> int | None:
    if value is None:
        return None
    # bool is an int subclass, but True is not "1 second"
    if isinstance(value, bool) or not isinstance(value, int):
        raise IntervalValidationError(f"Interval must be a whole number of seconds, got {value!r}")
    if value <= 0:
        raise IntervalValidationError(f"Interval must be positive, got {value}")
    return value


def parse_interval_text(text: str) -> int | None:
    """Convert raw text from an input field into an interval, ``None`` meaning disabled."""
    cleaned = text.strip().lower()
    if cleaned in DISABLED_INTERVAL_WORDS:
        return None
    if not cleaned.isdigit():
        raise IntervalValidationError(f"Interval must be a whole number of seconds, got {text!r}")
    return validate_interval(int(cleaned))


class TimerEngine:
    """Wall-clock stopwatch engine detached from any UI framework.

    Elapsed time is the sum of wall-clock deltas observed while running, so a
    missed tick (or a whole suspension) is folded in by the next ``tick`` call.
    """

    def __init__(
        self,
        state: TimerState | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._clock = clock or wall_clock_ms
        if state is None:
            self._state = TimerState(last_reference_ms=self._clock())
        else:
            self._state = replace(state)
            self._repair()

    @property
    def state(self) -> TimerState:
        return replace(self._state)

    @property
    def phase(self) -> TimerPhase:
        return self._state.phase

    @property
    def elapsed_ms(self) -> int:
        return self._state.elapsed_ms

    @property
    def interval_seconds(self) -> int | None:
        return self._state.interval_seconds

    @property
    def is_running(self) -> bool:
        return self._state.phase == TimerPhase.RUNNING

    def start(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._now(now_ms)
        if self._state.phase != TimerPhase.STOPPED:
            log.debug(f"Ignored start while {self._state.phase.value}")
            return self.snapshot()
        self._state.phase = TimerPhase.RUNNING
        self._state.pause_started_at_ms = None
        self._state.last_reference_ms = now_ms
        log.debug(f"Started stopwatch at {now_ms}")
        return self.snapshot()

    def pause(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._now(now_ms)
        if self._state.phase != TimerPhase.RUNNING:
            log.debug(f"Ignored pause while {self._state.phase.value}")
            return self.snapshot()
        self._accumulate(now_ms)
        crossed = self._check_boundary()
        self._state.phase = TimerPhase.PAUSED
        self._state.pause_started_at_ms = now_ms
        self._state.last_reference_ms = now_ms
        log.debug(f"Paused stopwatch at {now_ms} with {self._state.elapsed_ms}ms elapsed")
        return self.snapshot(crossed)

    def resume(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._now(now_ms)
        if self._state.phase != TimerPhase.PAUSED:
            log.debug(f"Ignored resume while {self._state.phase.value}")
            return self.snapshot()
        started = self._state.pause_started_at_ms
        pause_duration = max(0, now_ms - started) if started is not None else 0
        self._state.total_paused_ms += pause_duration
        self._state.pause_started_at_ms = None
        self._state.phase = TimerPhase.RUNNING
        self._state.last_reference_ms = now_ms
        log.debug(f"Resumed stopwatch at {now_ms} after {pause_duration}ms pause")
        return self.snapshot()

    def toggle(self, now_ms: int | None = None) -> TimerSnapshot:
        if self._state.phase == TimerPhase.RUNNING:
            return self.pause(now_ms)
        if self._state.phase == TimerPhase.PAUSED:
            return self.resume(now_ms)
        return self.start(now_ms)

    def reset(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._now(now_ms)
        self._state = TimerState(
            last_reference_ms=now_ms,
            interval_seconds=self._state.interval_seconds,
        )
        log.debug("Reset stopwatch")
        return self.snapshot()

    def set_interval_seconds(self, value: int | None) -> TimerSnapshot:
        interval = validate_interval(value)
        self._state.interval_seconds = interval
        # The new cadence only counts boundaries after the current elapsed time.
        self._state.last_flash_elapsed_ms = max(self._state.last_flash_elapsed_ms, self._state.elapsed_ms)
        log.debug(f"Interval set to {interval}")
        return self.snapshot()

    def tick(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._now(now_ms)
        if self._state.phase != TimerPhase.RUNNING:
            return self.snapshot()
        self._accumulate(now_ms)
        return self.snapshot(self._check_boundary())

    def reconcile_after_suspension(self, now_ms: int | None = None) -> TimerSnapshot:
        now_ms = self._now(now_ms)
        before = self._state.elapsed_ms
        snapshot = self.tick(now_ms)
        log.info(f"Reconciled after suspension: +{snapshot.elapsed_ms - before}ms in {snapshot.phase.value}")
        return snapshot

    def snapshot(self, interval_boundary_crossed: bool = False) -> TimerSnapshot:
        return TimerSnapshot(
            phase=self._state.phase,
            elapsed_ms=self._state.elapsed_ms,
            formatted_time=format_time(self._state.elapsed_ms),
            status_label=status_label(self._state.phase),
            interval_boundary_crossed=interval_boundary_crossed,
            interval_seconds=self._state.interval_seconds,
            total_paused_ms=self._state.total_paused_ms,
        )

    def _now(self, now_ms: int | None) -> int:
        return self._clock() if now_ms is None else int(now_ms)

    def _accumulate(self, now_ms: int) -> None:
        delta = now_ms - self._state.last_reference_ms
        if delta > 0:
            self._state.elapsed_ms += delta
        elif delta < 0:
            log.debug(f"Clock went backward by {-delta}ms, elapsed time left unchanged")
        self._state.last_reference_ms = now_ms

    def _check_boundary(self) -> bool:
        interval = self._state.interval_seconds
        if interval is None:
            return False
        period_ms = interval * 1000
        elapsed = self._state.elapsed_ms
        last_flash = self._state.last_flash_elapsed_ms
        if elapsed // period_ms > last_flash // period_ms and elapsed != last_flash:
            self._state.last_flash_elapsed_ms = elapsed
            log.info(f"Interval boundary crossed at {elapsed}ms (every {interval}s)")
            return True
        return False

    def _repair(self) -> None:
        state = self._state
        state.phase = TimerPhase(state.phase)
        if state.last_reference_ms is None:
            log.warning("Restored state without a reference timestamp, re-baselined at now")
            state.last_reference_ms = self._clock()
        if state.elapsed_ms < 0:
            log.warning(f"Restored negative elapsed time {state.elapsed_ms}ms, clamped to 0")
            state.elapsed_ms = 0
        if state.phase == TimerPhase.PAUSED and state.pause_started_at_ms is None:
            log.warning("Restored paused state without a pause timestamp, pausing from now")
            state.pause_started_at_ms = self._clock()
        if state.phase != TimerPhase.PAUSED and state.pause_started_at_ms is not None:
            log.warning(f"Restored {state.phase.value} state with a stale pause timestamp, cleared")
            state.pause_started_at_ms = None
        try:
            state.interval_seconds = validate_interval(state.interval_seconds)
        except IntervalValidationError:
            log.warning(f"Restored invalid interval {state.interval_seconds!r}, disabled")
            state.interval_seconds = None
        if not 0 <= state.last_flash_elapsed_ms <= state.elapsed_ms:
            log.warning(f"Restored flash mark {state.last_flash_elapsed_ms}ms outside elapsed time, clamped")
            state.last_flash_elapsed_ms = min(max(0, state.last_flash_elapsed_ms), state.elapsed_ms)
        state.total_paused_ms = max(0, state.total_paused_ms)
