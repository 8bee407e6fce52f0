from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any

from stopwatch.core.logger import log
from stopwatch.core.timer import IntervalValidationError, validate_interval
from stopwatch.data.storage import Storage


SETTINGS_KEY = "settings"
INTERVAL_CHOICES: tuple[int | None, ...] = (None, 5, 10, 15, 30, 60)


@dataclass(frozen=True)
class StopwatchSettings:
    tick_interval_ms: int = 100
    suspension_gap_ms: int = 2000
    default_interval_seconds: int | None = None


def _valid(key: str, value: Any) -> bool:
    if key == "default_interval_seconds":
        try:
            validate_interval(value)
        except IntervalValidationError:
            return False
        return True
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def load_settings(storage: Storage) -> StopwatchSettings:
    """Merge stored values over the defaults, skipping anything unusable."""
    raw = storage.get_setting(SETTINGS_KEY, {})
    if not isinstance(raw, dict):
        log.warning(f"Stored settings are not a mapping ({type(raw).__name__}), using defaults")
        return StopwatchSettings()
    values: dict[str, Any] = {}
    for field in fields(StopwatchSettings):
        if field.name not in raw:
            continue
        value = raw[field.name]
        if _valid(field.name, value):
            values[field.name] = value
        else:
            log.warning(f"Ignoring invalid setting {field.name}={value!r}")
    return StopwatchSettings(**values)


def save_settings(storage: Storage, settings: StopwatchSettings) -> None:
    storage.set_setting(SETTINGS_KEY, asdict(settings))
