from stopwatch.core.config import INTERVAL_CHOICES, SETTINGS_KEY, StopwatchSettings, load_settings, save_settings
from stopwatch.data.storage import Storage


def test_defaults_when_nothing_saved(tmp_path) -> None:
    storage = Storage(tmp_path / "stopwatch.db")
    storage.init_db()

    assert load_settings(storage) == StopwatchSettings()


def test_save_and_load_settings(tmp_path) -> None:
    storage = Storage(tmp_path / "stopwatch.db")
    storage.init_db()
    settings = StopwatchSettings(tick_interval_ms=250, suspension_gap_ms=5000, default_interval_seconds=30)

    save_settings(storage, settings)

    assert load_settings(storage) == settings


def test_invalid_values_fall_back_to_defaults(tmp_path) -> None:
    storage = Storage(tmp_path / "stopwatch.db")
    storage.init_db()
    storage.set_setting(
        SETTINGS_KEY,
        {"tick_interval_ms": 0, "suspension_gap_ms": "soon", "default_interval_seconds": -1, "theme": "dark"},
    )

    assert load_settings(storage) == StopwatchSettings()


def test_non_mapping_settings_use_defaults(tmp_path) -> None:
    storage = Storage(tmp_path / "stopwatch.db")
    storage.init_db()
    storage.set_setting(SETTINGS_KEY, [1, 2, 3])

    assert load_settings(storage) == StopwatchSettings()


def test_interval_choices_are_valid() -> None:
    from stopwatch.core.timer import validate_interval

    assert INTERVAL_CHOICES[0] is None
    for choice in INTERVAL_CHOICES:
        assert validate_interval(choice) == choice
