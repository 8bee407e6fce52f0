from stopwatch.core.timer import TimerPhase, TimerState
from stopwatch.data.storage import Storage


def make_storage(tmp_path) -> Storage:
    storage = Storage(tmp_path / "stopwatch.db")
    storage.init_db()
    return storage


def test_init_db_creates_file(tmp_path) -> None:
    db = tmp_path / "stopwatch.db"
    storage = Storage(db)
    storage.init_db()
    storage.init_db()
    assert db.exists()


def test_set_get_setting(tmp_path) -> None:
    storage = make_storage(tmp_path)
    storage.set_setting("settings", {"tick_interval_ms": 50})
    assert storage.get_setting("settings") == {"tick_interval_ms": 50}
    assert storage.get_setting("missing", "x") == "x"


def test_missing_timer_state_is_none(tmp_path) -> None:
    storage = make_storage(tmp_path)
    assert storage.load_timer_state(now_ms=0) is None


def test_save_and_load_timer_state(tmp_path) -> None:
    storage = make_storage(tmp_path)
    state = TimerState(
        phase=TimerPhase.PAUSED,
        elapsed_ms=12_345,
        pause_started_at_ms=1_700_000_000_000,
        last_reference_ms=1_700_000_000_000,
        interval_seconds=30,
        last_flash_elapsed_ms=12_000,
        total_paused_ms=400,
    )

    storage.save_timer_state(state)
    storage.save_timer_state(state)

    assert storage.load_timer_state(now_ms=0) == state


def test_missing_reference_is_rebaselined(tmp_path) -> None:
    storage = make_storage(tmp_path)
    with storage._transaction() as conn:  # noqa: SLF001 - write a minimal record by hand
        conn.execute(
            "INSERT INTO timer_state(id, phase, elapsed_ms, last_flash_elapsed_ms) VALUES (1, 'running', 700, 0)"
        )

    loaded = storage.load_timer_state(now_ms=5_000)

    assert loaded is not None
    assert loaded.phase == TimerPhase.RUNNING
    assert loaded.last_reference_ms == 5_000
    assert loaded.interval_seconds is None


def test_unknown_phase_is_ignored(tmp_path) -> None:
    storage = make_storage(tmp_path)
    with storage._transaction() as conn:  # noqa: SLF001
        conn.execute("INSERT INTO timer_state(id, phase, elapsed_ms) VALUES (1, 'lapping', 10)")

    assert storage.load_timer_state(now_ms=0) is None


def test_clear_timer_state(tmp_path) -> None:
    storage = make_storage(tmp_path)
    storage.save_timer_state(TimerState(elapsed_ms=10))

    storage.clear_timer_state()

    assert storage.load_timer_state(now_ms=0) is None
