from __future__ import annotations

"""SQLite persistence for stopwatch settings and the saved timer state."""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from stopwatch.core.logger import log
from stopwatch.core.timer import TimerPhase, TimerState


SCHEMA_VERSION = 1
TIMER_STATE_ROW_ID = 1


class Storage:
    """Wraps the SQLite connection and transactional writes."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            pass
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create the tables on first launch."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS settings(
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS timer_state(
                    id INTEGER PRIMARY KEY CHECK(id = 1),
                    phase TEXT NOT NULL,
                    elapsed_ms INTEGER NOT NULL,
                    pause_started_at_ms INTEGER,
                    interval_seconds INTEGER,
                    last_flash_elapsed_ms INTEGER NOT NULL DEFAULT 0,
                    last_reference_ms INTEGER,
                    total_paused_ms INTEGER NOT NULL DEFAULT 0
                )
                """
            )

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        raw = row["value"]
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return raw

    def set_setting(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, payload),
            )

    def save_timer_state(self, state: TimerState) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO timer_state(
                    id, phase, elapsed_ms, pause_started_at_ms, interval_seconds,
                    last_flash_elapsed_ms, last_reference_ms, total_paused_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    phase=excluded.phase,
                    elapsed_ms=excluded.elapsed_ms,
                    pause_started_at_ms=excluded.pause_started_at_ms,
                    interval_seconds=excluded.interval_seconds,
                    last_flash_elapsed_ms=excluded.last_flash_elapsed_ms,
                    last_reference_ms=excluded.last_reference_ms,
                    total_paused_ms=excluded.total_paused_ms
                """,
                (
                    TIMER_STATE_ROW_ID,
                    state.phase.value,
                    state.elapsed_ms,
                    state.pause_started_at_ms,
                    state.interval_seconds,
                    state.last_flash_elapsed_ms,
                    state.last_reference_ms,
                    state.total_paused_ms,
                ),
            )

    def load_timer_state(self, now_ms: int) -> TimerState | None:
        """Return the saved state, or ``None`` when nothing usable was saved.

        A row without a reference timestamp is re-baselined at ``now_ms``.
        """
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT phase, elapsed_ms, pause_started_at_ms, interval_seconds,
                       last_flash_elapsed_ms, last_reference_ms, total_paused_ms
                FROM timer_state WHERE id = ?
                """,
                (TIMER_STATE_ROW_ID,),
            ).fetchone()
        if not row:
            return None
        try:
            phase = TimerPhase(row["phase"])
        except ValueError:
            log.warning(f"Ignoring saved timer state with unknown phase {row['phase']!r}")
            return None
        last_reference = row["last_reference_ms"]
        return TimerState(
            phase=phase,
            elapsed_ms=int(row["elapsed_ms"]),
            pause_started_at_ms=row["pause_started_at_ms"],
            last_reference_ms=now_ms if last_reference is None else int(last_reference),
            interval_seconds=row["interval_seconds"],
            last_flash_elapsed_ms=int(row["last_flash_elapsed_ms"] or 0),
            total_paused_ms=int(row["total_paused_ms"] or 0),
        )

    def clear_timer_state(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM timer_state WHERE id = ?", (TIMER_STATE_ROW_ID,))
