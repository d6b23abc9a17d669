"""SQLite database layer. All public functions return Pydantic models."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from focusflow.config import get_db_path as _config_get_db_path
from focusflow.models import (
    CompletionStatus,
    FocusSession,
    Schedule,
    ScheduleCreate,
    SessionKind,
    StreakLedger,
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id                    TEXT    PRIMARY KEY,
    start_time            TEXT    NOT NULL,
    planned_duration      REAL    NOT NULL,
    actual_duration       REAL,
    kind                  TEXT    NOT NULL,
    status                TEXT    NOT NULL,
    strict_mode           INTEGER NOT NULL DEFAULT 0,
    quit_timestamp        TEXT,
    challenge_phrase_used TEXT,
    paused_duration       REAL    NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS ledger (
    id                   INTEGER PRIMARY KEY CHECK (id = 1),
    current_streak       INTEGER NOT NULL DEFAULT 0,
    longest_streak       INTEGER NOT NULL DEFAULT 0,
    total_completed      INTEGER NOT NULL DEFAULT 0,
    total_quit           INTEGER NOT NULL DEFAULT 0,
    last_completion_date TEXT
);

CREATE TABLE IF NOT EXISTS schedules (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT    NOT NULL DEFAULT '',
    active_days  TEXT    NOT NULL DEFAULT '[]',
    start_hour   INTEGER NOT NULL,
    start_minute INTEGER NOT NULL,
    duration     REAL    NOT NULL,
    strict_mode  INTEGER NOT NULL DEFAULT 0,
    is_active    INTEGER NOT NULL DEFAULT 1
);
"""


def _get_db_path() -> Path:
    """Return the database file path from config (or default)."""
    return _config_get_db_path()


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Open a connection and ensure the schema exists."""
    path = db_path or _get_db_path()
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.executescript(_SCHEMA)
    return conn


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def _row_to_session(row: sqlite3.Row) -> FocusSession:
    """Convert a database row to a FocusSession model."""
    return FocusSession(
        id=row["id"],
        start_time=datetime.fromisoformat(row["start_time"]),
        planned_duration=row["planned_duration"],
        actual_duration=row["actual_duration"],
        kind=SessionKind(row["kind"]),
        status=CompletionStatus(row["status"]),
        strict_mode=bool(row["strict_mode"]),
        quit_timestamp=(
            datetime.fromisoformat(row["quit_timestamp"]) if row["quit_timestamp"] else None
        ),
        challenge_phrase_used=row["challenge_phrase_used"],
        paused_duration=row["paused_duration"],
    )


def get_session(conn: sqlite3.Connection, session_id: str) -> Optional[FocusSession]:
    row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
    return _row_to_session(row) if row else None


def save_session(conn: sqlite3.Connection, session: FocusSession) -> FocusSession:
    """Insert a finished session. Sessions are write-once; a repeat id is ignored."""
    conn.execute(
        "INSERT OR IGNORE INTO sessions (id, start_time, planned_duration, actual_duration, "
        "kind, status, strict_mode, quit_timestamp, challenge_phrase_used, paused_duration) "
        "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
        (
            session.id,
            session.start_time.isoformat(),
            session.planned_duration,
            session.actual_duration,
            session.kind.value,
            session.status.value,
            int(session.strict_mode),
            session.quit_timestamp.isoformat() if session.quit_timestamp else None,
            session.challenge_phrase_used,
            session.paused_duration,
        ),
    )
    conn.commit()
    return get_session(conn, session.id) or session


def list_sessions(
    conn: sqlite3.Connection,
    status: Optional[CompletionStatus] = None,
    kind: Optional[SessionKind] = None,
    since: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[FocusSession]:
    """List sessions, most recent first, optionally filtered."""
    query = "SELECT * FROM sessions WHERE 1=1"
    params: list[str | int] = []
    if status is not None:
        query += " AND status = ?"
        params.append(status.value)
    if kind is not None:
        query += " AND kind = ?"
        params.append(kind.value)
    if since is not None:
        query += " AND start_time >= ?"
        params.append(since.isoformat())
    query += " ORDER BY start_time DESC"
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    rows = conn.execute(query, params).fetchall()
    return [_row_to_session(r) for r in rows]


# ---------------------------------------------------------------------------
# Streak ledger
# ---------------------------------------------------------------------------


def load_ledger(conn: sqlite3.Connection) -> StreakLedger:
    """Return the stored ledger, or a fresh one if nothing has been recorded."""
    row = conn.execute("SELECT * FROM ledger WHERE id = 1").fetchone()
    if row is None:
        return StreakLedger()
    return StreakLedger(
        current_streak=row["current_streak"],
        longest_streak=row["longest_streak"],
        total_completed=row["total_completed"],
        total_quit=row["total_quit"],
        last_completion_date=(
            date.fromisoformat(row["last_completion_date"])
            if row["last_completion_date"]
            else None
        ),
    )


def save_ledger(conn: sqlite3.Connection, ledger: StreakLedger) -> StreakLedger:
    conn.execute(
        """INSERT INTO ledger (id, current_streak, longest_streak, total_completed,
                               total_quit, last_completion_date)
           VALUES (1, ?, ?, ?, ?, ?)
           ON CONFLICT(id) DO UPDATE SET
               current_streak = excluded.current_streak,
               longest_streak = excluded.longest_streak,
               total_completed = excluded.total_completed,
               total_quit = excluded.total_quit,
               last_completion_date = excluded.last_completion_date""",
        (
            ledger.current_streak,
            ledger.longest_streak,
            ledger.total_completed,
            ledger.total_quit,
            ledger.last_completion_date.isoformat() if ledger.last_completion_date else None,
        ),
    )
    conn.commit()
    return load_ledger(conn)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


def _row_to_schedule(row: sqlite3.Row) -> Schedule:
    """Convert a database row to a Schedule model."""
    return Schedule(
        id=row["id"],
        name=row["name"],
        active_days=json.loads(row["active_days"]),
        start_hour=row["start_hour"],
        start_minute=row["start_minute"],
        duration=row["duration"],
        strict_mode=bool(row["strict_mode"]),
        is_active=bool(row["is_active"]),
    )


def add_schedule(conn: sqlite3.Connection, schedule_in: ScheduleCreate) -> Schedule:
    cur = conn.execute(
        "INSERT INTO schedules (name, active_days, start_hour, start_minute, duration, "
        "strict_mode, is_active) VALUES (?, ?, ?, ?, ?, ?, 1)",
        (
            schedule_in.name,
            json.dumps(sorted(set(schedule_in.active_days))),
            schedule_in.start_hour,
            schedule_in.start_minute,
            schedule_in.duration,
            int(schedule_in.strict_mode),
        ),
    )
    conn.commit()
    row = conn.execute("SELECT * FROM schedules WHERE id = ?", (cur.lastrowid,)).fetchone()
    return _row_to_schedule(row)


def get_schedule(conn: sqlite3.Connection, schedule_id: int) -> Optional[Schedule]:
    row = conn.execute("SELECT * FROM schedules WHERE id = ?", (schedule_id,)).fetchone()
    return _row_to_schedule(row) if row else None


def list_schedules(conn: sqlite3.Connection, active_only: bool = False) -> list[Schedule]:
    query = "SELECT * FROM schedules"
    if active_only:
        query += " WHERE is_active = 1"
    query += " ORDER BY start_hour, start_minute"
    return [_row_to_schedule(r) for r in conn.execute(query).fetchall()]


def set_schedule_active(
    conn: sqlite3.Connection, schedule_id: int, active: bool
) -> Optional[Schedule]:
    conn.execute(
        "UPDATE schedules SET is_active = ? WHERE id = ?", (int(active), schedule_id)
    )
    conn.commit()
    return get_schedule(conn, schedule_id)


def delete_schedule(conn: sqlite3.Connection, schedule_id: int) -> bool:
    cur = conn.execute("DELETE FROM schedules WHERE id = ?", (schedule_id,))
    conn.commit()
    return cur.rowcount > 0


# ---------------------------------------------------------------------------
# Store adapter
# ---------------------------------------------------------------------------


class SqliteStore:
    """``SessionStore`` backed by a connection from ``get_connection``."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def save_session(self, session: FocusSession) -> None:
        save_session(self.conn, session)

    def load_ledger(self) -> StreakLedger:
        return load_ledger(self.conn)

    def save_ledger(self, ledger: StreakLedger) -> None:
        save_ledger(self.conn, ledger)
