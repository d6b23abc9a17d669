"""Tests for the database layer."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

from focusflow import db
from focusflow.models import (
    CompletionStatus,
    FocusSession,
    ScheduleCreate,
    SessionKind,
    StreakLedger,
)

T0 = datetime(2024, 3, 4, 9, 0)


@pytest.fixture()
def conn(tmp_path: Path):
    """Provide a fresh database file for each test."""
    db_path = tmp_path / "test.db"
    connection = db.get_connection(db_path=db_path)
    yield connection
    connection.close()


def _quit(start: datetime, **kwargs) -> FocusSession:
    return FocusSession(
        start_time=start,
        planned_duration=1500,
        actual_duration=120,
        status=CompletionStatus.QUIT_EARLY,
        quit_timestamp=start + timedelta(seconds=120),
        strict_mode=True,
        challenge_phrase_used="Stop the timer",
        **kwargs,
    )


class TestSessions:
    def test_save_and_get(self, conn) -> None:
        session = _quit(T0, paused_duration=30.5)
        saved = db.save_session(conn, session)
        assert saved == session

        fetched = db.get_session(conn, session.id)
        assert fetched is not None
        assert fetched.quit_timestamp == session.quit_timestamp
        assert fetched.challenge_phrase_used == "Stop the timer"
        assert fetched.strict_mode
        assert fetched.paused_duration == 30.5

    def test_get_nonexistent(self, conn) -> None:
        assert db.get_session(conn, "missing") is None

    def test_save_is_write_once(self, conn) -> None:
        session = FocusSession(
            start_time=T0,
            planned_duration=60,
            actual_duration=60,
            status=CompletionStatus.COMPLETED,
        )
        db.save_session(conn, session)
        changed = session.model_copy(update={"actual_duration": 10})
        assert db.save_session(conn, changed).actual_duration == 60
        assert len(db.list_sessions(conn)) == 1

    def test_list_newest_first_and_filters(self, conn) -> None:
        db.save_session(conn, _quit(T0))
        db.save_session(
            conn,
            FocusSession(
                start_time=T0 + timedelta(hours=1),
                planned_duration=300,
                actual_duration=300,
                kind=SessionKind.REST,
                status=CompletionStatus.COMPLETED,
            ),
        )
        db.save_session(conn, _quit(T0 - timedelta(days=2)))

        all_sessions = db.list_sessions(conn)
        assert [s.start_time for s in all_sessions] == [
            T0 + timedelta(hours=1),
            T0,
            T0 - timedelta(days=2),
        ]
        assert len(db.list_sessions(conn, status=CompletionStatus.QUIT_EARLY)) == 2
        assert len(db.list_sessions(conn, kind=SessionKind.REST)) == 1
        assert len(db.list_sessions(conn, since=T0)) == 2
        assert len(db.list_sessions(conn, limit=1)) == 1


class TestLedger:
    def test_empty_ledger(self, conn) -> None:
        assert db.load_ledger(conn) == StreakLedger()

    def test_save_and_update(self, conn) -> None:
        ledger = StreakLedger(
            current_streak=2,
            longest_streak=5,
            total_completed=9,
            total_quit=1,
            last_completion_date=date(2024, 3, 3),
        )
        assert db.save_ledger(conn, ledger) == ledger
        updated = ledger.model_copy(update={"current_streak": 0, "total_quit": 2})
        db.save_ledger(conn, updated)
        assert db.load_ledger(conn) == updated

    def test_store_adapter(self, conn) -> None:
        store = db.SqliteStore(conn)
        store.save_session(_quit(T0))
        store.save_ledger(StreakLedger(total_quit=1))
        assert store.load_ledger().total_quit == 1
        assert len(db.list_sessions(conn)) == 1


class TestSchedules:
    def test_add_and_get(self, conn) -> None:
        s = db.add_schedule(
            conn,
            ScheduleCreate(
                name="Morning", active_days=[4, 0, 0], start_hour=8, duration=5400,
                strict_mode=True,
            ),
        )
        assert s.id == 1
        assert s.active_days == [0, 4]
        assert s.is_active
        assert s.strict_mode

        fetched = db.get_schedule(conn, s.id)
        assert fetched == s

    def test_list_ordered_and_active_only(self, conn) -> None:
        late = db.add_schedule(conn, ScheduleCreate(active_days=[0], start_hour=18, duration=60))
        early = db.add_schedule(conn, ScheduleCreate(active_days=[0], start_hour=7, duration=60))
        assert [s.id for s in db.list_schedules(conn)] == [early.id, late.id]

        db.set_schedule_active(conn, early.id, False)  # type: ignore[arg-type]
        assert [s.id for s in db.list_schedules(conn, active_only=True)] == [late.id]

    def test_set_active_missing(self, conn) -> None:
        assert db.set_schedule_active(conn, 42, True) is None

    def test_delete(self, conn) -> None:
        s = db.add_schedule(conn, ScheduleCreate(active_days=[1], start_hour=9, duration=60))
        assert db.delete_schedule(conn, s.id) is True  # type: ignore[arg-type]
        assert db.delete_schedule(conn, s.id) is False  # type: ignore[arg-type]
        assert db.list_schedules(conn) == []
