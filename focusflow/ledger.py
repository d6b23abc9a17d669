"""Streak bookkeeping and derived session statistics.

The ledger functions return new ``StreakLedger`` values; callers hand the
result to the store.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Optional

from focusflow.models import (
    CompletionStatus,
    FocusSession,
    SessionKind,
    StreakLedger,
    WeeklySummary,
)


def record_completion(ledger: StreakLedger, today: Optional[date] = None) -> StreakLedger:
    """Count a completed session and extend (or restart) the streak.

    Same calendar day leaves the streak alone, the next day extends it and
    any longer gap restarts it at 1.
    """
    today = today or date.today()
    current = ledger.current_streak
    last = ledger.last_completion_date

    if last is None:
        current = 1
    else:
        gap = (today - last).days
        if gap == 1:
            current += 1
        elif gap > 1:
            current = 1

    return ledger.model_copy(
        update={
            "total_completed": ledger.total_completed + 1,
            "current_streak": current,
            "longest_streak": max(ledger.longest_streak, current),
            "last_completion_date": today,
        }
    )


def record_quit(ledger: StreakLedger) -> StreakLedger:
    """Count a quit. The current streak drops to zero; the record stays."""
    return ledger.model_copy(
        update={"total_quit": ledger.total_quit + 1, "current_streak": 0}
    )


def week_start(today: date) -> date:
    """Monday of the week containing ``today``."""
    return today - timedelta(days=today.weekday())


def weekly_summary(sessions: Iterable[FocusSession], today: Optional[date] = None) -> WeeklySummary:
    """Totals for work sessions started this week (Monday onwards)."""
    start = week_start(today or date.today())
    completed = quit_count = 0
    focus_seconds = 0.0
    for session in sessions:
        if session.kind is not SessionKind.WORK or session.start_time.date() < start:
            continue
        if session.status == CompletionStatus.COMPLETED:
            completed += 1
            focus_seconds += session.actual_duration or session.planned_duration
        elif session.status == CompletionStatus.QUIT_EARLY:
            quit_count += 1
            focus_seconds += session.actual_duration or 0.0
    return WeeklySummary(
        week_start=start,
        completed=completed,
        quit=quit_count,
        focus_minutes=int(focus_seconds // 60),
    )


def quit_log(sessions: Iterable[FocusSession]) -> list[FocusSession]:
    """Quit-early sessions, most recent first."""
    quits = [s for s in sessions if s.status == CompletionStatus.QUIT_EARLY]
    return sorted(quits, key=lambda s: s.quit_timestamp or s.start_time, reverse=True)


def completion_days(sessions: Iterable[FocusSession]) -> set[date]:
    """Calendar days with at least one completed work session (for the streak calendar)."""
    return {
        s.start_time.date()
        for s in sessions
        if s.kind is SessionKind.WORK and s.status == CompletionStatus.COMPLETED
    }
