"""Recurring focus windows: which schedule applies now, and when the next one starts."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from focusflow.models import Schedule

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WEEKDAYS = {0, 1, 2, 3, 4}
WEEKEND = {5, 6}


def is_active_on(schedule: Schedule, day: date) -> bool:
    return schedule.is_active and day.weekday() in schedule.active_days


def window_start(schedule: Schedule, day: date) -> datetime:
    return datetime.combine(day, time(schedule.start_hour, schedule.start_minute))


def is_within_window(schedule: Schedule, now: datetime) -> bool:
    """True when ``now`` falls in ``[start, start + duration)`` on an active day."""
    if not is_active_on(schedule, now.date()):
        return False
    start = window_start(schedule, now.date())
    return start <= now < start + timedelta(seconds=schedule.duration)


def next_start(schedule: Schedule, now: datetime) -> Optional[datetime]:
    """Next start time within the coming week; today only counts if still ahead."""
    if not schedule.is_active or not schedule.active_days:
        return None
    for offset in range(7):
        day = now.date() + timedelta(days=offset)
        if day.weekday() not in schedule.active_days:
            continue
        start = window_start(schedule, day)
        if offset == 0 and start <= now:
            continue
        return start
    # Only today's slot exists and it has passed; it comes round again in a week.
    if now.weekday() in schedule.active_days:
        return window_start(schedule, now.date() + timedelta(days=7))
    return None


def find_active(schedules: Iterable[Schedule], now: datetime) -> Optional[Schedule]:
    """First schedule whose window contains ``now``."""
    for schedule in schedules:
        if is_within_window(schedule, now):
            return schedule
    return None


def days_description(schedule: Schedule) -> str:
    days = set(schedule.active_days)
    if len(days) == 7:
        return "Daily"
    if days == WEEKDAYS:
        return "Weekdays"
    if days == WEEKEND:
        return "Weekends"
    return " ".join(DAY_NAMES[d] for d in sorted(days))


def parse_days(text: str) -> list[int]:
    """Turn ``"mon,wed,fri"``, ``"weekdays"``, ``"weekends"`` or ``"daily"`` into day numbers."""
    key = text.strip().lower()
    if key == "daily":
        return list(range(7))
    if key == "weekdays":
        return sorted(WEEKDAYS)
    if key == "weekends":
        return sorted(WEEKEND)
    lookup = {name.lower(): i for i, name in enumerate(DAY_NAMES)}
    days: set[int] = set()
    for part in key.split(","):
        part = part.strip()[:3]
        if part not in lookup:
            raise ValueError(f"Unknown day: {part!r}")
        days.add(lookup[part])
    return sorted(days)


def format_start(schedule: Schedule) -> str:
    hour = schedule.start_hour % 12 or 12
    suffix = "AM" if schedule.start_hour < 12 else "PM"
    return f"{hour}:{schedule.start_minute:02d} {suffix}"
