"""FocusFlow CLI -- focus sessions with friction against quitting early."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional

import typer
from rich.logging import RichHandler

from focusflow import config as cfg
from focusflow import db, display, encouragement, ledger
from focusflow.controller import SessionController
from focusflow.models import (
    ChallengeType,
    CompletionStatus,
    ScheduleCreate,
    SessionKind,
    StrictModeTone,
    TimerPreset,
)
from focusflow.runner import run_session, terminal_authenticator
from focusflow.schedules import (
    find_active,
    format_start,
    next_start,
    parse_days,
    window_start,
)
from focusflow.services import LoggingBlocker, LoggingNotifier
from focusflow.timer import LoopTicker

app = typer.Typer(
    name="focusflow",
    help="Focus sessions that are easy to start and hard to quit.",
    no_args_is_help=True,
)
strict_app = typer.Typer(help="Manage strict mode.", no_args_is_help=True)
schedule_app = typer.Typer(help="Manage recurring focus schedules.", no_args_is_help=True)
app.add_typer(strict_app, name="strict")
app.add_typer(schedule_app, name="schedule")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=display.console, show_path=False)],
    )


def _conn() -> db.sqlite3.Connection:
    """Get a database connection (convenience wrapper)."""
    return db.get_connection()


def _controller(
    conn: db.sqlite3.Connection, ticker: LoopTicker, force_strict: bool = False
) -> SessionController:
    config = cfg.load_config()
    settings = cfg.load_strict_settings()
    if force_strict and not settings.is_active(datetime.now()):
        # Scheduled strict windows do not change the saved settings.
        settings.enable(datetime.now())
    return SessionController(
        store=db.SqliteStore(conn),
        settings=settings,
        preset=config.preset,
        blocker=LoggingBlocker(),
        notifier=LoggingNotifier(),
        authenticator=terminal_authenticator(),
        ticker=ticker,
    )


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def _run(kind: SessionKind, minutes: Optional[float], force_strict: bool = False) -> None:
    conn = _conn()
    ticker = LoopTicker()
    controller = _controller(conn, ticker, force_strict)
    controller.start(kind=kind, minutes=minutes)
    session = controller.timer.session
    if session is not None and session.strict_mode:
        display.print_info("Strict mode is on. Quitting early takes some effort.")

    finished = run_session(controller, ticker)
    if finished is not None and finished.status == CompletionStatus.COMPLETED:
        if finished.kind is SessionKind.WORK:
            streak = controller.ledger.current_streak
            display.print_success(
                f"Focus session complete. Streak: {streak} day{'s' if streak != 1 else ''}."
            )
            display.print_nudge(encouragement.get_nudge())
        else:
            display.print_success("Break over.")
        controller.dismiss()
    elif finished is not None:
        display.print_warning("Session ended early. It has been logged.")
    conn.close()


@app.command()
def focus(
    minutes: Optional[int] = typer.Option(
        None, "--minutes", "-m", min=1, max=180, help="Override the preset focus length"
    ),
    then_break: bool = typer.Option(
        True, "--break/--no-break", help="Offer a break after the session"
    ),
) -> None:
    """Start a focus session."""
    preset = cfg.load_config().preset
    length = minutes or preset.work_minutes
    display.print_info(f"Starting {length}-minute focus session. Ctrl-C to pause or quit.")
    _run(SessionKind.WORK, minutes)

    if then_break and typer.confirm(f"Take a {preset.break_minutes}-minute break?", default=True):
        display.print_nudge(encouragement.get_break_message())
        _run(SessionKind.REST, None)


@app.command(name="take-break")
def take_break(
    minutes: Optional[int] = typer.Option(None, "--minutes", "-m", min=1, max=60),
) -> None:
    """Take a break. You have earned it."""
    display.print_nudge(encouragement.get_break_message())
    _run(SessionKind.REST, minutes)


@app.command()
def preset(
    value: Optional[str] = typer.Argument(None, help="25/5, 50/10 or 90/20"),
) -> None:
    """Show or set the work/break preset."""
    if value is None:
        current = cfg.load_config().preset
        for p in TimerPreset:
            marker = "*" if p == current else " "
            display.print_info(f"{marker} {p.value:6} {p.description}")
        return
    try:
        chosen = TimerPreset(value)
    except ValueError:
        display.print_warning(f"Unknown preset '{value}'. Use 25/5, 50/10 or 90/20.")
        raise typer.Exit(1)
    cfg.set_preset(chosen)
    display.print_success(f"Preset set to {chosen.description}.")


@app.command()
def start() -> None:
    """Start the scheduled focus window that is running right now."""
    conn = _conn()
    schedules = db.list_schedules(conn, active_only=True)
    conn.close()
    now = datetime.now()
    active = find_active(schedules, now)
    if active is None:
        display.print_info("No schedule is active right now. Use 'focusflow focus' instead.")
        return
    left = (window_start(active, now.date()) - now).total_seconds() + active.duration
    label = active.name or f"schedule #{active.id}"
    display.print_info(f"In {label} until the window closes ({math.ceil(left / 60)} min left).")
    _run(SessionKind.WORK, left / 60, force_strict=active.strict_mode)


# ---------------------------------------------------------------------------
# Stats & history
# ---------------------------------------------------------------------------


@app.command()
def stats() -> None:
    """See your streak and this week's numbers."""
    conn = _conn()
    sessions = db.list_sessions(conn)
    display.print_stats(
        db.load_ledger(conn),
        ledger.weekly_summary(sessions),
        days=ledger.completion_days(sessions),
    )
    conn.close()


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of sessions to show"),
    quits: bool = typer.Option(False, "--quits", help="Only show sessions quit early"),
) -> None:
    """List past sessions."""
    conn = _conn()
    if quits:
        sessions = ledger.quit_log(db.list_sessions(conn))[:limit]
        display.print_session_list(sessions, title="Quit Log")
    else:
        display.print_session_list(db.list_sessions(conn, limit=limit), title="History")
    conn.close()


# ---------------------------------------------------------------------------
# Strict mode
# ---------------------------------------------------------------------------


@strict_app.command("status")
def strict_status() -> None:
    """Show strict-mode settings."""
    settings = cfg.load_strict_settings()
    display.print_strict_status(settings, settings.is_active(datetime.now()))


@strict_app.command("on")
def strict_on() -> None:
    """Turn strict mode on. You have 15 minutes to change your mind instantly."""
    settings = cfg.load_strict_settings()
    settings.enable(datetime.now())
    cfg.save_strict_settings(settings)
    display.print_success("Strict mode enabled. Turning it off in the next 15 minutes is instant.")


@strict_app.command("off")
def strict_off() -> None:
    """Turn strict mode off (instantly in the first 15 minutes, otherwise after 24 hours)."""
    settings = cfg.load_strict_settings()
    if not settings.enabled:
        display.print_info("Strict mode is already off.")
        return
    now = datetime.now()
    if settings.disable(now):
        display.print_success("Strict mode disabled.")
    elif settings.disable_at is not None:
        display.print_warning(
            f"Strict mode will turn off at {settings.disable_at.strftime('%Y-%m-%d %H:%M')}. "
            "Use 'focusflow strict cancel' to keep it."
        )
    cfg.save_strict_settings(settings)


@strict_app.command("cancel")
def strict_cancel() -> None:
    """Cancel a pending strict-mode disable."""
    settings = cfg.load_strict_settings()
    if not settings.disable_pending:
        display.print_info("No disable is pending.")
        return
    settings.cancel_pending_disable()
    cfg.save_strict_settings(settings)
    display.print_success("Pending disable cancelled. Strict mode stays on.")


@strict_app.command("set")
def strict_set(
    tone: Optional[StrictModeTone] = typer.Option(None, "--tone", help="Phrase tone"),
    challenge: Optional[ChallengeType] = typer.Option(None, "--challenge", help="Challenge type"),
    phrase: Optional[str] = typer.Option(None, "--phrase", help="Custom phrase (tone 'custom')"),
) -> None:
    """Choose the challenge and tone used when quitting early."""
    settings = cfg.load_strict_settings()
    if tone is not None:
        settings.tone = tone
    if challenge is not None:
        settings.challenge_type = challenge
    if phrase is not None:
        if not phrase.strip():
            display.print_warning("The custom phrase cannot be empty.")
            raise typer.Exit(1)
        settings.custom_phrase = phrase.strip()
        settings.tone = StrictModeTone.CUSTOM
    cfg.save_strict_settings(settings)
    display.print_strict_status(settings, settings.is_active(datetime.now()))


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


@schedule_app.command("add")
def schedule_add(
    days: str = typer.Argument(..., help="daily, weekdays, weekends or e.g. mon,wed,fri"),
    at: str = typer.Argument(..., help="Start time as HH:MM (24-hour)"),
    minutes: int = typer.Option(60, "--minutes", "-m", min=1, help="Window length"),
    name: str = typer.Option("", "--name", help="Label for the schedule"),
    strict: bool = typer.Option(False, "--strict", help="Use strict mode in this window"),
) -> None:
    """Add a recurring focus window."""
    try:
        day_list = parse_days(days)
        hour_text, minute_text = at.split(":")
        schedule_in = ScheduleCreate(
            name=name,
            active_days=day_list,
            start_hour=int(hour_text),
            start_minute=int(minute_text),
            duration=minutes * 60,
            strict_mode=strict,
        )
    except ValueError as exc:
        display.print_warning(f"Could not add schedule: {exc}")
        raise typer.Exit(1)
    conn = _conn()
    schedule = db.add_schedule(conn, schedule_in)
    display.print_success(f"Added schedule #{schedule.id} at {format_start(schedule)}.")
    conn.close()


@schedule_app.command("list")
def schedule_list() -> None:
    """List schedules and what is coming up next."""
    conn = _conn()
    schedules = db.list_schedules(conn)
    display.print_schedules(schedules)
    now = datetime.now()
    active = find_active(schedules, now)
    if active is not None:
        display.print_info(f"Now in schedule #{active.id} {active.name}".rstrip() + ".")
    upcoming = [t for t in (next_start(s, now) for s in schedules) if t is not None]
    if upcoming:
        display.print_info(f"Next window starts {min(upcoming).strftime('%a %H:%M')}.")
    conn.close()


def _set_active(schedule_id: int, active: bool) -> None:
    conn = _conn()
    schedule = db.set_schedule_active(conn, schedule_id, active)
    conn.close()
    if schedule is None:
        display.print_warning(f"Schedule #{schedule_id} not found.")
        raise typer.Exit(1)
    display.print_success(f"Schedule #{schedule_id} {'resumed' if active else 'paused'}.")


@schedule_app.command("pause")
def schedule_pause(schedule_id: int = typer.Argument(...)) -> None:
    """Pause a schedule without deleting it."""
    _set_active(schedule_id, False)


@schedule_app.command("resume")
def schedule_resume(schedule_id: int = typer.Argument(...)) -> None:
    """Resume a paused schedule."""
    _set_active(schedule_id, True)


@schedule_app.command("remove")
def schedule_remove(schedule_id: int = typer.Argument(...)) -> None:
    """Delete a schedule."""
    conn = _conn()
    removed = db.delete_schedule(conn, schedule_id)
    conn.close()
    if not removed:
        display.print_warning(f"Schedule #{schedule_id} not found.")
        raise typer.Exit(1)
    display.print_success(f"Removed schedule #{schedule_id}.")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@app.command()
def config(
    db_path: Optional[str] = typer.Option(
        None, "--db-path",
        help="Set a custom database file path",
    ),
    reset: bool = typer.Option(False, "--reset", help="Reset to default local DB"),
    show: bool = typer.Option(False, "--show", help="Show current config"),
) -> None:
    """Configure where your data is stored."""
    if db_path:
        result = cfg.set_db_path(db_path)
        display.print_success(f"Database path set to: {result.db_path}")
    elif reset:
        cfg.reset_db_path()
        display.print_success("Reset to default local database.")
    elif show:
        current = cfg.load_config()
        resolved = cfg.get_db_path()
        if current.db_path:
            display.print_info(f"Database: {current.db_path}")
        else:
            display.print_info(f"Database: {resolved} (default)")
        display.print_info(f"Preset: {current.preset.description}")
    else:
        display.print_info("Use --db-path, --reset, or --show.")
