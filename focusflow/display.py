"""Rich terminal formatting helpers."""

from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table
from rich.text import Text

from focusflow.challenges import GRID_SIZE, PatternChallenge
from focusflow.models import (
    CompletionStatus,
    FocusSession,
    Schedule,
    StreakLedger,
    StrictModeSettings,
    WeeklySummary,
)
from focusflow.normalize import CharacterStatus
from focusflow.quitflow import StreakWarning
from focusflow.schedules import days_description, format_start

console = Console()

_STATUS_STYLE: dict[CompletionStatus, str] = {
    CompletionStatus.COMPLETED: "green",
    CompletionStatus.QUIT_EARLY: "red",
    CompletionStatus.INTERRUPTED: "yellow",
    CompletionStatus.IN_PROGRESS: "dim",
}

_STATUS_ICON: dict[CompletionStatus, str] = {
    CompletionStatus.COMPLETED: "[x]",
    CompletionStatus.QUIT_EARLY: "[!]",
    CompletionStatus.INTERRUPTED: "[-]",
    CompletionStatus.IN_PROGRESS: "[~]",
}

_CHAR_STYLE: dict[CharacterStatus, str] = {
    CharacterStatus.CORRECT: "green",
    CharacterStatus.INCORRECT: "bold red",
    CharacterStatus.PENDING: "dim",
}


def format_time(seconds: float) -> str:
    """``MM:SS`` for the countdown, rounded up so 00:00 only shows at the end."""
    total = math.ceil(max(0.0, seconds))
    return f"{total // 60:02d}:{total % 60:02d}"


def format_duration(seconds: float) -> str:
    """``1h 30m`` / ``25 min`` for summaries."""
    total = int(seconds)
    hours, minutes = total // 3600, (total % 3600) // 60
    return f"{hours}h {minutes}m" if hours else f"{minutes} min"


def print_session_list(sessions: list[FocusSession], title: str = "Sessions") -> None:
    """Print sessions in a panel, one row each."""
    if not sessions:
        console.print(Panel("No sessions yet.", title=title, border_style="dim"))
        return

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("status", width=3)
    table.add_column("when", width=16)
    table.add_column("kind", width=10)
    table.add_column("detail")

    for s in sessions:
        if s.status == CompletionStatus.QUIT_EARLY:
            detail = f"Quit at {format_time(s.actual_duration or 0)} of {format_time(s.planned_duration)}"
        else:
            detail = format_duration(s.actual_duration or s.planned_duration)
        if s.strict_mode:
            detail += "  (strict)"
        table.add_row(
            _STATUS_ICON[s.status],
            s.start_time.strftime("%Y-%m-%d %H:%M"),
            s.kind.display_name,
            detail,
            style=_STATUS_STYLE[s.status],
        )

    console.print(Panel(table, title=title, border_style="blue"))


def week_strip(days: set[date], today: date) -> str:
    """Last seven days, oldest first. ``x`` marks a day with a completed session."""
    cells = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        mark = "x" if day in days else "."
        cells.append(f"{day.strftime('%a')[:2]} {mark}")
    return "  ".join(cells)


def print_stats(
    ledger: StreakLedger,
    week: WeeklySummary,
    days: Optional[set[date]] = None,
    today: Optional[date] = None,
) -> None:
    """Print the streak, weekly summary and a seven-day calendar strip."""
    lines: list[str] = [
        f"Current streak: {ledger.current_streak} day{'s' if ledger.current_streak != 1 else ''}",
        f"Longest streak: {ledger.longest_streak} day{'s' if ledger.longest_streak != 1 else ''}",
        f"Sessions completed: {ledger.total_completed}",
        f"Sessions quit: {ledger.total_quit} ({ledger.quit_rate:.0f}%)",
        "",
        f"This week: {week.completed} completed, {week.quit} quit, "
        f"{week.focus_minutes} min focused",
    ]
    if days is not None:
        lines += ["", week_strip(days, today or date.today())]
    console.print(Panel("\n".join(lines), title="Stats", border_style="green"))


def print_strict_status(settings: StrictModeSettings, active: bool) -> None:
    lines = [
        f"Strict mode: {'on' if active else 'off'}",
        f"Tone: {settings.tone.value}",
        f"Challenge: {settings.challenge_type.display_name}",
    ]
    if settings.custom_phrase:
        lines.append(f"Custom phrase: {settings.custom_phrase}")
    if settings.disable_pending and settings.disable_at is not None:
        lines.append(f"Turns off at: {settings.disable_at.strftime('%Y-%m-%d %H:%M')}")
    console.print(Panel("\n".join(lines), title="Strict Mode", border_style="magenta"))


def print_schedules(schedules: list[Schedule]) -> None:
    if not schedules:
        console.print(Panel("No schedules.", title="Schedules", border_style="dim"))
        return
    table = Table(show_header=False, box=None, pad_edge=False)
    for s in schedules:
        table.add_row(
            f"#{s.id}",
            s.name or "(unnamed)",
            days_description(s),
            format_start(s),
            format_duration(s.duration),
            "strict" if s.strict_mode else "",
            "" if s.is_active else "paused",
            style="" if s.is_active else "dim",
        )
    console.print(Panel(table, title="Schedules", border_style="blue"))


def phrase_feedback(typed: str, statuses: list[CharacterStatus]) -> Text:
    """Colour each typed character by its feedback status."""
    text = Text()
    for char, status in zip(typed, statuses):
        text.append(char, style=_CHAR_STYLE[status])
    return text


def print_pattern(challenge: PatternChallenge) -> None:
    """Draw the 3x3 grid with the tap order of each target cell."""
    table = Table(show_header=False, show_lines=True, box=None)
    for _ in range(GRID_SIZE):
        table.add_column(justify="center", width=5)
    for row in range(GRID_SIZE):
        cells: list[str] = []
        for col in range(GRID_SIZE):
            cell = row * GRID_SIZE + col
            order = challenge.order_of(cell)
            label = f"{cell + 1}"
            if order is None:
                cells.append(f"[dim]{label}[/dim]")
            elif order <= len(challenge.tapped):
                cells.append(f"[green]{label}({order})[/green]")
            else:
                cells.append(f"[bold cyan]{label}({order})[/bold cyan]")
        table.add_row(*cells)
    console.print(table)


def print_warning_panel(warning: StreakWarning) -> None:
    style = "red" if warning.loses_streak else "yellow"
    console.print(Panel(warning.message, title=warning.title, border_style=style))


def print_nudge(message: str) -> None:
    """Print an encouragement message in a styled panel."""
    text = Text(message, justify="center")
    console.print(Panel(text, border_style="magenta", padding=(1, 4)))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]{message}[/blue]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]{message}[/yellow]")


def create_timer_progress() -> Progress:
    """Create a Rich progress bar for the timer."""
    return Progress(
        TextColumn("[bold blue]{task.description}"),
        BarColumn(bar_width=40),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TextColumn("{task.fields[remaining]}"),
        console=console,
    )
