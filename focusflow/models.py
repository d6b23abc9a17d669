"""Pydantic models -- single source of truth for all data types."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

BUYERS_REMORSE_WINDOW = timedelta(minutes=15)
DISABLE_DELAY = timedelta(hours=24)


class SessionKind(str, enum.Enum):
    """Whether a session is focus time or a break."""

    WORK = "work"
    REST = "rest"

    @property
    def display_name(self) -> str:
        return "Focus Time" if self is SessionKind.WORK else "Break Time"


class CompletionStatus(str, enum.Enum):
    """Session outcome. ``INTERRUPTED`` is reserved and never set by the timer."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    QUIT_EARLY = "quit_early"
    INTERRUPTED = "interrupted"


class TimerState(str, enum.Enum):
    """Timer lifecycle states."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class StrictModeTone(str, enum.Enum):
    """How harsh the quit phrase sounds."""

    GENTLE = "gentle"
    NEUTRAL = "neutral"
    STRICT = "strict"
    CUSTOM = "custom"

    @property
    def phrases(self) -> list[str]:
        return list(_TONE_PHRASES.get(self, []))


_TONE_PHRASES: dict[StrictModeTone, list[str]] = {
    StrictModeTone.GENTLE: [
        "I need a break right now",
        "Pausing for self-care",
        "Rest is productive too",
    ],
    StrictModeTone.NEUTRAL: [
        "End session early",
        "Stop the timer",
        "Session incomplete",
    ],
    StrictModeTone.STRICT: [
        "I am choosing distraction over my goals",
        "I am breaking my commitment",
        "Giving up on myself",
    ],
}

DEFAULT_PHRASE = "End session early"


class ChallengeType(str, enum.Enum):
    """Which mini-game gates the quit flow."""

    PHRASE = "phrase"
    MATH = "math"
    PATTERN = "pattern"
    HOLD_BUTTON = "hold_button"

    @property
    def display_name(self) -> str:
        return {
            ChallengeType.PHRASE: "Type a Phrase",
            ChallengeType.MATH: "Solve Math Problem",
            ChallengeType.PATTERN: "Tap Pattern",
            ChallengeType.HOLD_BUTTON: "Hold Button",
        }[self]


class FocusSession(BaseModel):
    """One focus or break interval.

    Sessions are frozen: every timer transition produces a new value with
    ``model_copy(update=...)`` instead of mutating the old one.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    start_time: datetime = Field(default_factory=datetime.now)
    planned_duration: float = Field(gt=0)
    actual_duration: Optional[float] = Field(default=None, ge=0)
    kind: SessionKind = SessionKind.WORK
    status: CompletionStatus = CompletionStatus.IN_PROGRESS
    strict_mode: bool = False
    quit_timestamp: Optional[datetime] = None
    challenge_phrase_used: Optional[str] = None
    paused_duration: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _quit_timestamp_matches_status(self) -> FocusSession:
        quit_early = self.status == CompletionStatus.QUIT_EARLY
        if quit_early != (self.quit_timestamp is not None):
            raise ValueError("quit_timestamp must be set exactly when status is quit_early")
        return self

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.planned_duration)

    def remaining(self, now: datetime) -> float:
        """Seconds left until ``end_time`` (never negative)."""
        return max(0.0, (self.end_time - now).total_seconds())

    def elapsed(self, now: datetime) -> float:
        return (now - self.start_time).total_seconds()

    def progress(self, now: datetime) -> float:
        """Fraction of the planned duration elapsed, clamped to [0, 1]."""
        return min(1.0, max(0.0, self.elapsed(now) / self.planned_duration))

    def is_expired(self, now: datetime) -> bool:
        return now >= self.end_time


class StreakLedger(BaseModel):
    """Streak counters. Updated through the functions in ``focusflow.ledger``."""

    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    total_completed: int = Field(default=0, ge=0)
    total_quit: int = Field(default=0, ge=0)
    last_completion_date: Optional[date] = None

    @model_validator(mode="after")
    def _longest_covers_current(self) -> StreakLedger:
        if self.longest_streak < self.current_streak:
            raise ValueError("longest_streak cannot be below current_streak")
        return self

    @property
    def quit_rate(self) -> float:
        """Percentage of finished sessions that were quit early."""
        total = self.total_completed + self.total_quit
        return (self.total_quit / total * 100) if total else 0.0


class StrictModeSettings(BaseModel):
    """Strict-mode preferences, including the delayed-disable bookkeeping."""

    enabled: bool = False
    tone: StrictModeTone = StrictModeTone.NEUTRAL
    challenge_type: ChallengeType = ChallengeType.PHRASE
    custom_phrase: Optional[str] = None
    enabled_at: Optional[datetime] = None
    disable_pending: bool = False
    disable_at: Optional[datetime] = None

    def is_active(self, now: datetime) -> bool:
        """Strict mode as it applies right now; a due pending disable counts as off."""
        if self.disable_pending and self.disable_at is not None and now >= self.disable_at:
            return False
        return self.enabled

    def in_buyers_remorse_window(self, now: datetime) -> bool:
        if self.enabled_at is None:
            return False
        return now - self.enabled_at < BUYERS_REMORSE_WINDOW

    def enable(self, now: datetime) -> None:
        self.enabled = True
        self.enabled_at = now
        self.disable_pending = False
        self.disable_at = None

    def disable(self, now: datetime) -> bool:
        """Disable strict mode.

        Returns True when the disable took effect immediately (inside the
        buyer's remorse window), False when it was scheduled for 24 hours
        from now.
        """
        if self.in_buyers_remorse_window(now):
            self.enabled = False
            self.enabled_at = None
            self.disable_pending = False
            self.disable_at = None
            return True
        self.disable_pending = True
        self.disable_at = now + DISABLE_DELAY
        return False

    def cancel_pending_disable(self) -> None:
        self.disable_pending = False
        self.disable_at = None

    def apply_scheduled_disable(self, now: datetime) -> bool:
        """Turn a due pending disable into a real one. Returns True if applied."""
        if self.disable_pending and self.disable_at is not None and now >= self.disable_at:
            self.enabled = False
            self.enabled_at = None
            self.disable_pending = False
            self.disable_at = None
            return True
        return False

    def challenge_phrase(self, choice=None) -> str:
        """Pick the phrase to type for the current tone.

        ``choice`` is a ``random.choice``-like callable; the first phrase is
        used when it is omitted.
        """
        if self.tone == StrictModeTone.CUSTOM and self.custom_phrase:
            return self.custom_phrase
        phrases = self.tone.phrases or StrictModeTone.NEUTRAL.phrases
        if not phrases:
            return DEFAULT_PHRASE
        return choice(phrases) if choice is not None else phrases[0]


class TimerPreset(str, enum.Enum):
    """Work/break pairs offered by the timer."""

    POMODORO_25 = "25/5"
    POMODORO_50 = "50/10"
    POMODORO_90 = "90/20"

    @property
    def work_minutes(self) -> int:
        return int(self.value.split("/")[0])

    @property
    def break_minutes(self) -> int:
        return int(self.value.split("/")[1])

    def duration_for(self, kind: SessionKind) -> float:
        minutes = self.work_minutes if kind is SessionKind.WORK else self.break_minutes
        return float(minutes * 60)

    @property
    def description(self) -> str:
        return f"{self.work_minutes} min focus, {self.break_minutes} min break"


class Schedule(BaseModel):
    """A recurring focus window. Days use ``date.weekday()`` numbering (Monday = 0)."""

    id: Optional[int] = None
    name: str = ""
    active_days: list[int] = Field(default_factory=list)
    start_hour: int = Field(default=9, ge=0, le=23)
    start_minute: int = Field(default=0, ge=0, le=59)
    duration: float = Field(default=60 * 60, gt=0)
    strict_mode: bool = False
    is_active: bool = True


class ScheduleCreate(BaseModel):
    """Input model for creating a schedule."""

    name: str = Field(default="", max_length=200)
    active_days: list[int] = Field(min_length=1)
    start_hour: int = Field(ge=0, le=23)
    start_minute: int = Field(default=0, ge=0, le=59)
    duration: float = Field(gt=0, le=24 * 60 * 60)
    strict_mode: bool = False


class WeeklySummary(BaseModel):
    """This week's session totals for the stats screen."""

    week_start: date
    completed: int = Field(default=0, ge=0)
    quit: int = Field(default=0, ge=0)
    focus_minutes: int = Field(default=0, ge=0)

    @property
    def quit_rate(self) -> float:
        total = self.completed + self.quit
        return (self.quit / total * 100) if total else 0.0


class AppConfig(BaseModel):
    """Application configuration (persisted to ~/.config/focusflow/config.json)."""

    db_path: Optional[str] = None  # None = use default (~/.local/share/focusflow/)
    preset: TimerPreset = TimerPreset.POMODORO_25
    strict_mode: StrictModeSettings = Field(default_factory=StrictModeSettings)
