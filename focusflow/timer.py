"""Session clock and timer state machine.

Remaining time is always derived from the session's absolute end time and the
wall clock, never by counting ticks, so a suspended process catches up as
soon as it runs again. Every command is a guarded no-op outside the state it
applies to: taps can race the tick that completes a session and callers do
not need to care.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

from focusflow.models import CompletionStatus, FocusSession, SessionKind, TimerState
from focusflow.services import NotificationService

log = logging.getLogger(__name__)

TICK_INTERVAL = 0.1


class Ticker(Protocol):
    """Periodic driver that calls back on the timer's own thread."""

    def start(self, interval: float, callback: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class ManualTicker:
    """Ticker for hosts (and tests) that call ``fire`` themselves."""

    def __init__(self) -> None:
        self.interval: Optional[float] = None
        self._callback: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self._callback is not None

    def start(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = interval
        self._callback = callback

    def stop(self) -> None:
        self._callback = None

    def fire(self) -> None:
        if self._callback is not None:
            self._callback()


class LoopTicker(ManualTicker):
    """Single-threaded driver: ``run`` sleeps and fires until the ticker is stopped.

    ``KeyboardInterrupt`` escapes ``run`` untouched so a terminal host can
    offer pause/quit and then call ``run`` again.
    """

    def run(self) -> None:
        while self.active:
            time.sleep(self.interval or TICK_INTERVAL)
            self.fire()


@dataclass(frozen=True)
class TimerSnapshot:
    """Immutable view of the timer handed to subscribers."""

    state: TimerState
    session: Optional[FocusSession]
    remaining: float
    progress: float
    paused_duration: float


Listener = Callable[[TimerSnapshot], None]


class TimerService:
    """Owns the current session and moves it through idle/running/paused/completed."""

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        ticker: Optional[Ticker] = None,
        notifier: Optional[NotificationService] = None,
        on_complete: Optional[Callable[[FocusSession], None]] = None,
        tick_interval: float = TICK_INTERVAL,
    ) -> None:
        self._clock = clock
        self._ticker: Ticker = ticker if ticker is not None else ManualTicker()
        self._notifier = notifier
        self.on_complete = on_complete
        self.tick_interval = tick_interval

        self._state = TimerState.IDLE
        self._session: Optional[FocusSession] = None
        self._remaining = 0.0
        self._progress = 0.0
        self._remaining_at_pause = 0.0
        self._pause_started_at: Optional[datetime] = None
        self._paused_duration = 0.0
        self._listeners: list[Listener] = []

    # -- read-only state ----------------------------------------------------

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def session(self) -> Optional[FocusSession]:
        return self._session

    @property
    def remaining(self) -> float:
        return self._remaining

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def paused_duration(self) -> float:
        """Total seconds the current session has spent paused."""
        return self._paused_duration

    @property
    def is_active(self) -> bool:
        return self._state in (TimerState.RUNNING, TimerState.PAUSED)

    def snapshot(self) -> TimerSnapshot:
        return TimerSnapshot(
            state=self._state,
            session=self._session,
            remaining=self._remaining,
            progress=self._progress,
            paused_duration=self._paused_duration,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for snapshots after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- commands -----------------------------------------------------------

    def start(
        self,
        duration: float,
        kind: SessionKind = SessionKind.WORK,
        strict_mode: bool = False,
    ) -> bool:
        """Begin a new session. Returns False (and does nothing) unless idle."""
        if duration <= 0:
            raise ValueError(f"Session duration must be positive, got {duration}")
        if self._state != TimerState.IDLE:
            log.debug("start() ignored in state %s", self._state.value)
            return False

        now = self._clock()
        self._session = FocusSession(
            start_time=now,
            planned_duration=duration,
            kind=kind,
            strict_mode=strict_mode,
        )
        self._remaining = float(duration)
        self._progress = 0.0
        self._paused_duration = 0.0
        self._pause_started_at = None
        self._state = TimerState.RUNNING
        self._ticker.start(self.tick_interval, self.tick)
        log.info("%s session started (%d s, strict=%s).", kind.value, duration, strict_mode)
        self._emit()
        return True

    def pause(self) -> Optional[FocusSession]:
        if self._state != TimerState.RUNNING or self._session is None:
            log.debug("pause() ignored in state %s", self._state.value)
            return None

        now = self._clock()
        remaining = (self._session.end_time - now).total_seconds()
        if remaining <= 0:
            # Finished before the tick noticed.
            self.complete()
            return None

        self._remaining_at_pause = remaining
        self._pause_started_at = now
        self._ticker.stop()
        self._remaining = remaining
        self._state = TimerState.PAUSED
        self._emit()
        return self._session

    def resume(self) -> Optional[FocusSession]:
        """Continue a paused session; the end time moves forward by the pause length."""
        if self._state != TimerState.PAUSED or self._session is None:
            log.debug("resume() ignored in state %s", self._state.value)
            return None

        now = self._clock()
        self._paused_duration += self._pause_elapsed(now)
        self._pause_started_at = None
        planned = self._session.planned_duration
        new_start = now - timedelta(seconds=planned - self._remaining_at_pause)
        self._session = self._session.model_copy(update={"start_time": new_start})
        self._state = TimerState.RUNNING
        self._remaining = self._remaining_at_pause
        self._progress = self._session.progress(now)
        self._ticker.start(self.tick_interval, self.tick)
        self._emit()
        return self._session

    def stop(self) -> Optional[FocusSession]:
        """End the session early. ``actual_duration`` is left for the caller to fill in."""
        if self._state not in (TimerState.RUNNING, TimerState.PAUSED) or self._session is None:
            log.debug("stop() ignored in state %s", self._state.value)
            return None

        now = self._clock()
        self._paused_duration += self._pause_elapsed(now)
        self._pause_started_at = None
        self._ticker.stop()
        self._session = self._session.model_copy(
            update={
                "status": CompletionStatus.QUIT_EARLY,
                "quit_timestamp": now,
                "paused_duration": self._paused_duration,
            }
        )
        self._state = TimerState.IDLE
        log.info("Session %s stopped early.", self._session.id)
        self._emit()
        return self._session

    def tick(self) -> None:
        if self._state != TimerState.RUNNING or self._session is None:
            return
        self._recalculate(self._clock())

    def complete(self) -> bool:
        """Finish the running session. Fires ``on_complete`` at most once per session."""
        if self._state != TimerState.RUNNING or self._session is None:
            return False

        self._ticker.stop()
        self._session = self._session.model_copy(
            update={
                "status": CompletionStatus.COMPLETED,
                "actual_duration": self._session.planned_duration,
                "paused_duration": self._paused_duration,
            }
        )
        self._remaining = 0.0
        self._progress = 1.0
        self._state = TimerState.COMPLETED
        log.info("Session %s completed.", self._session.id)
        self._emit()
        if self.on_complete is not None:
            self.on_complete(self._session)
        return True

    def reset(self) -> None:
        """Drop the session and every transient field; always ends up idle."""
        self._ticker.stop()
        self._session = None
        self._remaining = 0.0
        self._progress = 0.0
        self._remaining_at_pause = 0.0
        self._pause_started_at = None
        self._paused_duration = 0.0
        self._state = TimerState.IDLE
        self._emit()

    # -- app lifecycle ------------------------------------------------------

    def on_background(self) -> None:
        """Ask the notifier to wake the user at the end time while we are suspended."""
        if self._state != TimerState.RUNNING or self._session is None or self._notifier is None:
            return
        session = self._session
        try:
            self._notifier.schedule_completion_alert(
                session.end_time, session.planned_duration, session.kind
            )
        except Exception:
            log.warning("Could not schedule the completion alert.", exc_info=True)

    def on_foreground(self) -> None:
        """Catch up with the wall clock, completing sessions that ended while suspended."""
        if self._notifier is not None:
            try:
                self._notifier.cancel_pending()
            except Exception:
                log.warning("Could not cancel the pending completion alert.", exc_info=True)
        if self._state != TimerState.RUNNING or self._session is None:
            return
        self._recalculate(self._clock())

    # -- internals ----------------------------------------------------------

    def _recalculate(self, now: datetime) -> None:
        session = self._session
        if session is None:
            return
        if session.is_expired(now):
            self.complete()
            return
        self._remaining = session.remaining(now)
        self._progress = session.progress(now)
        self._emit()

    def _pause_elapsed(self, now: datetime) -> float:
        if self._pause_started_at is None:
            return 0.0
        return max(0.0, (now - self._pause_started_at).total_seconds())

    def _emit(self) -> None:
        snap = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception:
                log.warning("Timer listener raised; ignoring.", exc_info=True)
