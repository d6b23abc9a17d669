"""UI-facing controller: one place that wires the timer, quit flow and ledger."""

from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from typing import Callable, Optional

from focusflow import ledger as ledger_ops
from focusflow.models import (
    FocusSession,
    SessionKind,
    StrictModeSettings,
    StreakLedger,
    TimerPreset,
    TimerState,
)
from focusflow.quitflow import QuitFlow
from focusflow.services import (
    Authenticator,
    BlockingService,
    NotificationService,
    SessionStore,
)
from focusflow.timer import Ticker, TimerService

log = logging.getLogger(__name__)


class SessionController:
    """Starts sessions, gates early quits behind the quit flow and records outcomes.

    Collaborators are passed in; nothing here reaches for globals.
    """

    def __init__(
        self,
        store: SessionStore,
        settings: StrictModeSettings,
        preset: TimerPreset = TimerPreset.POMODORO_25,
        blocker: Optional[BlockingService] = None,
        notifier: Optional[NotificationService] = None,
        authenticator: Optional[Authenticator] = None,
        ticker: Optional[Ticker] = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
        hold_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.settings = settings
        self.preset = preset
        self.blocker = blocker
        self.authenticator = authenticator
        self.next_kind = SessionKind.WORK
        self.quit_flow: Optional[QuitFlow] = None
        self.last_session: Optional[FocusSession] = None
        self._clock = clock
        self._rng = rng or random.Random()
        self._hold_clock = hold_clock
        self.timer = TimerService(
            clock=clock,
            ticker=ticker,
            notifier=notifier,
            on_complete=self._handle_completion,
        )

    @property
    def ledger(self) -> StreakLedger:
        return self.store.load_ledger()

    # -- session commands ---------------------------------------------------

    def start(self, kind: Optional[SessionKind] = None, minutes: Optional[float] = None) -> bool:
        """Start the next session from the preset (or ``minutes`` if given)."""
        kind = kind or self.next_kind
        duration = minutes * 60 if minutes is not None else self.preset.duration_for(kind)
        strict = kind is SessionKind.WORK and self.settings.is_active(self._clock())
        if not self.timer.start(duration, kind=kind, strict_mode=strict):
            return False
        self.next_kind = kind
        if kind is SessionKind.WORK:
            self._call_blocker("start_blocking")
        return True

    def pause(self) -> bool:
        return self.timer.pause() is not None

    def resume(self) -> bool:
        return self.timer.resume() is not None

    def request_quit(self) -> Optional[QuitFlow]:
        """Ask to end the active session.

        Strict sessions get a ``QuitFlow`` to work through; anything else ends
        straight away and None is returned.
        """
        session = self.timer.session
        if not self.timer.is_active or session is None:
            return None
        if not session.strict_mode:
            self._finalize_quit(challenge_phrase=None)
            return None
        if self.quit_flow is not None and not self.quit_flow.is_finished:
            return self.quit_flow

        self.quit_flow = QuitFlow(
            settings=self.settings,
            streak=self._current_streak(),
            on_confirm=self._on_quit_confirmed,
            on_cancel=self._on_quit_cancelled,
            clock=self._clock,
            rng=self._rng,
            authenticator=self.authenticator,
            hold_clock=self._hold_clock,
        )
        log.info("Quit flow started (challenge=%s).", self.settings.challenge_type.value)
        return self.quit_flow

    def dismiss(self) -> None:
        """Acknowledge a finished session and line up the next one (work <-> break)."""
        if self.timer.state == TimerState.COMPLETED and self.timer.session is not None:
            finished = self.timer.session.kind
            self.next_kind = SessionKind.REST if finished is SessionKind.WORK else SessionKind.WORK
        self.timer.reset()

    # -- app lifecycle ------------------------------------------------------

    def on_background(self) -> None:
        self.timer.on_background()

    def on_foreground(self) -> None:
        self.timer.on_foreground()

    # -- callbacks ----------------------------------------------------------

    def _on_quit_confirmed(self, flow: QuitFlow) -> None:
        self._finalize_quit(challenge_phrase=flow.challenge_phrase)
        self.quit_flow = None

    def _on_quit_cancelled(self, flow: QuitFlow) -> None:
        self.quit_flow = None

    def _finalize_quit(self, challenge_phrase: Optional[str]) -> None:
        # A session that ran out while the user was deciding counts as completed.
        self.timer.tick()
        was_paused = self.timer.state == TimerState.PAUSED
        remaining_at_pause = self.timer.remaining
        stopped = self.timer.stop()
        if stopped is None:
            return
        if was_paused:
            actual = stopped.planned_duration - remaining_at_pause
        else:
            # start_time already moved forward past earlier pauses.
            now = stopped.quit_timestamp or self._clock()
            actual = (now - stopped.start_time).total_seconds()
        actual = min(stopped.planned_duration, max(0.0, actual))
        session = stopped.model_copy(
            update={"actual_duration": actual, "challenge_phrase_used": challenge_phrase}
        )
        self.last_session = session
        self._save_session(session)
        if session.kind is SessionKind.WORK:
            self._update_ledger(ledger_ops.record_quit)
            self._call_blocker("stop_blocking")
        self.timer.reset()

    def _handle_completion(self, session: FocusSession) -> None:
        self.last_session = session
        self._save_session(session)
        if session.kind is SessionKind.WORK:
            today = self._clock().date()
            self._update_ledger(lambda current: ledger_ops.record_completion(current, today))
            self._call_blocker("stop_blocking")

    # -- collaborator plumbing ----------------------------------------------

    def _save_session(self, session: FocusSession) -> None:
        try:
            self.store.save_session(session)
        except Exception:
            log.warning("Could not save session %s.", session.id, exc_info=True)

    def _current_streak(self) -> int:
        try:
            return self.store.load_ledger().current_streak
        except Exception:
            log.warning("Could not load the streak ledger.", exc_info=True)
            return 0

    def _update_ledger(self, update: Callable[[StreakLedger], StreakLedger]) -> None:
        try:
            self.store.save_ledger(update(self.store.load_ledger()))
        except Exception:
            log.warning("Could not update the streak ledger.", exc_info=True)

    def _call_blocker(self, method: str) -> None:
        if self.blocker is None:
            return
        try:
            getattr(self.blocker, method)()
        except Exception:
            log.warning("Blocking service failed on %s.", method, exc_info=True)
