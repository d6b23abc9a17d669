"""The strict-mode quit flow: delay, challenge, streak warning.

A ``QuitFlow`` lives only while the user is trying to end a strict session
early. It never touches the timer itself: the session keeps running the whole
time and only ``confirm_quit`` (or a successful emergency bypass) calls back
into the controller.
"""

from __future__ import annotations

import enum
import logging
import math
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from focusflow.challenges import Challenge, PhraseChallenge, create_challenge
from focusflow.models import ChallengeType, StrictModeSettings
from focusflow.services import Authenticator

log = logging.getLogger(__name__)

DELAY_SECONDS = 10.0
EMERGENCY_HOLD_SECONDS = 10.0
EMERGENCY_REASON = "Confirm emergency session end"


class QuitStage(str, enum.Enum):
    DELAY = "delay"
    CHALLENGE = "challenge"
    STREAK_WARNING = "streak_warning"
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"


@dataclass(frozen=True)
class StreakWarning:
    """Copy for the last stage. A zero streak gets the low-stakes wording."""

    streak: int
    title: str
    message: str
    confirm_label: str
    keep_going_label: str = "Keep Going"

    @property
    def loses_streak(self) -> bool:
        return self.streak > 0


def build_warning(streak: int) -> StreakWarning:
    if streak > 0:
        days = "day" if streak == 1 else "days"
        return StreakWarning(
            streak=streak,
            title="Warning",
            message=(
                f"You're about to lose your current streak: {streak} {days}. "
                f"Your {streak}-day streak will be reset to 0. This cannot be undone."
            ),
            confirm_label="Reset Streak",
        )
    return StreakWarning(
        streak=0,
        title="End Session Early?",
        message="Quitting early will be recorded in your history. You can do this!",
        confirm_label="End Session",
    )


class QuitFlow:
    """Sequences Delay -> Challenge -> Streak warning -> confirmed quit.

    Every action is a no-op returning False outside the stage it belongs to.
    """

    def __init__(
        self,
        settings: StrictModeSettings,
        streak: int,
        on_confirm: Callable[[QuitFlow], None],
        on_cancel: Optional[Callable[[QuitFlow], None]] = None,
        clock: Callable[[], datetime] = datetime.now,
        rng: Optional[random.Random] = None,
        authenticator: Optional[Authenticator] = None,
        hold_clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.settings = settings.model_copy(deep=True)
        self.challenge_type: ChallengeType = self.settings.challenge_type
        self.streak = streak
        self._on_confirm = on_confirm
        self._on_cancel = on_cancel
        self._clock = clock
        self._hold_clock = hold_clock
        self._authenticator = authenticator

        self.started_at = clock()
        self.challenge: Challenge = create_challenge(self.settings, rng, hold_clock)
        self.stage = QuitStage.DELAY
        self.emergency_bypassed = False
        self._bypass_since: Optional[float] = None

    # -- state --------------------------------------------------------------

    @property
    def is_finished(self) -> bool:
        return self.stage in (QuitStage.CANCELLED, QuitStage.CONFIRMED)

    @property
    def delay_remaining(self) -> float:
        elapsed = (self._clock() - self.started_at).total_seconds()
        return max(0.0, DELAY_SECONDS - elapsed)

    @property
    def countdown(self) -> int:
        """Whole seconds left on the delay, as shown to the user."""
        return math.ceil(self.delay_remaining)

    @property
    def challenge_phrase(self) -> Optional[str]:
        if isinstance(self.challenge, PhraseChallenge):
            return self.challenge.phrase
        return None

    @property
    def warning(self) -> StreakWarning:
        return build_warning(self.streak)

    # -- stage transitions --------------------------------------------------

    def tick(self) -> QuitStage:
        """Advance past the delay once it has run out; also drives the emergency hold."""
        if self.stage == QuitStage.DELAY and self.delay_remaining <= 0:
            self.stage = QuitStage.CHALLENGE
        self._check_bypass()
        return self.stage

    def cancel(self) -> bool:
        """Abandon the flow from any open stage; the session carries on."""
        if self.is_finished:
            return False
        self.stage = QuitStage.CANCELLED
        self._bypass_since = None
        log.info("Quit flow cancelled.")
        if self._on_cancel is not None:
            self._on_cancel(self)
        return True

    def go_back(self) -> bool:
        """Leaving the challenge cancels the whole flow."""
        if self.stage != QuitStage.CHALLENGE:
            return False
        return self.cancel()

    def advance(self) -> bool:
        """Move from the challenge to the streak warning once the challenge is satisfied."""
        self.tick()
        if self.stage != QuitStage.CHALLENGE or not self.challenge.is_satisfied:
            return False
        self.stage = QuitStage.STREAK_WARNING
        self._bypass_since = None
        return True

    def keep_going(self) -> bool:
        if self.stage != QuitStage.STREAK_WARNING:
            return False
        return self.cancel()

    def confirm_quit(self) -> bool:
        if self.stage != QuitStage.STREAK_WARNING:
            return False
        self._finish()
        return True

    # -- emergency bypass ---------------------------------------------------

    @property
    def bypass_available(self) -> bool:
        return self._authenticator is not None and self.stage in (
            QuitStage.DELAY,
            QuitStage.CHALLENGE,
        )

    @property
    def bypass_progress(self) -> float:
        if self._bypass_since is None:
            return 0.0
        held = self._hold_clock() - self._bypass_since
        return min(1.0, held / EMERGENCY_HOLD_SECONDS)

    def press_bypass(self) -> bool:
        """Start the long press. Holding for ten seconds asks for device authentication."""
        if not self.bypass_available or self._bypass_since is not None:
            return False
        self._bypass_since = self._hold_clock()
        return True

    def release_bypass(self) -> bool:
        """Let go of the long press. Returns True if the bypass went through."""
        finished = self._check_bypass()
        self._bypass_since = None
        return finished

    def _check_bypass(self) -> bool:
        authenticator = self._authenticator
        if authenticator is None or self._bypass_since is None or self.bypass_progress < 1.0:
            return False
        self._bypass_since = None
        if not authenticator.authenticate(EMERGENCY_REASON):
            log.info("Emergency bypass authentication failed; flow continues.")
            return False
        log.warning("Emergency bypass used to end the session.")
        self.emergency_bypassed = True
        self._finish()
        return True

    def _finish(self) -> None:
        self.stage = QuitStage.CONFIRMED
        log.info("Quit confirmed (challenge=%s).", self.challenge_type.value)
        self._on_confirm(self)
