"""Collaborator interfaces the core talks to, with simple local implementations.

The real blocking, notification and biometric back-ends belong to the host
platform. The implementations here log what they would do so the terminal
front-end and the tests can run without one.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from focusflow.models import FocusSession, SessionKind, StreakLedger

log = logging.getLogger(__name__)


class BlockingService(Protocol):
    def start_blocking(self) -> None: ...

    def stop_blocking(self) -> None: ...


class NotificationService(Protocol):
    def schedule_completion_alert(
        self, at: datetime, duration: float, kind: SessionKind
    ) -> None: ...

    def cancel_pending(self) -> None: ...


class Authenticator(Protocol):
    def authenticate(self, reason: str) -> bool: ...


class SessionStore(Protocol):
    def save_session(self, session: FocusSession) -> None: ...

    def load_ledger(self) -> StreakLedger: ...

    def save_ledger(self, ledger: StreakLedger) -> None: ...


class LoggingBlocker:
    """Records whether blocking is on; enforcement is left to the OS."""

    def __init__(self) -> None:
        self.is_blocking = False

    def start_blocking(self) -> None:
        self.is_blocking = True
        log.info("App blocking started.")

    def stop_blocking(self) -> None:
        self.is_blocking = False
        log.info("App blocking stopped.")


class LoggingNotifier:
    """Keeps at most one pending session-complete alert, like the platform centre."""

    def __init__(self) -> None:
        self.pending: Optional[tuple[datetime, float, SessionKind]] = None

    def schedule_completion_alert(
        self, at: datetime, duration: float, kind: SessionKind
    ) -> None:
        self.pending = (at, duration, kind)
        log.info(
            "%s session complete alert scheduled for %s (%d min).",
            "Focus" if kind is SessionKind.WORK else "Break",
            at.strftime("%H:%M:%S"),
            int(duration // 60),
        )

    def cancel_pending(self) -> None:
        if self.pending is not None:
            log.debug("Pending completion alert cancelled.")
        self.pending = None


class CallbackAuthenticator:
    """Adapts a plain ``reason -> bool`` function (e.g. a terminal prompt)."""

    def __init__(self, func: Callable[[str], bool]) -> None:
        self._func = func

    def authenticate(self, reason: str) -> bool:
        try:
            return bool(self._func(reason))
        except Exception:
            log.warning("Authentication failed with an error.", exc_info=True)
            return False


class MemoryStore:
    """In-process store, handy for embedding and tests."""

    def __init__(self, ledger: Optional[StreakLedger] = None) -> None:
        self.sessions: list[FocusSession] = []
        self.ledger = ledger or StreakLedger()

    def save_session(self, session: FocusSession) -> None:
        self.sessions.append(session)

    def load_ledger(self) -> StreakLedger:
        return self.ledger

    def save_ledger(self, ledger: StreakLedger) -> None:
        self.ledger = ledger
