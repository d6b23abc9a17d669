"""Tests for the session controller."""

from __future__ import annotations

import random
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest

from focusflow.challenges import PhraseChallenge
from focusflow.controller import SessionController
from focusflow.models import (
    ChallengeType,
    CompletionStatus,
    SessionKind,
    StreakLedger,
    StrictModeSettings,
    TimerPreset,
    TimerState,
)
from focusflow.quitflow import DELAY_SECONDS, QuitStage
from focusflow.services import LoggingBlocker, MemoryStore
from conftest import T0, FakeClock


def _strict() -> StrictModeSettings:
    return StrictModeSettings(enabled=True, challenge_type=ChallengeType.PHRASE)


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore(
        StreakLedger(
            current_streak=2,
            longest_streak=4,
            total_completed=6,
            last_completion_date=T0.date() - timedelta(days=1),
        )
    )


@pytest.fixture()
def blocker() -> LoggingBlocker:
    return LoggingBlocker()


def _controller(
    clock: FakeClock,
    store: MemoryStore,
    blocker: LoggingBlocker,
    settings: StrictModeSettings | None = None,
) -> SessionController:
    return SessionController(
        store=store,
        settings=settings or StrictModeSettings(),
        preset=TimerPreset.POMODORO_25,
        blocker=blocker,
        clock=clock,
        rng=random.Random(0),
    )


def _walk_quit_flow(controller: SessionController, clock: FakeClock) -> None:
    flow = controller.request_quit()
    assert flow is not None
    clock.advance(DELAY_SECONDS)
    flow.tick()
    assert isinstance(flow.challenge, PhraseChallenge)
    flow.challenge.update(flow.challenge.phrase)
    assert flow.advance()
    assert flow.confirm_quit()


class TestStart:
    def test_work_session_from_preset(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        assert c.start() is True
        session = c.timer.session
        assert session is not None
        assert session.planned_duration == 1500
        assert session.kind == SessionKind.WORK
        assert not session.strict_mode
        assert blocker.is_blocking

    def test_custom_minutes(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start(minutes=10)
        assert c.timer.session is not None
        assert c.timer.session.planned_duration == 600

    def test_strict_flag_from_settings(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start()
        assert c.timer.session is not None
        assert c.timer.session.strict_mode

    def test_breaks_never_strict_or_blocking(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start(kind=SessionKind.REST)
        assert c.timer.session is not None
        assert c.timer.session.planned_duration == 300
        assert not c.timer.session.strict_mode
        assert not blocker.is_blocking

    def test_start_ignored_while_running(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        assert c.start() is False


class TestCompletion:
    def test_completion_records_streak(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        clock.advance(1500)
        c.timer.tick()
        assert c.timer.state == TimerState.COMPLETED
        assert store.ledger.current_streak == 3
        assert store.ledger.total_completed == 7
        assert store.ledger.last_completion_date == T0.date()
        assert store.sessions[-1].status == CompletionStatus.COMPLETED
        assert not blocker.is_blocking

    def test_break_completion_leaves_ledger(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        before = store.ledger
        c.start(kind=SessionKind.REST)
        clock.advance(300)
        c.timer.tick()
        assert store.ledger == before
        assert len(store.sessions) == 1

    def test_dismiss_flips_kind(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        clock.advance(1500)
        c.timer.tick()
        c.dismiss()
        assert c.timer.state == TimerState.IDLE
        assert c.next_kind == SessionKind.REST
        c.start()
        assert c.timer.session is not None
        assert c.timer.session.kind == SessionKind.REST

    def test_foreground_completes(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        c.on_background()
        clock.advance(7200)
        c.on_foreground()
        assert c.timer.state == TimerState.COMPLETED
        assert len(store.sessions) == 1


class TestQuit:
    def test_non_strict_quit_is_immediate(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        clock.advance(600)
        assert c.request_quit() is None
        assert c.timer.state == TimerState.IDLE
        saved = store.sessions[-1]
        assert saved.status == CompletionStatus.QUIT_EARLY
        assert saved.actual_duration == pytest.approx(600)
        assert saved.challenge_phrase_used is None
        assert store.ledger.current_streak == 0
        assert store.ledger.longest_streak == 4
        assert store.ledger.total_quit == 1
        assert not blocker.is_blocking

    def test_strict_quit_goes_through_flow(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start()
        clock.advance(300)
        flow = c.request_quit()
        assert flow is not None
        assert flow.streak == 2
        assert c.timer.state == TimerState.RUNNING
        assert store.sessions == []

    def test_request_quit_reuses_open_flow(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start()
        assert c.request_quit() is c.request_quit()

    def test_confirmed_strict_quit(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start()
        clock.advance(300)
        _walk_quit_flow(c, clock)
        assert c.quit_flow is None
        assert c.timer.state == TimerState.IDLE
        saved = store.sessions[-1]
        assert saved.status == CompletionStatus.QUIT_EARLY
        assert saved.quit_timestamp == T0 + timedelta(seconds=300 + DELAY_SECONDS)
        assert saved.actual_duration == pytest.approx(300 + DELAY_SECONDS)
        assert saved.challenge_phrase_used in _strict().tone.phrases
        assert store.ledger.current_streak == 0
        assert c.last_session == saved

    @pytest.mark.parametrize("stage", ["delay", "challenge", "warning"])
    def test_abort_leaves_session_untouched(self, clock, store, blocker, stage) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start()
        session = c.timer.session
        assert session is not None
        end_time = session.end_time
        flow = c.request_quit()
        assert flow is not None
        if stage != "delay":
            clock.advance(DELAY_SECONDS)
            flow.tick()
        if stage == "warning":
            assert isinstance(flow.challenge, PhraseChallenge)
            flow.challenge.update(flow.challenge.phrase)
            flow.advance()
            assert flow.keep_going()
        elif stage == "challenge":
            assert flow.go_back()
        else:
            assert flow.cancel()
        assert c.quit_flow is None
        assert c.timer.state == TimerState.RUNNING
        assert c.timer.session is not None
        assert c.timer.session.end_time == end_time
        assert c.timer.session.status == CompletionStatus.IN_PROGRESS
        assert store.sessions == []
        assert store.ledger.current_streak == 2

    def test_quit_while_paused(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        clock.advance(200)
        c.pause()
        clock.advance(500)
        c.request_quit()
        saved = store.sessions[-1]
        assert saved.actual_duration == pytest.approx(200)
        assert saved.paused_duration == pytest.approx(500)

    def test_quit_after_pause_resume(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        c.start()
        clock.advance(200)
        c.pause()
        clock.advance(500)
        c.resume()
        clock.advance(100)
        c.request_quit()
        assert store.sessions[-1].actual_duration == pytest.approx(300)

    def test_expired_during_flow_counts_as_completed(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker, _strict())
        c.start()
        clock.advance(1495)
        flow = c.request_quit()
        assert flow is not None
        clock.advance(DELAY_SECONDS)
        flow.tick()
        assert isinstance(flow.challenge, PhraseChallenge)
        flow.challenge.update(flow.challenge.phrase)
        flow.advance()
        flow.confirm_quit()
        assert [s.status for s in store.sessions] == [CompletionStatus.COMPLETED]
        assert store.ledger.current_streak == 3

    def test_request_quit_when_idle(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        assert c.request_quit() is None
        assert store.sessions == []


class TestCollaborators:
    def test_blocker_errors_are_logged(self, clock, store) -> None:
        blocker = MagicMock()
        blocker.start_blocking.side_effect = RuntimeError("no permission")
        c = SessionController(store=store, settings=StrictModeSettings(), blocker=blocker, clock=clock)
        assert c.start() is True
        assert c.timer.state == TimerState.RUNNING

    def test_emergency_bypass_ends_session(self, clock, store, blocker, mono) -> None:
        auth = MagicMock()
        auth.authenticate.return_value = True
        c = SessionController(
            store=store,
            settings=_strict(),
            blocker=blocker,
            authenticator=auth,
            clock=clock,
            hold_clock=mono,
        )
        c.start()
        flow = c.request_quit()
        assert flow is not None
        flow.press_bypass()
        mono.advance(10)
        assert flow.release_bypass()
        assert flow.stage == QuitStage.CONFIRMED
        assert c.timer.state == TimerState.IDLE
        assert store.sessions[-1].status == CompletionStatus.QUIT_EARLY
        assert store.sessions[-1].challenge_phrase_used is not None

    def test_ledger_reads_store(self, clock, store, blocker) -> None:
        c = _controller(clock, store, blocker)
        store.ledger = StreakLedger(current_streak=1, longest_streak=1, last_completion_date=date(2024, 1, 1))
        assert c.ledger.current_streak == 1


class _LockedStore(MemoryStore):
    def save_session(self, session) -> None:
        raise OSError("database is locked")


class TestStoreFailures:
    def test_completion_survives_save_error(self, clock, blocker) -> None:
        store = _LockedStore(
            StreakLedger(current_streak=2, last_completion_date=T0.date() - timedelta(days=1))
        )
        c = _controller(clock, store, blocker)
        c.start(minutes=1)
        clock.advance(61)
        c.timer.tick()
        assert c.timer.state == TimerState.COMPLETED
        assert not blocker.is_blocking
        assert store.ledger.current_streak == 3
        assert c.last_session is not None

    def test_quit_survives_save_error(self, clock, blocker) -> None:
        store = _LockedStore()
        c = _controller(clock, store, blocker)
        c.start()
        clock.advance(60)
        assert c.request_quit() is None
        assert c.timer.state == TimerState.IDLE
        assert not blocker.is_blocking
        assert store.ledger.total_quit == 1

    def test_ledger_load_error_is_logged(self, clock, blocker) -> None:
        store = MagicMock()
        store.load_ledger.side_effect = OSError("disk I/O error")
        c = _controller(clock, store, blocker, settings=_strict())
        c.start()
        flow = c.request_quit()
        assert flow is not None
        assert flow.streak == 0
        c.timer.complete()
        assert not blocker.is_blocking
        store.save_ledger.assert_not_called()
