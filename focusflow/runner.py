"""Terminal driver for a running session and its quit flow.

Ctrl-C while the timer runs opens a small menu (pause / quit / continue).
Choosing quit on a strict session walks through the quit flow with prompts;
the timer keeps running underneath the whole time.
"""

from __future__ import annotations

import time
from typing import Optional

import typer

from focusflow.challenges import (
    Challenge,
    HoldChallenge,
    MathChallenge,
    PatternChallenge,
    PhraseChallenge,
)
from focusflow.controller import SessionController
from focusflow.display import (
    console,
    create_timer_progress,
    format_time,
    phrase_feedback,
    print_info,
    print_nudge,
    print_pattern,
    print_success,
    print_warning,
    print_warning_panel,
)
from focusflow.encouragement import get_keep_going_message
from focusflow.models import FocusSession
from focusflow.quitflow import EMERGENCY_HOLD_SECONDS, QuitFlow, QuitStage
from focusflow.services import CallbackAuthenticator
from focusflow.timer import LoopTicker, TimerSnapshot

_POLL_SECONDS = 0.2
_EMERGENCY = "!"
_CONFIRM_WORDS = "end session"


def run_session(controller: SessionController, ticker: LoopTicker) -> Optional[FocusSession]:
    """Drive the active session until it completes or is quit. Returns the finished session."""
    timer = controller.timer
    session = timer.session
    if session is None:
        return None

    progress = create_timer_progress()
    task = progress.add_task(
        session.kind.display_name,
        total=session.planned_duration,
        remaining=format_time(timer.remaining),
    )

    def _on_change(snap: TimerSnapshot) -> None:
        progress.update(
            task,
            completed=snap.progress * session.planned_duration,
            remaining=format_time(snap.remaining),
        )

    unsubscribe = timer.subscribe(_on_change)
    try:
        with progress:
            while timer.is_active:
                try:
                    ticker.run()
                except KeyboardInterrupt:
                    progress.stop()
                    _interrupt_menu(controller)
                    if timer.is_active:
                        progress.start()
    finally:
        unsubscribe()

    # Bell notification
    console.print("\a", end="")
    return controller.last_session


def _interrupt_menu(controller: SessionController) -> None:
    choice = _ask("\n[p]ause, [q]uit or [c]ontinue?", default="c")
    if choice is None:
        return
    choice = choice.strip().lower()
    if choice.startswith("p"):
        if controller.pause():
            _ask("Paused. Press Enter to resume", default="", show_default=False)
            controller.resume()
    elif choice.startswith("q"):
        flow = controller.request_quit()
        if flow is not None:
            run_quit_flow(flow)


def _ask(text: str, **kwargs) -> Optional[str]:
    """``typer.prompt`` that returns None when the user hits Ctrl-C or EOF."""
    try:
        return typer.prompt(text, **kwargs)
    except (typer.Abort, KeyboardInterrupt):
        return None


def run_quit_flow(flow: QuitFlow) -> bool:
    """Prompt through the quit flow. Returns True if the user confirmed the quit.

    Ctrl-C at any prompt cancels the flow and the session keeps running.
    """
    try:
        if not _run_delay(flow):
            return False
        if not _run_challenge(flow):
            return False
        if flow.stage == QuitStage.CONFIRMED:
            return True
        return _run_warning(flow)
    except (typer.Abort, KeyboardInterrupt):
        if flow.cancel():
            print_nudge(get_keep_going_message())
        return flow.stage == QuitStage.CONFIRMED


def terminal_authenticator() -> CallbackAuthenticator:
    """Typed confirmation standing in for device authentication."""

    def _confirm(reason: str) -> bool:
        typed = typer.prompt(f"{reason}. Type '{_CONFIRM_WORDS}' to continue", default="")
        return typed.strip().lower() == _CONFIRM_WORDS

    return CallbackAuthenticator(_confirm)


def _run_delay(flow: QuitFlow) -> bool:
    print_warning("Hold on. Take a moment to reconsider. (Ctrl-C to keep going)")
    shown = None
    try:
        while flow.tick() == QuitStage.DELAY:
            if flow.countdown != shown:
                shown = flow.countdown
                console.print(
                    f"  Challenge unlocks in {shown} second{'s' if shown != 1 else ''}..."
                )
            time.sleep(_POLL_SECONDS)
    except KeyboardInterrupt:
        flow.cancel()
        print_nudge(get_keep_going_message())
        return False
    return flow.stage == QuitStage.CHALLENGE


def _run_challenge(flow: QuitFlow) -> bool:
    challenge = flow.challenge
    print_info("Leave the answer blank to go back to your session.")
    if flow.bypass_available:
        print_info(f"Type '{_EMERGENCY}' for the emergency bypass.")
    while not challenge.is_satisfied:
        raw = _read_answer(challenge)
        if raw is None:
            flow.go_back()
            print_nudge(get_keep_going_message())
            return False
        if raw.strip() == _EMERGENCY and flow.bypass_available:
            if _run_bypass(flow):
                return True
            continue
        _check_answer(challenge, raw)
    flow.advance()
    return flow.stage == QuitStage.STREAK_WARNING


def _read_answer(challenge: Challenge) -> Optional[str]:
    """Prompt for one attempt. None means the user wants to go back."""
    if isinstance(challenge, HoldChallenge):
        raw = typer.prompt(
            "\nPress Enter to start holding (type 'back' to go back)",
            default="",
            show_default=False,
        )
        return None if raw.strip().lower() == "back" else raw
    if isinstance(challenge, PhraseChallenge):
        console.print(f'\nType exactly: [bold]"{challenge.phrase}"[/bold]')
        raw = typer.prompt("  ", default="", show_default=False)
    elif isinstance(challenge, MathChallenge):
        raw = typer.prompt(f"\nSolve: {challenge.question}", default="", show_default=False)
    else:
        print_pattern(challenge)
        raw = typer.prompt(
            "Tap the highlighted cells in order (cell numbers, space separated)",
            default="",
            show_default=False,
        )
    return raw if raw.strip() else None


def _check_answer(challenge: Challenge, raw: str) -> bool:
    if isinstance(challenge, PhraseChallenge):
        challenge.update(raw)
        console.print(phrase_feedback(raw, challenge.statuses))
        if challenge.is_satisfied:
            print_success("Match!")
            return True
        if challenge.has_error:
            print_warning("Character mismatch detected.")
        else:
            print_info("Not finished yet. Keep typing the whole phrase.")
        if challenge.show_bypass_hint:
            print_info("Stuck? Take your time. Typing slowly helps.")
        return False

    if isinstance(challenge, MathChallenge):
        if challenge.submit(raw):
            print_success("Correct.")
            return True
        print_warning("Not quite. Try again.")
        return False

    if isinstance(challenge, PatternChallenge):
        for part in raw.replace(",", " ").split():
            if challenge.is_satisfied:
                break
            cell = int(part) - 1 if part.isdigit() else -1
            if not challenge.tap(cell):
                print_warning("Wrong order! Try again from the start.")
                return False
        return challenge.is_satisfied

    challenge.press()
    typer.prompt(
        f"  Holding... press Enter again after {challenge.duration:.0f} seconds",
        default="",
        show_default=False,
    )
    challenge.release()
    if challenge.is_satisfied:
        print_success("Complete!")
        return True
    print_warning("Released too early. Start over.")
    return False


def _run_bypass(flow: QuitFlow) -> bool:
    flow.press_bypass()
    typer.prompt(
        f"Emergency bypass: press Enter again after {EMERGENCY_HOLD_SECONDS:.0f} seconds",
        default="",
        show_default=False,
    )
    if flow.release_bypass():
        print_warning("Emergency bypass used. Session ended.")
        return True
    print_warning("Emergency bypass not completed.")
    return False


def _run_warning(flow: QuitFlow) -> bool:
    warning = flow.warning
    print_warning_panel(warning)
    if typer.confirm(f"{warning.confirm_label}?", default=False):
        return flow.confirm_quit()
    flow.keep_going()
    print_nudge(get_keep_going_message())
    return False
