"""Short messages shown after sessions and while deciding whether to quit.

Messages are loaded from ``ENCOURAGEMENTS.md`` at the project root.
The user can freely add, edit, or remove messages in that file.
If the file is missing, a small built-in fallback list is used.
"""

from __future__ import annotations

import random
from pathlib import Path

_FALLBACK_MESSAGES: list[str] = [
    "Another block of real focus. That is how big things get done.",
    "You kept your commitment to yourself.",
    "Deep work compounds. Today counted.",
    "You stayed with it even when it got boring. That is the skill.",
    "One more session in the bank.",
    "Focus is a muscle, and you just trained it.",
]

_KEEP_GOING_MESSAGES: list[str] = [
    "The urge to quit usually passes in a minute or two.",
    "You decided to do this for a reason. It still applies.",
    "Finish this one, then decide.",
    "Discomfort is not a signal to stop.",
]

_BREAK_MESSAGES: list[str] = [
    "Step away from the screen for a moment.",
    "Take a few slow breaths.",
    "Stretch your shoulders and neck.",
    "Look at something far away for twenty seconds.",
    "Get some water if you can.",
]


def _load_messages() -> list[str]:
    """Parse bullet points from ENCOURAGEMENTS.md, falling back to built-in list."""
    md_path = Path(__file__).resolve().parent.parent / "ENCOURAGEMENTS.md"
    if not md_path.exists():
        return _FALLBACK_MESSAGES

    messages: list[str] = []
    for line in md_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if stripped.startswith("- "):
            msg = stripped[2:].strip()
            if msg:
                messages.append(msg)
    return messages if messages else _FALLBACK_MESSAGES


_MESSAGES: list[str] = _load_messages()


def get_nudge() -> str:
    """Return a message for a completed focus session."""
    return random.choice(_MESSAGES)


def get_keep_going_message() -> str:
    """Return a message for someone who backed out of quitting."""
    return random.choice(_KEEP_GOING_MESSAGES)


def get_break_message() -> str:
    """Return a calming message for break time."""
    return random.choice(_BREAK_MESSAGES)
