"""Text comparison for typed challenge phrases.

Phone keyboards like to swap in curly quotes and long dashes, so the
pass/fail check compares normalised text. The per-character feedback shown
while typing is stricter: it is an exact, prefix-based comparison.
"""

from __future__ import annotations

import enum
from typing import Optional

_REPLACEMENTS: dict[str, str] = {
    "’": "'",  # right single quote
    "‘": "'",  # left single quote
    "`": "'",
    "“": '"',  # left double quote
    "”": '"',  # right double quote
    "–": "-",  # en dash
    "—": "-",  # em dash
}

_TRANSLATION = str.maketrans(_REPLACEMENTS)


class CharacterStatus(str, enum.Enum):
    """Feedback state of one typed character."""

    CORRECT = "correct"
    INCORRECT = "incorrect"
    PENDING = "pending"


def normalize_for_comparison(text: str) -> str:
    """Lowercase, map smart punctuation to ASCII and strip surrounding whitespace."""
    return text.lower().translate(_TRANSLATION).strip()


def matches(user_input: str, challenge_phrase: str) -> bool:
    """Return True when the input equals the phrase after normalisation."""
    return normalize_for_comparison(user_input) == normalize_for_comparison(challenge_phrase)


def character_statuses(user_input: str, challenge_phrase: str) -> list[CharacterStatus]:
    """One status per typed character.

    Everything before the first mismatch is correct, the first mismatch is
    incorrect and the rest is pending, even where later characters happen
    to line up again. Typing past the end of the phrase counts as a mismatch.
    """
    statuses: list[CharacterStatus] = []
    found_error = False
    for index, char in enumerate(user_input):
        if found_error:
            statuses.append(CharacterStatus.PENDING)
        elif index >= len(challenge_phrase) or char != challenge_phrase[index]:
            statuses.append(CharacterStatus.INCORRECT)
            found_error = True
        else:
            statuses.append(CharacterStatus.CORRECT)
    return statuses


def first_mismatch_index(user_input: str, challenge_phrase: str) -> Optional[int]:
    """Index of the first wrong character, or None if the input is a clean prefix."""
    for index, char in enumerate(user_input):
        if index >= len(challenge_phrase) or char != challenge_phrase[index]:
            return index
    return None
