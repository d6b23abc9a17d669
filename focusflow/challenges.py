"""Quit-flow challenges.

Four small mini-games stand between "I want to quit" and the final warning:

* **Phrase** -- type a sentence exactly (case and smart punctuation are
  forgiven by the normalised comparison).
* **Math** -- solve a two-digit addition or subtraction.
* **Pattern** -- tap 4-5 cells of a 3x3 grid in the order shown.
* **Hold** -- keep a button pressed for five uninterrupted seconds.

Each exposes ``is_satisfied``. None of them advances the flow on its own;
the user confirms explicitly once the challenge is satisfied.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from focusflow.models import ChallengeType, StrictModeSettings
from focusflow.normalize import (
    CharacterStatus,
    character_statuses,
    first_mismatch_index,
    matches,
)

# ---------------------------------------------------------------------------
# Phrase
# ---------------------------------------------------------------------------

BYPASS_HINT_AFTER = 3
_MIN_CHARS_FOR_ATTEMPT = 3


@dataclass
class PhraseChallenge:
    """Type ``phrase`` exactly."""

    phrase: str
    text: str = ""
    failed_attempts: int = 0
    _had_error: bool = field(default=False, repr=False)

    def update(self, text: str) -> None:
        """Record the current contents of the input field."""
        has_error = first_mismatch_index(text, self.phrase) is not None
        typing_forward = len(text) >= len(self.text)
        if has_error and not self._had_error and typing_forward:
            if len(text) >= _MIN_CHARS_FOR_ATTEMPT:
                self.failed_attempts += 1
        self._had_error = has_error
        self.text = text

    @property
    def statuses(self) -> list[CharacterStatus]:
        return character_statuses(self.text, self.phrase)

    @property
    def has_error(self) -> bool:
        return first_mismatch_index(self.text, self.phrase) is not None

    @property
    def show_bypass_hint(self) -> bool:
        """Point stuck users at the emergency bypass after repeated slips."""
        return self.failed_attempts >= BYPASS_HINT_AFTER

    @property
    def is_satisfied(self) -> bool:
        return matches(self.text, self.phrase)


# ---------------------------------------------------------------------------
# Math
# ---------------------------------------------------------------------------

MATH_OPERAND_RANGE = (10, 99)


@dataclass
class MathChallenge:
    """A two-digit sum or difference. Differences are never negative."""

    num1: int
    num2: int
    is_addition: bool
    answer: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.is_addition and self.num1 < self.num2:
            raise ValueError("subtraction operands must satisfy num1 >= num2")

    @classmethod
    def generate(cls, rng: Optional[random.Random] = None) -> MathChallenge:
        rng = rng or random.Random()
        low, high = MATH_OPERAND_RANGE
        addition = rng.random() < 0.5
        a = rng.randint(low, high)
        b = rng.randint(low, high)
        if addition:
            return cls(num1=a, num2=b, is_addition=True)
        return cls(num1=max(a, b), num2=min(a, b), is_addition=False)

    @property
    def operator(self) -> str:
        return "+" if self.is_addition else "-"

    @property
    def question(self) -> str:
        return f"{self.num1} {self.operator} {self.num2} = ?"

    @property
    def correct_answer(self) -> int:
        return self.num1 + self.num2 if self.is_addition else self.num1 - self.num2

    def submit(self, raw: str) -> bool:
        """Store the typed answer; anything that is not an integer just fails."""
        try:
            self.answer = int(raw.strip())
        except ValueError:
            self.answer = None
        return self.is_satisfied

    @property
    def is_satisfied(self) -> bool:
        return self.answer is not None and self.answer == self.correct_answer


# ---------------------------------------------------------------------------
# Pattern
# ---------------------------------------------------------------------------

GRID_SIZE = 3
PATTERN_LENGTHS = (4, 5)


@dataclass
class PatternChallenge:
    """Tap the cells of ``targets`` (grid indices 0-8) in order.

    A wrong tap throws away all progress, not just the last tap.
    """

    targets: list[int]
    tapped: list[int] = field(default_factory=list)
    error: bool = False

    def __post_init__(self) -> None:
        cells = GRID_SIZE * GRID_SIZE
        if len(set(self.targets)) != len(self.targets):
            raise ValueError("pattern cells must be unique")
        if any(not 0 <= t < cells for t in self.targets):
            raise ValueError(f"pattern cells must be between 0 and {cells - 1}")

    @classmethod
    def generate(cls, rng: Optional[random.Random] = None) -> PatternChallenge:
        rng = rng or random.Random()
        count = rng.randint(*PATTERN_LENGTHS)
        return cls(targets=rng.sample(range(GRID_SIZE * GRID_SIZE), count))

    @property
    def next_cell(self) -> Optional[int]:
        if len(self.tapped) >= len(self.targets):
            return None
        return self.targets[len(self.tapped)]

    def tap(self, cell: int) -> bool:
        """Returns True for the expected cell; any other cell resets progress."""
        if self.is_satisfied:
            return False
        if cell == self.next_cell:
            self.tapped.append(cell)
            self.error = False
            return True
        self.tapped = []
        self.error = True
        return False

    def reset(self) -> None:
        self.tapped = []
        self.error = False

    def order_of(self, cell: int) -> Optional[int]:
        """1-based position of ``cell`` in the pattern, or None if not part of it."""
        return self.targets.index(cell) + 1 if cell in self.targets else None

    @property
    def is_satisfied(self) -> bool:
        return self.tapped == self.targets


# ---------------------------------------------------------------------------
# Hold
# ---------------------------------------------------------------------------

HOLD_DURATION = 5.0


class HoldChallenge:
    """Press and keep holding for ``duration`` seconds; letting go starts over."""

    def __init__(
        self,
        duration: float = HOLD_DURATION,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.duration = duration
        self._clock = clock
        self._held_since: Optional[float] = None
        self._complete = False

    @property
    def is_holding(self) -> bool:
        self._check()
        return self._held_since is not None

    def press(self) -> None:
        if self._complete or self._held_since is not None:
            return
        self._held_since = self._clock()

    def release(self) -> None:
        self._check()
        if not self._complete:
            self._held_since = None

    @property
    def progress(self) -> float:
        self._check()
        if self._complete:
            return 1.0
        if self._held_since is None:
            return 0.0
        return min(1.0, (self._clock() - self._held_since) / self.duration)

    @property
    def is_satisfied(self) -> bool:
        self._check()
        return self._complete

    def _check(self) -> None:
        if self._complete or self._held_since is None:
            return
        if self._clock() - self._held_since >= self.duration:
            self._complete = True
            self._held_since = None


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

Challenge = Union[PhraseChallenge, MathChallenge, PatternChallenge, HoldChallenge]


def create_challenge(
    settings: StrictModeSettings,
    rng: Optional[random.Random] = None,
    hold_clock: Callable[[], float] = time.monotonic,
) -> Challenge:
    """Build the challenge selected in ``settings``."""
    rng = rng or random.Random()
    kind = settings.challenge_type
    if kind == ChallengeType.PHRASE:
        return PhraseChallenge(phrase=settings.challenge_phrase(rng.choice))
    if kind == ChallengeType.MATH:
        return MathChallenge.generate(rng)
    if kind == ChallengeType.PATTERN:
        return PatternChallenge.generate(rng)
    if kind == ChallengeType.HOLD_BUTTON:
        return HoldChallenge(clock=hold_clock)
    raise ValueError(f"Unknown challenge type: {kind!r}")
