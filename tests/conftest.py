"""Shared fixtures: a controllable wall clock and monotonic clock."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

T0 = datetime(2024, 3, 4, 9, 0, 0)  # a Monday


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 0.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def mono() -> FakeMonotonic:
    return FakeMonotonic()
