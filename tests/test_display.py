"""Tests for terminal formatting helpers."""

from __future__ import annotations

from datetime import date

import pytest

from focusflow.display import format_duration, format_time, week_strip


class TestFormatTime:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(1500, "25:00"), (59.9, "01:00"), (0.4, "00:01"), (0, "00:00"), (-2, "00:00")],
    )
    def test_countdown_rounds_up(self, seconds: float, expected: str) -> None:
        assert format_time(seconds) == expected

    def test_format_duration(self) -> None:
        assert format_duration(5400) == "1h 30m"
        assert format_duration(1500) == "25 min"


class TestWeekStrip:
    def test_marks_completed_days(self) -> None:
        # 2024-03-04 is a Monday
        strip = week_strip({date(2024, 3, 4), date(2024, 2, 28)}, today=date(2024, 3, 4))
        assert strip == "Tu .  We x  Th .  Fr .  Sa .  Su .  Mo x"

    def test_ignores_days_outside_window(self) -> None:
        strip = week_strip({date(2024, 2, 1)}, today=date(2024, 3, 4))
        assert "x" not in strip
