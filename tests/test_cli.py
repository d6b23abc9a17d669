"""Tests for CLI commands."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from focusflow.cli import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _use_tmp_paths(tmp_path: Path):
    """Redirect all CLI tests to a temporary database and config file."""
    db_path = tmp_path / "test.db"
    cfg_dir = tmp_path / "config"
    with patch("focusflow.db._get_db_path", return_value=db_path), patch(
        "focusflow.config._CONFIG_DIR", cfg_dir
    ), patch("focusflow.config._CONFIG_FILE", cfg_dir / "config.json"), patch(
        "focusflow.config._DB_DIR", tmp_path / "data"
    ):
        yield


def _complete(controller, ticker):
    controller.timer.complete()
    return controller.last_session


def _quit(controller, ticker):
    controller.request_quit()
    return controller.last_session


class TestFocus:
    def test_completed_session(self) -> None:
        with patch("focusflow.cli.run_session", side_effect=_complete):
            result = runner.invoke(app, ["focus", "--no-break"])
        assert result.exit_code == 0
        assert "25-minute" in result.output
        assert "Streak: 1 day." in result.output

        stats = runner.invoke(app, ["stats"])
        assert "Sessions completed: 1" in stats.output
        assert f"{date.today().strftime('%a')[:2]} x" in stats.output

    def test_custom_minutes(self) -> None:
        with patch("focusflow.cli.run_session", side_effect=_complete):
            result = runner.invoke(app, ["focus", "-m", "10", "--no-break"])
        assert "10-minute" in result.output

    def test_quit_is_logged(self) -> None:
        with patch("focusflow.cli.run_session", side_effect=_quit):
            result = runner.invoke(app, ["focus", "--no-break"])
        assert result.exit_code == 0
        assert "ended early" in result.output

        history = runner.invoke(app, ["history", "--quits"])
        assert "Quit at" in history.output

    def test_offers_break(self) -> None:
        with patch("focusflow.cli.run_session", side_effect=_complete) as mock_run:
            result = runner.invoke(app, ["focus"], input="y\n")
        assert result.exit_code == 0
        assert mock_run.call_count == 2
        assert "Break over." in result.output

    def test_take_break(self) -> None:
        with patch("focusflow.cli.run_session", side_effect=_complete):
            result = runner.invoke(app, ["take-break"])
        assert result.exit_code == 0
        assert "Break over." in result.output


class TestStats:
    def test_stats_empty(self) -> None:
        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "Stats" in result.output
        assert "Current streak: 0 days" in result.output

    def test_history_empty(self) -> None:
        result = runner.invoke(app, ["history"])
        assert result.exit_code == 0
        assert "No sessions yet." in result.output

    def test_verbose(self) -> None:
        result = runner.invoke(app, ["--verbose", "stats"])
        assert result.exit_code == 0


class TestPreset:
    def test_show(self) -> None:
        result = runner.invoke(app, ["preset"])
        assert result.exit_code == 0
        assert "* 25/5" in result.output

    def test_set(self) -> None:
        result = runner.invoke(app, ["preset", "50/10"])
        assert result.exit_code == 0
        assert "50 min focus" in result.output
        assert "* 50/10" in runner.invoke(app, ["preset"]).output

    def test_unknown(self) -> None:
        result = runner.invoke(app, ["preset", "10/1"])
        assert result.exit_code == 1


class TestStrict:
    def test_on_then_off_within_window(self) -> None:
        result = runner.invoke(app, ["strict", "on"])
        assert result.exit_code == 0
        assert "Strict mode enabled" in result.output
        result = runner.invoke(app, ["strict", "off"])
        assert "Strict mode disabled." in result.output

    def test_off_when_already_off(self) -> None:
        result = runner.invoke(app, ["strict", "off"])
        assert "already off" in result.output

    def test_cancel_without_pending(self) -> None:
        result = runner.invoke(app, ["strict", "cancel"])
        assert "No disable is pending." in result.output

    def test_set_challenge_and_tone(self) -> None:
        result = runner.invoke(app, ["strict", "set", "--challenge", "math", "--tone", "strict"])
        assert result.exit_code == 0
        assert "Solve Math Problem" in result.output
        status = runner.invoke(app, ["strict", "status"])
        assert "Tone: strict" in status.output

    def test_custom_phrase(self) -> None:
        result = runner.invoke(app, ["strict", "set", "--phrase", "I choose to stop"])
        assert "Tone: custom" in result.output
        assert "I choose to stop" in result.output

    def test_empty_phrase_rejected(self) -> None:
        result = runner.invoke(app, ["strict", "set", "--phrase", "   "])
        assert result.exit_code == 1


class TestSchedule:
    def test_add_and_list(self) -> None:
        result = runner.invoke(
            app, ["schedule", "add", "weekdays", "09:30", "--name", "Deep work", "--strict"]
        )
        assert result.exit_code == 0
        assert "Added schedule #1 at 9:30 AM." in result.output

        listing = runner.invoke(app, ["schedule", "list"])
        assert "Deep work" in listing.output
        assert "Weekdays" in listing.output
        assert "Next window starts" in listing.output

    def test_add_bad_time(self) -> None:
        result = runner.invoke(app, ["schedule", "add", "daily", "9"])
        assert result.exit_code == 1

    def test_add_bad_days(self) -> None:
        result = runner.invoke(app, ["schedule", "add", "someday", "09:00"])
        assert result.exit_code == 1

    def test_pause_resume_remove(self) -> None:
        runner.invoke(app, ["schedule", "add", "daily", "07:00"])
        assert "paused" in runner.invoke(app, ["schedule", "pause", "1"]).output
        assert "resumed" in runner.invoke(app, ["schedule", "resume", "1"]).output
        assert "Removed" in runner.invoke(app, ["schedule", "remove", "1"]).output
        assert runner.invoke(app, ["schedule", "remove", "1"]).exit_code == 1

    def test_pause_missing(self) -> None:
        assert runner.invoke(app, ["schedule", "pause", "99"]).exit_code == 1

    def test_start_without_active_schedule(self) -> None:
        result = runner.invoke(app, ["start"])
        assert result.exit_code == 0
        assert "No schedule is active" in result.output

    def test_start_in_active_window(self) -> None:
        runner.invoke(app, ["schedule", "add", "daily", "00:00", "--minutes", "1440"])
        with patch("focusflow.cli.run_session", side_effect=_complete):
            result = runner.invoke(app, ["start"])
        assert result.exit_code == 0
        assert "schedule #1" in result.output


class TestConfig:
    def test_show_default(self) -> None:
        result = runner.invoke(app, ["config", "--show"])
        assert result.exit_code == 0
        assert "(default)" in result.output

    def test_set_and_reset_db_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "elsewhere" / "mine.db"
        result = runner.invoke(app, ["config", "--db-path", str(custom)])
        assert result.exit_code == 0
        assert "Database path set to" in result.output
        result = runner.invoke(app, ["config", "--reset"])
        assert "Reset" in result.output
