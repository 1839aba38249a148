"""Tests for the CLI module."""

import json
from unittest.mock import patch

import pytest

from sleep_tracker.cli import format_output, main


@pytest.fixture
def cli_storage(populated_storage):
    """Route every CLI command to the populated test database."""
    with patch("sleep_tracker.cli.create_storage", return_value=populated_storage):
        yield populated_storage


@pytest.fixture
def empty_cli_storage(memory_storage):
    """Route every CLI command to an empty in-memory store."""
    with patch("sleep_tracker.cli.create_storage", return_value=memory_storage):
        yield memory_storage


class TestFormatOutput:
    """Tests for format_output."""

    def test_json_output(self):
        """Test JSON mode."""
        data = {"anything": 1}
        assert json.loads(format_output(data, json_output=True)) == data

    def test_unknown_shape_falls_back_to_json(self):
        """Test the fallback for data with no formatter."""
        assert json.loads(format_output({"x": [1, 2]})) == {"x": [1, 2]}

    def test_analytics_format(self):
        """Test human-readable analytics."""
        data = {
            "weeklyData": [{"date": "2025-01-06", "duration": 7.5, "quality": 4}],
            "qualityData": [4],
            "averageDuration": 7.5,
            "averageQuality": 4.0,
            "insights": [],
        }
        output = format_output(data)
        assert "Average duration: 7h 30m" in output
        assert "2025-01-06" in output
        assert "at least 7 nights" in output

    def test_insights_need_more_data(self):
        """Test the not-enough-data message."""
        output = format_output({"log_count": 3, "needs_more_data": True, "insights": []})
        assert "Need more data" in output

    def test_status_format(self):
        """Test human-readable status."""
        output = format_output(
            {"status": "ok", "backend": "memory", "sleep_log_count": 2, "reminder_count": 2}
        )
        assert "Backend: memory" in output
        assert "Sleep logs: 2" in output


class TestCommands:
    """Tests for CLI subcommands."""

    def test_status(self, cli_storage, capsys):
        """Test the status command."""
        main(["status"])
        assert "Sleep logs: 10" in capsys.readouterr().out

    def test_log(self, empty_cli_storage, capsys):
        """Test logging a night."""
        main(["log", "23:00", "07:00", "--date", "2025-01-06", "--quality", "4"])
        assert "Logged #1 for 2025-01-06: 8h" in capsys.readouterr().out
        assert len(empty_cli_storage.list_sleep_logs()) == 1

    def test_log_defaults_to_today(self, empty_cli_storage):
        """Test that --date is optional."""
        main(["log", "23:00", "07:00", "--quality", "3"])
        assert empty_cli_storage.list_sleep_logs()[0].date

    def test_log_invalid(self, empty_cli_storage, capsys):
        """Test that bad input exits with an error message."""
        with pytest.raises(SystemExit) as exc:
            main(["log", "23:00", "07:00", "--date", "2025-01-06", "--quality", "9"])
        assert exc.value.code == 1
        assert "Error: quality" in capsys.readouterr().err

    def test_list_json(self, cli_storage, capsys):
        """Test JSON listing."""
        main(["--json", "list", "--limit", "2"])
        data = json.loads(capsys.readouterr().out)
        assert data["count"] == 10
        assert len(data["logs"]) == 2

    def test_analytics_json(self, cli_storage, capsys):
        """Test JSON analytics payload."""
        main(["--json", "analytics"])
        data = json.loads(capsys.readouterr().out)
        assert len(data["weeklyData"]) == 7
        assert data["insights"]

    def test_insights(self, cli_storage, capsys):
        """Test the insights command."""
        main(["insights"])
        assert "Bedtime Consistency" in capsys.readouterr().out

    def test_delete(self, cli_storage, capsys):
        """Test deleting a log."""
        log_id = cli_storage.list_sleep_logs()[0].id
        main(["delete", str(log_id)])
        assert "deleted successfully" in capsys.readouterr().out
        assert cli_storage.get_sleep_log(log_id) is None

    def test_clear_requires_confirmation(self, cli_storage, capsys):
        """Test that clear refuses without --yes."""
        with pytest.raises(SystemExit):
            main(["clear"])
        assert len(cli_storage.list_sleep_logs()) == 10

        main(["clear", "--yes"])
        assert cli_storage.list_sleep_logs() == []

    def test_reminders(self, empty_cli_storage, capsys):
        """Test listing and updating reminders."""
        main(["reminder-set", "1", "--time", "22:30", "--disable"])
        assert "Reminder #1 bedtime at 22:30 (disabled)" in capsys.readouterr().out

        main(["reminders"])
        output = capsys.readouterr().out
        assert "disabled" in output
        assert "winddown" in output

    def test_reminder_missing(self, empty_cli_storage, capsys):
        """Test updating an unknown reminder."""
        with pytest.raises(SystemExit):
            main(["reminder-set", "99", "--enable"])
        assert "not found" in capsys.readouterr().err

    def test_alarm(self, empty_cli_storage, capsys):
        """Test showing and updating the alarm."""
        main(["alarm-set", "--tone", "Forest Sounds", "--window-start", "06:00"])
        output = capsys.readouterr().out
        assert "Tone: Forest Sounds" in output
        assert "06:00 - 07:00" in output

        main(["alarm"])
        assert "Smart alarm: on" in capsys.readouterr().out

    def test_seed(self, empty_cli_storage, capsys):
        """Test seeding sample data."""
        main(["seed", "--days", "5"])
        assert "Added 5 sample sleep logs" in capsys.readouterr().out
        main(["seed"])
        assert "already exists" in capsys.readouterr().out
