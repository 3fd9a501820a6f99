"""
Tests for the CLI interface.
"""
import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from ccmonitor.cli.main import app, EXIT_CODE_PASS, EXIT_CODE_FAIL
from ccmonitor.storage.paths import STATS_FILENAME

runner = CliRunner()


@pytest.fixture
def populated(data_dir, claude_dir, write_log, record):
    """Log tree with two messages in one hour and one duplicate."""
    write_log("project", "session.jsonl", [
        record("m1", "2025-06-15T10:15:00Z", input_tokens=1000, output_tokens=500),
        record("m2", "2025-06-15T10:45:00Z", input_tokens=800, output_tokens=600),
        record("m2", "2025-06-15T10:45:00Z", input_tokens=800, output_tokens=600),
    ])
    return ["--path", str(data_dir), "--claude-dir", str(claude_dir)]


class TestReportCommand:
    """Test the hourly report."""

    def test_report_table(self, populated, data_dir):
        """Test the table lists the hour and totals, and the cache is persisted."""
        result = runner.invoke(app, ["report", *populated])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Hourly Usage Report" in result.output
        assert "2025-06-15 10:00" in result.output
        assert "1,800" in result.output
        assert "$0.02" in result.output
        assert (data_dir / STATS_FILENAME).exists()

    def test_report_json(self, populated):
        """Test JSON output uses the persisted field names."""
        result = runner.invoke(app, ["report", "--json", *populated])

        assert result.exit_code == EXIT_CODE_PASS
        records = json.loads(result.output)
        assert records[0]["hour"] == "2025-06-15 10:00"
        assert records[0]["sessionCount"] == 2
        assert records[0]["inputTokens"] == 1800

    def test_report_no_header(self, populated):
        """Test the banner can be hidden."""
        result = runner.invoke(app, ["report", "--no-header", *populated])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Hourly Usage Report" not in result.output

    def test_empty_tree(self, data_dir, tmp_path):
        """Test a missing log tree reports no data instead of failing."""
        result = runner.invoke(app, ["report", "--path", str(data_dir), "--claude-dir", str(tmp_path / "none")])
        assert result.exit_code == EXIT_CODE_PASS
        assert "No data found" in result.output

    def test_invalid_since(self, populated):
        """Test an unparsable time bound is a hard failure."""
        result = runner.invoke(app, ["report", "--since", "soon", *populated])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Invalid time" in result.output


class TestRollingCommand:
    """Test the 5-hour limit monitor."""

    def test_rolling_table(self, populated):
        """Test rolling output shows the window cost and the limit."""
        result = runner.invoke(app, ["rolling", "--cost-limit", "1", *populated])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Limit Monitor" in result.output
        assert "5-Hour Cost" in result.output
        assert "$1.00 per 5-hour window" in result.output

    def test_over_limit_warning(self, populated):
        """Test a tiny limit flags the hour as over limit."""
        result = runner.invoke(app, ["rolling", "--cost-limit", "0.01", *populated])
        assert result.exit_code == EXIT_CODE_PASS
        assert "OVER LIMIT" in result.output

    def test_report_rolling_flag(self, populated):
        """Test report --rolling renders the limit monitor."""
        result = runner.invoke(app, ["report", "--rolling", *populated])
        assert result.exit_code == EXIT_CODE_PASS
        assert "Limit Monitor" in result.output

    def test_cost_limit_out_of_range(self, populated):
        """Test the CLI rejects limits above 10000."""
        result = runner.invoke(app, ["rolling", "--cost-limit", "20000", *populated])
        assert result.exit_code == EXIT_CODE_FAIL

    def test_watch_interval_minimum(self, populated):
        """Test watch intervals under five seconds are rejected before the loop."""
        with patch("ccmonitor.cli.main.RefreshScheduler") as scheduler:
            result = runner.invoke(app, ["rolling", "--watch", "--interval", "3", *populated])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "5 seconds" in result.output
        scheduler.assert_not_called()

    def test_watch_runs_scheduler(self, populated):
        """Test watch mode hands control to the scheduler loop."""
        with patch("ccmonitor.cli.main.RefreshScheduler.run", return_value=0) as run:
            result = runner.invoke(app, ["rolling", "--watch", "--interval", "5", *populated])
        assert result.exit_code == EXIT_CODE_PASS
        run.assert_called_once()
        assert "Watch mode stopped" in result.output

    def test_config_file_sets_cost_limit(self, populated, tmp_path):
        """Test the cost limit is read from the config file."""
        config = tmp_path / "config.yaml"
        config.write_text("cost_limit: 25\n")
        result = runner.invoke(app, ["rolling", "--config", str(config), *populated])
        assert result.exit_code == EXIT_CODE_PASS
        assert "$25.00 per 5-hour window" in result.output

    def test_bad_config_file(self, populated, tmp_path):
        """Test an invalid config file is reported as an error."""
        config = tmp_path / "config.yaml"
        config.write_text("unknown_key: 1\n")
        result = runner.invoke(app, ["rolling", "--config", str(config), *populated])
        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown configuration keys" in result.output

    def test_zero_tail_rejected(self, populated):
        """Test --tail 0 is rejected the same way in single-pass and watch mode."""
        for args in (["rolling", "--tail", "0"], ["rolling", "--watch", "--tail", "0"]):
            with patch("ccmonitor.cli.main.RefreshScheduler.run", return_value=0) as run:
                result = runner.invoke(app, [*args, *populated])
            assert result.exit_code != EXIT_CODE_PASS
            run.assert_not_called()
