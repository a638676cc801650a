"""Tests for the resolve command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from capsactl.cli import cli
from tests.conftest import write_daily, write_note, write_today


@pytest.mark.usefixtures("_isolated_capsa")
class TestResolveCommand:
    def test_prints_relative_path(self, cli_runner: CliRunner, capsa_root: Path) -> None:
        write_note(capsa_root, "design-review.md")
        result = cli_runner.invoke(cli, ["resolve", "design-review"])
        assert result.exit_code == 0
        assert result.stdout == "note/design-review.md\n"

    def test_time_prefix_in_today(self, cli_runner: CliRunner, capsa_root: Path) -> None:
        path = write_today(capsa_root, "143022-standup")
        result = cli_runner.invoke(cli, ["--json", "resolve", "1430"])
        payload = json.loads(result.stdout)
        assert payload["data"]["absolute"] == [str(path)]

    def test_ambiguous(self, cli_runner: CliRunner, capsa_root: Path) -> None:
        write_daily(capsa_root, "20240110", "090000-standup")
        write_daily(capsa_root, "20240110", "093000-standup")
        result = cli_runner.invoke(cli, ["resolve", "20240110/standup"])
        assert result.exit_code == 1
        assert "2 candidates found" in result.stderr
        assert "#daily/20240110/090000-standup.md" in result.stderr
        assert "Hint:" in result.stderr

    def test_force_prints_all(self, cli_runner: CliRunner, capsa_root: Path) -> None:
        write_daily(capsa_root, "20240110", "090000-standup")
        write_daily(capsa_root, "20240110", "093000-standup")
        result = cli_runner.invoke(cli, ["resolve", "20240110/standup", "--force"])
        assert result.exit_code == 0
        assert sorted(result.stdout.splitlines()) == [
            "#daily/20240110/090000-standup.md",
            "#daily/20240110/093000-standup.md",
        ]

    def test_not_found_json_on_stderr(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["--json", "resolve", "missing"])
        assert result.exit_code == 1
        assert result.stdout == ""
        payload = json.loads(result.stderr)
        assert payload["error"]["code"] == "NOTE_NOT_FOUND"

    def test_verbose_shows_telemetry(self, cli_runner: CliRunner, capsa_root: Path) -> None:
        write_note(capsa_root, "plan.md")
        result = cli_runner.invoke(cli, ["-v", "resolve", "plan"])
        assert result.exit_code == 0
        assert "NoteService.resolve" in result.stdout
        assert "matches=1" in result.stdout
