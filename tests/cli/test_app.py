"""Tests for the root ``spine-lease`` application."""

from __future__ import annotations

from typer.testing import CliRunner

from spine_lease.cli import app

runner = CliRunner()


class TestApp:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert result.output.startswith("spine-lease ")

    def test_help_lists_groups(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for group in ("pool", "session", "worker"):
            assert group in result.output
