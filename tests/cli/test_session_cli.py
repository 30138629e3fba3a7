"""Tests for ``spine-lease session`` CLI commands."""

from __future__ import annotations

from typer.testing import CliRunner

from spine_lease.cli.app import app

runner = CliRunner()


class TestSessionGet:
    def test_get_creates_then_reuses(self, cli_service):
        first = runner.invoke(app, ["session", "get", "A"])
        second = runner.invoke(app, ["session", "get", "A"])

        assert first.exit_code == 0
        assert first.output.strip().startswith("session-")
        assert second.output == first.output

    def test_get_unknown_resource(self, cli_service):
        result = runner.invoke(app, ["session", "get", "Z"])
        assert result.exit_code == 1


class TestSessionRefresh:
    def test_refresh_missing(self, cli_service):
        result = runner.invoke(app, ["session", "refresh", "A"])
        assert result.exit_code == 0
        assert "No live session" in result.output

    def test_refresh_existing(self, cli_service):
        cli_service.get_or_create_session("A")
        result = runner.invoke(app, ["session", "refresh", "A"])
        assert result.exit_code == 0
        assert "Session refreshed" in result.output
