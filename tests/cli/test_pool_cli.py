"""Tests for ``spine-lease pool`` CLI commands."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from spine_lease.cli.app import app
from spine_lease.core.errors import StoreUnavailableError
from spine_lease.models import LeaseStatus

runner = CliRunner()


class TestPoolInit:
    def test_init(self, cli_service):
        result = runner.invoke(app, ["pool", "init"])
        assert result.exit_code == 0
        assert "3 new records" in result.output
        assert cli_service.is_initialized()

    def test_init_twice_needs_force(self, cli_service):
        runner.invoke(app, ["pool", "init"])

        result = runner.invoke(app, ["pool", "init"])
        assert result.exit_code == 0
        assert "already initialized" in result.output

        result = runner.invoke(app, ["pool", "init", "--force"])
        assert result.exit_code == 0
        assert "0 new records" in result.output


class TestPoolAdd:
    def test_add(self, cli_service):
        result = runner.invoke(app, ["pool", "add", "2", "2"])
        assert result.exit_code == 0
        assert "Added 2 resources" in result.output
        assert [r.resource_id for r in cli_service.statuses()] == ["B", "C"]

    def test_add_invalid_position(self, cli_service):
        result = runner.invoke(app, ["pool", "add", "0", "2"])
        assert result.exit_code == 1


class TestPoolAllocateRelease:
    def test_allocate_hides_password(self, cli_service):
        cli_service.initialize_resources()

        result = runner.invoke(app, ["pool", "allocate", "--timeout", "0.1"])
        assert result.exit_code == 0
        assert "10.0.0.1" in result.output
        assert "pw-a" not in result.output
        assert cli_service.registry.get("A").status == LeaseStatus.IN_USE

    def test_allocate_empty_pool(self, cli_service):
        result = runner.invoke(app, ["pool", "allocate", "--timeout", "0.05"])
        assert result.exit_code == 2
        assert "No resource available" in result.output

    def test_release(self, cli_service):
        cli_service.initialize_resources()
        cli_service.allocate()

        result = runner.invoke(app, ["pool", "release", "A"])
        assert result.exit_code == 0
        assert cli_service.registry.get("A").status == LeaseStatus.AVAILABLE

    def test_release_unknown_id(self, cli_service):
        cli_service.initialize_resources()

        result = runner.invoke(app, ["pool", "release", "typo-id"])
        assert result.exit_code == 1
        assert "No lease record" in result.output
        assert cli_service.pool_summary().total == 3

    def test_touch_unknown(self, cli_service):
        result = runner.invoke(app, ["pool", "touch", "ghost"])
        assert result.exit_code == 1
        assert "No lease record" in result.output

    def test_touch(self, cli_service):
        cli_service.initialize_resources()
        result = runner.invoke(app, ["pool", "touch", "A"])
        assert result.exit_code == 0

    def test_store_error_exits_1(self):
        service = MagicMock()
        service.allocate.side_effect = StoreUnavailableError("connection refused")
        with patch("spine_lease.cli.utils.build_service", return_value=service):
            result = runner.invoke(app, ["pool", "allocate"])
        assert result.exit_code == 1
        service.close.assert_called_once()


class TestPoolInspection:
    def test_status_json(self, cli_service):
        cli_service.initialize_resources()
        cli_service.allocate()

        result = runner.invoke(app, ["pool", "status", "--json"])
        assert result.exit_code == 0
        rows = json.loads(result.output)
        assert [r["resource_id"] for r in rows] == ["A", "B", "C"]
        assert rows[0]["status"] == "in_use"
        assert rows[0]["owner_id"] == "pod-a"

    def test_status_empty(self, cli_service):
        result = runner.invoke(app, ["pool", "status"])
        assert result.exit_code == 0
        assert "No items" in result.output

    def test_summary(self, cli_service):
        cli_service.initialize_resources()
        result = runner.invoke(app, ["pool", "status", "--summary", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output) == {"total": 3, "available": 3, "in_use": 0, "queued": 3}

    def test_reclaim(self, cli_service):
        result = runner.invoke(app, ["pool", "reclaim"])
        assert result.exit_code == 0
        assert "Reclaimed 0" in result.output

