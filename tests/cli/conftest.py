"""Fixtures for CLI tests: every command gets the same in-memory service."""

from __future__ import annotations

from unittest.mock import patch

import pytest


@pytest.fixture
def cli_service(service):
    with patch("spine_lease.cli.utils.build_service", return_value=service):
        yield service
