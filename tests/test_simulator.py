"""Tests for spine_lease.simulator.LifecycleSimulator."""

import random
from unittest.mock import MagicMock

import pytest

from spine_lease.models import LeaseStatus
from spine_lease.service import LeaseService
from spine_lease.simulator import CycleOutcome, LifecycleSimulator


def _no_sleep(seconds: float) -> None:
    return None


class TestRun:
    def test_all_cycles_succeed(self, service):
        service.initialize_resources()
        simulator = LifecycleSimulator(service, usage_ms=0, jitter_ms=(0, 0), sleep=_no_sleep)

        result = simulator.run(iterations=12, parallelism=4)

        assert result.total_operations == 12
        assert result.successful_operations == 12
        assert result.failed_operations == 0
        assert result.parallelism == 4
        assert result.min_operation_ms <= result.average_operation_ms <= result.max_operation_ms
        assert all(r.status == LeaseStatus.AVAILABLE for r in service.statuses())

    def test_empty_pool_times_out(self, service):
        simulator = LifecycleSimulator(service, allocate_timeout=0.02, sleep=_no_sleep)

        result = simulator.run(iterations=3, parallelism=3)

        assert result.successful_operations == 0
        assert result.timed_out_operations == 3
        assert result.failed_operations == 3
        assert result.operations_per_second == 0.0

    @pytest.mark.parametrize("iterations,parallelism", [(0, 1), (1, 0)])
    def test_invalid_arguments(self, service, iterations, parallelism):
        with pytest.raises(ValueError):
            LifecycleSimulator(service).run(iterations, parallelism)

    def test_to_dict(self, service):
        service.initialize_resources()
        result = LifecycleSimulator(service, usage_ms=0, jitter_ms=(0, 0)).run(1, 1)
        d = result.to_dict()
        assert d["successful_operations"] == 1
        assert "operations_per_second" in d


class TestSimulateOnce:
    def test_session_failure_still_releases(self, store, settings):
        service = LeaseService(store, settings, login=MagicMock(side_effect=RuntimeError("login refused")))
        service.initialize_resources()

        outcome, elapsed_ms = LifecycleSimulator(service, sleep=_no_sleep).simulate_once()

        assert outcome == CycleOutcome.FAILED
        assert elapsed_ms >= 0
        assert service.pool_summary().available == 3

    def test_usage_includes_jitter(self, service):
        service.initialize_resources()
        sleep = MagicMock()
        simulator = LifecycleSimulator(service, usage_ms=100, rng=random.Random(7), sleep=sleep)

        for _ in range(20):
            assert simulator.simulate_once()[0] == CycleOutcome.SUCCEEDED

        slept = [c.args[0] for c in sleep.call_args_list]
        assert len(slept) == 20
        assert all(0.05 <= s <= 0.25 for s in slept)
