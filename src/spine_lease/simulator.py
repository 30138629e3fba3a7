"""Lifecycle simulator for load-testing a lease pool.

Drives ``allocate → get_or_create_session → simulated use → release``
cycles through a :class:`~spine_lease.service.LeaseService` with bounded
parallelism and reports throughput and latency. Each cycle always releases
what it allocated, even when the session step fails.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from spine_lease.core.logging import get_logger
from spine_lease.service import LeaseService

logger = get_logger(__name__)


class CycleOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class SimulationResult:
    """Aggregate statistics of a simulation run."""

    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    timed_out_operations: int = 0
    total_duration_ms: float = 0.0
    average_operation_ms: float = 0.0
    min_operation_ms: float = 0.0
    max_operation_ms: float = 0.0
    operations_per_second: float = 0.0
    parallelism: int = 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class LifecycleSimulator:
    """Runs allocate/session/use/release cycles against a service.

    Example:
        >>> simulator = LifecycleSimulator(service, usage_ms=100)
        >>> result = simulator.run(iterations=100, parallelism=10)
        >>> result.successful_operations
        100
    """

    def __init__(
        self,
        service: LeaseService,
        *,
        usage_ms: int = 100,
        jitter_ms: tuple[int, int] = (-50, 150),
        allocate_timeout: float | None = None,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.service = service
        self.usage_ms = usage_ms
        self.jitter_ms = jitter_ms
        self.allocate_timeout = allocate_timeout
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()
        self._sleep = sleep

    def _usage_seconds(self) -> float:
        with self._rng_lock:
            jitter = self._rng.randint(*self.jitter_ms) if self.jitter_ms != (0, 0) else 0
        return max(0, self.usage_ms + jitter) / 1000.0

    def simulate_once(self) -> tuple[CycleOutcome, float]:
        """Run one lifecycle; returns its outcome and duration in milliseconds."""
        started = time.perf_counter()
        resource_id = ""
        outcome = CycleOutcome.FAILED
        try:
            info = self.service.allocate(self.allocate_timeout)
            if info is None:
                logger.warning("simulation_no_resource_available")
                outcome = CycleOutcome.TIMED_OUT
            else:
                resource_id = info.id
                self.service.get_or_create_session(resource_id)
                self._sleep(self._usage_seconds())
                outcome = CycleOutcome.SUCCEEDED
        except Exception as e:
            logger.error("simulation_cycle_failed", resource_id=resource_id or None, error=str(e))
        finally:
            if resource_id:
                self.service.release(resource_id)
        return outcome, (time.perf_counter() - started) * 1000.0

    def run(self, iterations: int = 100, parallelism: int = 10) -> SimulationResult:
        """Run ``iterations`` cycles with at most ``parallelism`` in flight."""
        if iterations <= 0 or parallelism <= 0:
            raise ValueError("iterations and parallelism must be positive")

        logger.info("simulation_started", iterations=iterations, parallelism=parallelism)
        started = time.perf_counter()
        with ThreadPoolExecutor(max_workers=parallelism, thread_name_prefix="lease-sim") as pool:
            outcomes = list(pool.map(lambda _: self.simulate_once(), range(iterations)))
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        durations = [ms for _, ms in outcomes]
        succeeded = sum(1 for o, _ in outcomes if o == CycleOutcome.SUCCEEDED)
        timed_out = sum(1 for o, _ in outcomes if o == CycleOutcome.TIMED_OUT)
        result = SimulationResult(
            total_operations=len(outcomes),
            successful_operations=succeeded,
            failed_operations=len(outcomes) - succeeded,
            timed_out_operations=timed_out,
            total_duration_ms=elapsed_ms,
            average_operation_ms=sum(durations) / len(durations),
            min_operation_ms=min(durations),
            max_operation_ms=max(durations),
            operations_per_second=succeeded / (elapsed_ms / 1000.0) if elapsed_ms > 0 else 0.0,
            parallelism=parallelism,
        )
        logger.info(
            "simulation_finished",
            successful=result.successful_operations,
            failed=result.failed_operations,
            duration_ms=round(result.total_duration_ms, 1),
            ops_per_second=round(result.operations_per_second, 2),
        )
        return result


__all__ = ["CycleOutcome", "LifecycleSimulator", "SimulationResult"]
