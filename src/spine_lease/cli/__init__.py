"""
CLI layer for spine-lease.

Operator commands over :class:`~spine_lease.service.LeaseService`: seed and
grow the pool, inspect lease state, force a reclaim pass, run the background
worker and load-test with the lifecycle simulator. All lease logic lives in
the service; this package handles argument parsing and output only.

Entry point::

    spine-lease --help
"""

from spine_lease.cli.app import app

__all__ = ["app"]
