"""
CLI: ``spine-lease worker`` — run orphan reclamation and load simulation.
"""

from __future__ import annotations

import signal
import threading

import typer

from spine_lease.cli.utils import console, output

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start() -> None:
    """Initialize the pool if needed and reclaim orphans until terminated.

    On SIGTERM/SIGINT the worker releases every lease held by this identity
    before exiting.

    Example::

        POD_NAME=lease-0 spine-lease worker start
    """
    from spine_lease.cli.utils import build_service

    service = build_service()
    stop = threading.Event()

    def _handle(signum, frame) -> None:
        stop.set()

    signal.signal(signal.SIGTERM, _handle)
    console.print(
        f"[bold green]Starting spine-lease worker[/bold green] "
        f"(identity={service.owner_id}, interval={service.settings.reclaim_interval_seconds}s)"
    )
    try:
        service.start()
        stop.wait()
    except KeyboardInterrupt:
        console.print("\n[yellow]Worker stopped by user[/yellow]")
    except Exception as exc:
        console.print(f"[red]Worker error: {exc}[/red]")
        raise typer.Exit(code=1)
    finally:
        service.stop()
        service.close()


@app.command("simulate")
def simulate(
    iterations: int = typer.Option(100, "--iterations", "-n", help="Lifecycles to run"),
    parallelism: int = typer.Option(10, "--parallelism", "-p", help="Concurrent lifecycles"),
    usage_ms: int = typer.Option(100, "--usage-ms", help="Simulated use time per lease"),
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Load-test the pool with allocate/session/use/release cycles."""
    from spine_lease.cli.utils import build_service
    from spine_lease.simulator import LifecycleSimulator

    service = build_service()
    try:
        result = LifecycleSimulator(service, usage_ms=usage_ms).run(iterations, parallelism)
        output(result, as_json=as_json, title="Simulation")
    finally:
        service.close()
