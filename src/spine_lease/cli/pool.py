"""
CLI: ``spine-lease pool`` — seed, grow, inspect and repair the shared pool.
"""

from __future__ import annotations

import typer

from spine_lease.cli.utils import console, fail, output

app = typer.Typer(no_args_is_help=True)


@app.command("init")
def init(
    force: bool = typer.Option(False, "--force", "-f", help="Run even if the store looks initialized"),
) -> None:
    """Create lease records for the initial resource set.

    Safe to repeat: existing records are never touched.

    Example::

        spine-lease pool init
    """
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        if not force and service.is_initialized():
            console.print("[yellow]Store already initialized; use --force to re-run[/yellow]")
            return
        created = service.initialize_resources()
        console.print(f"[green]Initialized pool[/green] ({created} new records)")
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("add")
def add(
    start_index: int = typer.Argument(..., help="1-based position of the first record to add"),
    count: int = typer.Argument(..., help="Number of records to add"),
) -> None:
    """Register additional configured resources without disturbing live leases.

    Example::

        spine-lease pool add 51 10
    """
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        created = service.add_resources(start_index, count)
        console.print(f"[green]Added {created} resources[/green] starting at position {start_index}")
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("allocate")
def allocate(
    timeout: float = typer.Option(5.0, "--timeout", "-t", help="Seconds to wait for a free resource"),
) -> None:
    """Lease one resource to this identity (for diagnostics)."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        info = service.allocate(timeout)
        if info is None:
            console.print(f"[yellow]No resource available within {timeout}s[/yellow]")
            raise typer.Exit(code=2)
        output(
            {"id": info.id, "address": info.address, "port": info.port, "group": info.group},
            title=f"Allocated to {service.owner_id}",
        )
    except typer.Exit:
        raise
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("release")
def release(resource_id: str = typer.Argument(..., help="Resource id to release")) -> None:
    """Return a resource to the pool."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        if not service.release(resource_id):
            console.print(f"[yellow]No lease record for {resource_id}[/yellow]")
            raise typer.Exit(code=1)
        console.print(f"[green]Released[/green] {resource_id}")
    except typer.Exit:
        raise
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("touch")
def touch(resource_id: str = typer.Argument(..., help="Resource id to keep alive")) -> None:
    """Refresh a lease's activity timestamp."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        if not service.touch(resource_id):
            console.print(f"[yellow]No lease record for {resource_id}[/yellow]")
            raise typer.Exit(code=1)
        console.print(f"[green]Touched[/green] {resource_id}")
    except typer.Exit:
        raise
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("reclaim")
def reclaim() -> None:
    """Run one orphan reclamation pass now."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        reclaimed = service.reclaim_orphans()
        console.print(f"[green]Reclaimed {reclaimed} orphaned resources[/green]")
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("status")
def status(
    as_json: bool = typer.Option(False, "--json", help="Output JSON"),
    summary: bool = typer.Option(False, "--summary", "-s", help="Counts only"),
) -> None:
    """Show every lease record, or pool counts with ``--summary``."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        if summary:
            output(service.pool_summary(), as_json=as_json, title="Pool")
        else:
            output(service.statuses(), as_json=as_json, title="Leases")
    except Exception as exc:
        fail(exc)
    finally:
        service.close()

