"""
CLI: ``spine-lease session`` — inspect and renew resource sessions.
"""

from __future__ import annotations

import typer

from spine_lease.cli.utils import console, fail

app = typer.Typer(no_args_is_help=True)


@app.command("get")
def get(resource_id: str = typer.Argument(..., help="Resource id")) -> None:
    """Print the session token for a resource, logging in if there is none."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        console.print(service.get_or_create_session(resource_id))
    except Exception as exc:
        fail(exc)
    finally:
        service.close()


@app.command("refresh")
def refresh(resource_id: str = typer.Argument(..., help="Resource id")) -> None:
    """Extend an existing session's TTL; never creates one."""
    from spine_lease.cli.utils import build_service

    service = build_service()
    try:
        if service.refresh_session_ttl(resource_id):
            console.print(f"[green]Session refreshed[/green] for {resource_id}")
        else:
            console.print(f"[yellow]No live session[/yellow] for {resource_id}")
    except Exception as exc:
        fail(exc)
    finally:
        service.close()
