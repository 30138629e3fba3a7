"""
CLI utility helpers — service construction and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from spine_lease.core.errors import LeaseError
from spine_lease.core.logging import configure_from_settings
from spine_lease.core.settings import get_settings
from spine_lease.service import LeaseService

console = Console()
err_console = Console(stderr=True)


# ── Service helper ───────────────────────────────────────────────────────


def build_service() -> LeaseService:
    """Configure logging and build a Redis-backed service from ``LEASE_*`` settings."""
    settings = get_settings()
    configure_from_settings(settings)
    return LeaseService.from_settings(settings)


def fail(error: Exception) -> None:
    """Print an error and exit with status 1."""
    if isinstance(error, LeaseError):
        err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    else:
        err_console.print(f"[bold red]Error[/bold red]: {error}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / namedtuple / dict to a plain dict of printable values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        data = asdict(obj)
    elif hasattr(obj, "_asdict"):
        data = obj._asdict()
    elif isinstance(obj, dict):
        data = obj
    else:
        return {"value": str(obj)}
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in data.items()}


def output(data: Any, *, as_json: bool = False, title: str = "") -> None:
    """Render a record, a list of records, or a dict."""
    if as_json:
        payload = [_to_dict(d) for d in data] if isinstance(data, list) else _to_dict(data)
        console.print_json(json.dumps(payload, default=str))
        return

    if isinstance(data, list):
        if not data:
            console.print("[dim]No items.[/dim]")
            return
        _print_table(data, title=title)
    else:
        _print_dict(_to_dict(data), title=title)


def _print_table(items: list, *, title: str = "") -> None:
    first = _to_dict(items[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in first:
        table.add_column(col, overflow="fold")
    for item in items:
        d = _to_dict(item)
        table.add_row(*(str(v) for v in d.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
