"""
Root Typer application for the spine-lease CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="spine-lease",
    help="spine-lease — shared terminal pool with exclusive leases.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("spine-lease")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"spine-lease {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """spine-lease CLI — manage the pool, sessions and the reclaim worker."""


from spine_lease.cli.pool import app as pool_app  # noqa: E402
from spine_lease.cli.session import app as session_app  # noqa: E402
from spine_lease.cli.worker import app as worker_app  # noqa: E402

app.add_typer(pool_app, name="pool", help="Pool seeding, inspection and repair.")
app.add_typer(session_app, name="session", help="Resource sessions.")
app.add_typer(worker_app, name="worker", help="Reclaim worker and load simulation.")
