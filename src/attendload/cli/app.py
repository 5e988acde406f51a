"""Main Typer application: entry point for the ``attendload`` CLI."""

from __future__ import annotations

import typer

from attendload import __version__
from attendload.cli.run import run_cmd

app = typer.Typer(
    name="attendload",
    help="Load driver for the attendance-management API.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("run", help="Log in once, then drive the attendance journey with virtual users.")(
    run_cmd
)


def _version_callback(value: bool) -> None:
    """Print version and exit.

    Args:
        value: True if --version was passed.
    """
    if value:
        typer.echo(f"attendload {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """attendload: load driver for the attendance-management API."""
