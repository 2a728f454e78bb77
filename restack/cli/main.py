"""Main CLI callback: global flags."""

from typing import Optional

import typer

from restack import __version__
from restack.logging_utils import configure_logging


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"restack {__version__}")
        raise typer.Exit(0)


def main_command(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log restack progress (INFO level)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Log every git invocation and plan step (DEBUG level)",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show the restack version and exit",
    ),
) -> None:
    """Reassign the changes of a commit range into a new commit stack."""
    configure_logging(verbose=verbose, debug=debug)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
