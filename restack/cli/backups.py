"""CLI commands for managing backup branches left by successful restacks."""

import typer

from restack.exceptions import RestackError
from restack.session import clear_session, load_session
from restack.cli.utils import fail, open_service

# Subcommand group for backup branches
backups_app = typer.Typer(
    name="backups",
    help="List or drop the backup branches restack keeps after a rewrite",
    add_completion=False,
)


@backups_app.command("list")
def backups_list() -> None:
    """List backup branches."""
    try:
        service = open_service()
        branches = service.gateway.list_branches(f"{service.config.backup_prefix}-*")
        session = load_session(service.gateway.git_dir())
    except RestackError as e:
        fail(str(e))

    if not branches:
        typer.echo("No backup branches.")
        return

    for branch in branches:
        if session is not None and session.backup_branch == branch:
            typer.echo(f"  {branch}  (last restack, {session.created_at})")
        else:
            typer.echo(f"  {branch}")


@backups_app.command("drop")
def backups_drop(
    name: str = typer.Argument(..., help="Backup branch to delete"),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt",
    ),
) -> None:
    """Delete a backup branch."""
    try:
        service = open_service()
        gateway = service.gateway
        if name not in gateway.list_branches(name):
            fail(f"No such branch: {name}")

        if not name.startswith(f"{service.config.backup_prefix}-"):
            typer.echo(f"Warning: {name} does not look like a restack backup branch", err=True)

        if not yes and not typer.confirm(f"Delete branch {name}?", default=False):
            typer.echo("Cancelled.", err=True)
            raise typer.Exit(0)

        gateway.delete_branch(name)
        git_dir = gateway.git_dir()
        session = load_session(git_dir)
        if session is not None and session.backup_branch == name:
            clear_session(git_dir)
    except RestackError as e:
        fail(str(e))

    typer.echo(f"✓ Deleted {name}")
