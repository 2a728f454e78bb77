"""CLI commands for inspecting the commit range: log, units and show."""

import json
from typing import Optional

import typer

from restack.exceptions import RestackError
from restack.stack.history import fetch_stack_commit
from restack.stack.patch import MutationType
from restack.stack.units import hunk_units, line_units
from restack.cli.utils import fail, open_service, stack_commit_to_dict


def log_command(
    base: Optional[str] = typer.Option(
        None,
        "--base",
        "-b",
        help="Base branch; lists merge-base(BASE, HEAD)..HEAD instead of the last commits",
    ),
    head: str = typer.Option(
        "HEAD",
        "--head",
        help="Head of the listed range",
    ),
    show_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Print commits and parsed diffs as JSON",
    ),
) -> None:
    """List commits of the range, oldest first, with the files they change."""
    try:
        service = open_service()
        commits = service.list_commits(base=base, head=head)
    except RestackError as e:
        fail(str(e))

    if show_json:
        typer.echo(json.dumps([stack_commit_to_dict(c) for c in commits], indent=2))
        return

    if not commits:
        typer.echo("No commits found.", err=True)
        return

    for stack_commit in commits:
        commit = stack_commit.commit
        typer.echo(f"{commit.short_hash} {commit.date} {commit.author}: {commit.message}")
        for file_change in stack_commit.changes:
            kind = "binary" if file_change.is_binary else f"{len(file_change.hunks)} hunk(s)"
            typer.echo(
                f"    [{file_change.id}] {file_change.change_type.value:<8} "
                f"{file_change.file_name} ({kind})"
            )


def units_command(
    commit: str = typer.Argument(..., help="Commit to project into units"),
    lines: bool = typer.Option(
        False,
        "--lines",
        "-l",
        help="Show one unit per added/removed line instead of per hunk",
    ),
) -> None:
    """Show the selectable units of one commit and their IDs."""
    try:
        service = open_service()
        gateway = service.gateway
        refs = gateway.log(gateway.rev_parse(commit), max_count=1)
        if not refs:
            fail(f"Commit not found: {commit}")
        stack_commit = fetch_stack_commit(gateway, refs[0], service.config.context_lines)
    except RestackError as e:
        fail(str(e))

    project = line_units if lines else hunk_units
    units = project(stack_commit.commit.hash, stack_commit.changes)
    if not units:
        typer.echo("No selectable units in this commit.", err=True)
        return

    for unit in units:
        typer.echo(f"{unit.id}  {unit.file_name}")
        for mutation in unit.mutations:
            prefix = "+" if mutation.type == MutationType.ADD else "-"
            typer.echo(f"    {prefix}{mutation.content}")


def show_command(
    commit: str = typer.Argument(..., help="Commit to read the file at"),
    path: str = typer.Argument(..., help="Path of the file, relative to the repository root"),
) -> None:
    """Print a file as of a commit (its last content when the commit deleted it)."""
    try:
        service = open_service()
        file_content = service.get_file_at_commit(service.gateway.rev_parse(commit), path)
    except RestackError as e:
        fail(str(e))

    if file_content.deleted_in_commit:
        typer.echo(f"({path} was deleted in {commit}; showing its previous content)", err=True)
    typer.echo(file_content.content, nl=False)
