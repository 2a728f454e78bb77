"""CLI command for applying a restack request."""

import json
from pathlib import Path

import typer

from restack.exceptions import RestackError
from restack.stack.requests import RestackResponse
from restack.cli.utils import count_mutations, fail, open_service, preview_to_dict


def _echo_response(response: RestackResponse, show_json: bool) -> None:
    if show_json:
        typer.echo(json.dumps(response.to_wire(), indent=2))
        return

    if response.success:
        typer.echo(f"Created {len(response.new_commit_hashes)} commit(s):", err=True)
        for commit_hash in response.new_commit_hashes:
            typer.echo(f"  {commit_hash}")
        typer.echo(f"Backup branch: {response.backup_branch}", err=True)
        typer.echo(f"Drop it with: restack backups drop {response.backup_branch}", err=True)
    else:
        typer.echo(f"Error: {response.error}", err=True)


def apply_command(
    request_file: Path = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        help="JSON file: a list of hunk operations or a line-mode request",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show the plan and the resulting files without changing the repository",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt",
    ),
    show_json: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Print the result as JSON",
    ),
) -> None:
    """Rewrite the commit range according to a restack request.

    The whole range is rebuilt or, on any failure, the repository is
    restored to its previous HEAD and working tree.
    """
    try:
        payload = json.loads(request_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        fail(f"Could not read {request_file}: {e}")

    try:
        service = open_service()
        plan, base, previews = service.preview_restack(payload)
    except RestackError as e:
        if show_json:
            _echo_response(
                RestackResponse(success=False, error=str(e), phase=e.phase, rolled_back=e.rolled_back),
                show_json=True,
            )
            raise typer.Exit(1)
        fail(str(e))

    if dry_run and show_json:
        typer.echo(json.dumps(preview_to_dict(plan, base, previews), indent=2))
        raise typer.Exit(0)

    if not show_json:
        typer.echo(f"Restack plan on {base[:7]} ({len(plan.steps)} commit(s)):")
        for position, step in enumerate(plan.steps):
            added, deleted = count_mutations(plan, position)
            subject = step.message.split("\n")[0]
            typer.echo(
                f"  [{step.index}] {subject}  "
                f"(+{added} -{deleted} in {len(step.file_mutations)} file(s))"
            )
        for warning in plan.warnings:
            typer.echo(f"Warning: {warning}", err=True)

    if dry_run:
        typer.echo("")
        typer.echo("Dry run - no changes made to git state.", err=True)
        raise typer.Exit(0)

    if not yes:
        confirm = typer.prompt(
            "Rewrite history with this plan? [y/N]",
            default="n",
            show_default=False,
        )
        if confirm.lower() not in ("y", "yes"):
            typer.echo("Cancelled.", err=True)
            raise typer.Exit(0)

    response = service.apply_restack(payload)
    _echo_response(response, show_json)
    if not response.success:
        raise typer.Exit(1)
