"""CLI commands for configuration management."""

import typer

from restack.config import (
    RestackConfig,
    get_global_config_file,
    get_repo_config_file,
    load_config,
    set_config_value,
)
from restack.exceptions import RestackError
from restack.git.gateway import GitGateway
from restack.git.exceptions import GitError
from restack.git.runner import get_repo_root
from restack.cli.utils import fail

# Subcommand group for configuration management
config_app = typer.Typer(
    name="config",
    help="Manage restack configuration (~/.restack/ and <git-dir>/restack/)",
    add_completion=False,
)


def _repo_git_dir():
    return GitGateway(get_repo_root()).git_dir()


@config_app.command("show")
def config_show() -> None:
    """Show the effective configuration and where it comes from."""
    try:
        try:
            git_dir = _repo_git_dir()
        except GitError:
            git_dir = None
        config = load_config(git_dir)
    except RestackError as e:
        fail(str(e))

    typer.echo("Current restack configuration:")
    typer.echo()
    for key, field in RestackConfig.model_fields.items():
        typer.echo(f"  {key}: {getattr(config, key)}  # {field.description}")

    typer.echo()
    typer.echo("  Sources:")
    global_file = get_global_config_file()
    typer.echo(f"    global: {global_file}{'' if global_file.exists() else ' (not found)'}")
    if git_dir is not None:
        repo_file = get_repo_config_file(git_dir)
        typer.echo(f"    repository: {repo_file}{'' if repo_file.exists() else ' (not found)'}")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name (e.g. context_lines)"),
    value: str = typer.Argument(..., help="New value"),
    use_global: bool = typer.Option(
        False,
        "--global",
        "-g",
        help="Write ~/.restack/config.yaml instead of the repository config",
    ),
) -> None:
    """Set one configuration value."""
    try:
        path = get_global_config_file() if use_global else get_repo_config_file(_repo_git_dir())
        config = set_config_value(path, key, value)
    except RestackError as e:
        fail(str(e))

    typer.echo(f"✓ {key} set to {getattr(config, key)} in {path}")
