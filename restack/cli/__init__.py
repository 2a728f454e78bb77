"""CLI entry point for restack.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from restack.cli.apply import apply_command
from restack.cli.backups import backups_app
from restack.cli.config import config_app
from restack.cli.history import log_command, show_command, units_command
from restack.cli.main import main_command
from restack.cli.utils import open_service

# Main application
app = typer.Typer(
    name="restack",
    help="restack: reassign the changes of a commit range into a new commit stack",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(backups_app, name="backups")
app.add_typer(config_app, name="config")

# Add individual commands
app.command("log")(log_command)
app.command("units")(units_command)
app.command("show")(show_command)
app.command("apply")(apply_command)

# Global flags (--verbose, --debug, --version)
app.callback(invoke_without_command=True)(main_command)


__all__ = [
    "app",
    "backups_app",
    "config_app",
    "apply_command",
    "log_command",
    "main_command",
    "show_command",
    "units_command",
    "open_service",
]
