"""Shared utility functions for CLI commands."""

from typing import Any, NoReturn, Optional

import typer

from restack.config import RestackConfig, load_config
from restack.diff.models import FileChange, StackCommit
from restack.git.gateway import GitGateway
from restack.git.runner import decode_output, get_repo_root
from restack.stack.patch import MutationType
from restack.stack.planner import RestackPlan
from restack.stack.service import RestackService


def open_service(config: Optional[RestackConfig] = None) -> RestackService:
    """Build a RestackService for the repository containing the cwd.

    Raises:
        GitError: If not in a git repository.
        ConfigError: If the configuration is invalid.
    """
    gateway = GitGateway(get_repo_root())
    if config is None:
        config = load_config(gateway.git_dir())
    gateway.timeout = config.git_timeout
    return RestackService(gateway, config)


def fail(message: str) -> NoReturn:
    """Print an error to stderr and exit with status 1."""
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def file_change_to_dict(file_change: FileChange) -> dict[str, Any]:
    """Serialize a FileChange with camelCase keys."""
    data: dict[str, Any] = {
        "id": file_change.id,
        "fileName": file_change.file_name,
        "changeType": file_change.change_type.value,
        "isBinary": file_change.is_binary,
        "hunks": [
            {
                "id": hunk.id,
                "fileId": hunk.file_id,
                "oldStart": hunk.old_start,
                "oldLines": hunk.old_lines,
                "newStart": hunk.new_start,
                "newLines": hunk.new_lines,
                "header": hunk.header,
                "content": hunk.content,
            }
            for hunk in file_change.hunks
        ],
    }
    if file_change.old_path:
        data["oldPath"] = file_change.old_path
    return data


def stack_commit_to_dict(stack_commit: StackCommit) -> dict[str, Any]:
    """Serialize a StackCommit with camelCase keys."""
    commit = stack_commit.commit
    return {
        "hash": commit.hash,
        "author": commit.author,
        "date": commit.date,
        "message": commit.message,
        "filesChanged": list(commit.files_changed),
        "changes": [file_change_to_dict(fc) for fc in stack_commit.changes],
    }


def count_mutations(plan: RestackPlan, step_index: int) -> tuple[int, int]:
    """Count (added, deleted) lines of one plan step."""
    added = deleted = 0
    for file_mutation in plan.steps[step_index].file_mutations.values():
        for mutation in file_mutation.mutations:
            if mutation.type == MutationType.ADD:
                added += 1
            else:
                deleted += 1
    return added, deleted


def preview_to_dict(plan: RestackPlan, base: str, previews: list) -> dict[str, Any]:
    """Serialize a dry-run preview with camelCase keys."""
    return {
        "base": base,
        "warnings": list(plan.warnings),
        "commits": [
            {
                "index": step.index,
                "message": step.message,
                "unitIds": list(step.unit_ids),
                "files": {
                    name: None if content is None else decode_output(content)
                    for name, content in contents.items()
                },
            }
            for step, contents in zip(plan.steps, previews)
        ],
    }
