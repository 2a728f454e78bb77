"""Commit history retrieval for restack.

Contains:
- list_commits: Fetch a commit range with parsed diffs
- get_file_at_commit: Fetch a file as of a commit, falling back to its parent
- fetch_stack_commit: Fetch and parse one commit
- fetch_stack_commits: Fetch several commits in parallel

All functions here are read-only and safe to run concurrently.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import Optional

from restack.diff.models import CommitRef, StackCommit
from restack.diff.parser import parse_unified_diff
from restack.git.exceptions import GitError
from restack.git.gateway import RepositoryGateway
from restack.git.runner import decode_output
from restack.stack.requests import FileContent

LOG = logging.getLogger(__name__)


def fetch_stack_commit(
    gateway: RepositoryGateway, commit: CommitRef, context_lines: int = 3
) -> StackCommit:
    """Fetch the changed files and parsed diff of one commit."""
    files_changed = gateway.files_changed(commit.hash)
    warnings: list[str] = []
    changes = parse_unified_diff(gateway.commit_diff(commit.hash, context_lines), warnings)
    for warning in warnings:
        LOG.warning("%s: %s", commit.short_hash, warning)
    return StackCommit(commit=replace(commit, files_changed=tuple(files_changed)), changes=changes)


def list_commits(
    gateway: RepositoryGateway,
    base: Optional[str] = None,
    head: str = "HEAD",
    default_commits: int = 5,
    context_lines: int = 3,
    max_workers: int = 4,
) -> list[StackCommit]:
    """List the commits of a range with their parsed diffs.

    Args:
        gateway: Repository gateway
        base: Base ref; the range is merge-base(base, head)..head. When
            omitted, the last ``default_commits`` commits of head are used.
        head: Head ref of the range
        default_commits: Number of commits listed when base is omitted
        context_lines: Unified diff context lines
        max_workers: Threads used to fetch diffs

    Returns:
        StackCommit objects in chronological order (oldest first)
    """
    if base:
        base_hash = gateway.merge_base(base, head)
        commits = gateway.log(f"{base_hash}..{head}")
    else:
        commits = gateway.log(head, max_count=default_commits)

    if not commits:
        LOG.warning("No commits found")
        return []

    commits.reverse()
    return fetch_stack_commits(gateway, commits, context_lines, max_workers)


def fetch_stack_commits(
    gateway: RepositoryGateway,
    commits: list[CommitRef],
    context_lines: int = 3,
    max_workers: int = 4,
) -> list[StackCommit]:
    """Fetch several commits in parallel, preserving their order."""
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as pool:
        stack = list(pool.map(lambda c: fetch_stack_commit(gateway, c, context_lines), commits))

    LOG.debug("Fetched %d commits", len(stack))
    return stack


def get_file_at_commit(gateway: RepositoryGateway, commit_hash: str, path: str) -> FileContent:
    """Fetch a file's content at a commit.

    When the commit deleted the file, the parent's content is returned and
    ``deleted_in_commit`` is set.

    Raises:
        GitError: If the file exists neither at the commit nor its parent
    """
    data = gateway.file_at(commit_hash, path)
    if data is not None:
        return FileContent(content=decode_output(data))

    parent = gateway.parent_of(commit_hash)
    if parent is not None:
        data = gateway.file_at(parent, path)
        if data is not None:
            return FileContent(content=decode_output(data), deleted_in_commit=True)

    raise GitError(f"File {path} not found at {commit_hash[:7]} or its parent")
