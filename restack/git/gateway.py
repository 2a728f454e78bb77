"""Repository gateway: the only way restack touches version-control state.

Contains:
- RepositoryGateway: Abstract seam over the repository
- GitGateway: RepositoryGateway implemented over the git CLI
- parse_log_output: Parse ``hash|parents|author|date|subject`` log lines

Each gateway method corresponds to a single git invocation (``commit``
additionally reads back the new HEAD). Multi-step logic lives in the
executor, which is what lets tests swap in an in-memory gateway.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from restack.diff.models import CommitRef
from restack.git.exceptions import GitError
from restack.git.runner import DEFAULT_TIMEOUT, decode_output, encode_content, run_git, run_git_text

LOG = logging.getLogger(__name__)

LOG_FORMAT = "%H|%P|%an|%ad|%s"

# stderr fragments git prints when a path is missing at a revision
_MISSING_PATH_MARKERS = ("does not exist in", "exists on disk, but not in")

# Print non-ASCII paths verbatim instead of as quoted octal escapes
_UNQUOTED_PATHS = ["-c", "core.quotepath=false"]


def parse_log_output(output: str) -> list[CommitRef]:
    """Parse ``git log --pretty=format:%H|%P|%an|%ad|%s`` output.

    Args:
        output: Raw log output, one commit per line.

    Returns:
        List of CommitRef objects in log order (newest first).
    """
    commits: list[CommitRef] = []
    for line in output.split("\n"):
        if not line.strip():
            continue
        parts = line.split("|", 4)
        if len(parts) < 5:
            LOG.debug("Skipping unrecognized log line: %r", line)
            continue
        commit_hash, parents, author, date, message = parts
        commits.append(
            CommitRef(
                hash=commit_hash,
                author=author,
                date=date,
                message=message,
                parents=tuple(parents.split()),
            )
        )
    return commits


class RepositoryGateway(ABC):
    """Abstract seam over one repository's working tree, index and refs."""

    # Mutating operations

    @abstractmethod
    def head(self) -> str:
        """Return the full hash of HEAD."""

    @abstractmethod
    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        """Create a branch at start_point (HEAD when omitted)."""

    @abstractmethod
    def delete_branch(self, name: str) -> None:
        """Force-delete a branch."""

    @abstractmethod
    def reset_hard(self, ref: str) -> None:
        """Reset HEAD, index and working tree to ref."""

    @abstractmethod
    def file_at(self, ref: str, path: str) -> Optional[bytes]:
        """Return the content of path at ref, or None if it does not exist there."""

    @abstractmethod
    def write_working_file(self, path: str, data: bytes) -> None:
        """Write data to path in the working tree."""

    @abstractmethod
    def remove_working_file(self, path: str) -> None:
        """Remove path from the working tree."""

    @abstractmethod
    def stage_all(self) -> None:
        """Stage every working tree change, including removals."""

    @abstractmethod
    def commit(self, message: str) -> str:
        """Commit the index and return the new commit hash."""

    @abstractmethod
    def is_clean(self) -> bool:
        """Return True when there are no staged, unstaged or untracked changes."""

    @abstractmethod
    def current_branch_name(self) -> Optional[str]:
        """Return the checked-out branch, or None when HEAD is detached."""

    # Read-only operations

    @abstractmethod
    def rev_parse(self, ref: str) -> str:
        """Resolve ref to a full commit hash."""

    @abstractmethod
    def merge_base(self, a: str, b: str) -> str:
        """Return the best common ancestor of a and b."""

    @abstractmethod
    def log(self, rev_range: str, max_count: Optional[int] = None) -> list[CommitRef]:
        """List commits of rev_range, newest first."""

    @abstractmethod
    def commit_diff(self, commit_hash: str, context_lines: int = 3) -> str:
        """Return the unified diff of a commit against its parent."""

    @abstractmethod
    def files_changed(self, commit_hash: str) -> list[str]:
        """Return the paths a commit touched."""

    @abstractmethod
    def parent_of(self, commit_hash: str) -> Optional[str]:
        """Return the first parent of a commit, or None for a root commit."""

    @abstractmethod
    def full_message(self, ref: str) -> str:
        """Return the full commit message of ref."""

    @abstractmethod
    def list_branches(self, pattern: str) -> list[str]:
        """Return local branch names matching a glob pattern."""

    @abstractmethod
    def git_dir(self) -> Path:
        """Return the absolute path of the repository's git directory."""


class GitGateway(RepositoryGateway):
    """RepositoryGateway backed by the git command line."""

    def __init__(self, repo_root: Path, timeout: Optional[float] = DEFAULT_TIMEOUT):
        self.repo_root = Path(repo_root)
        self.timeout = timeout

    def _git(self, args: list[str]) -> str:
        return run_git_text(args, cwd=self.repo_root, timeout=self.timeout)

    def _git_raw(self, args: list[str]) -> bytes:
        return run_git(args, cwd=self.repo_root, timeout=self.timeout)

    def head(self) -> str:
        return self._git(["rev-parse", "HEAD"])

    def create_branch(self, name: str, start_point: Optional[str] = None) -> None:
        args = ["branch", name]
        if start_point:
            args.append(start_point)
        self._git(args)

    def delete_branch(self, name: str) -> None:
        self._git(["branch", "-D", name])

    def reset_hard(self, ref: str) -> None:
        self._git(["reset", "--hard", "-q", ref])

    def file_at(self, ref: str, path: str) -> Optional[bytes]:
        try:
            return self._git_raw(["show", f"{ref}:{path}"])
        except GitError as e:
            if any(marker in e.message for marker in _MISSING_PATH_MARKERS):
                return None
            raise

    def write_working_file(self, path: str, data: bytes) -> None:
        target = self.repo_root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def remove_working_file(self, path: str) -> None:
        (self.repo_root / path).unlink(missing_ok=True)

    def stage_all(self) -> None:
        self._git(["add", "-A"])

    def commit(self, message: str) -> str:
        self._run_with_stdin(["commit", "-q", "-F", "-"], encode_content(message))
        return self.head()

    def _run_with_stdin(self, args: list[str], data: bytes) -> bytes:
        return run_git(args, cwd=self.repo_root, timeout=self.timeout, input_data=data)

    def is_clean(self) -> bool:
        return self._git(["status", "--porcelain"]) == ""

    def current_branch_name(self) -> Optional[str]:
        branch = self._git(["branch", "--show-current"])
        return branch or None

    def rev_parse(self, ref: str) -> str:
        return self._git(["rev-parse", "--verify", f"{ref}^{{commit}}"])

    def merge_base(self, a: str, b: str) -> str:
        return self._git(["merge-base", a, b])

    def log(self, rev_range: str, max_count: Optional[int] = None) -> list[CommitRef]:
        args = ["log", f"--pretty=format:{LOG_FORMAT}", "--date=short"]
        if max_count is not None:
            args.append(f"-n{max_count}")
        args.append(rev_range)
        return parse_log_output(self._git(args))

    def commit_diff(self, commit_hash: str, context_lines: int = 3) -> str:
        # Not stripped: trailing context lines may end in whitespace
        return decode_output(
            self._git_raw(
                _UNQUOTED_PATHS
                + ["show", commit_hash, f"--unified={context_lines}", "--format=", "--no-color"]
            )
        )

    def files_changed(self, commit_hash: str) -> list[str]:
        output = self._git(
            _UNQUOTED_PATHS
            + ["diff-tree", "--no-commit-id", "--name-only", "-r", "--root", commit_hash]
        )
        return [f for f in output.split("\n") if f]

    def parent_of(self, commit_hash: str) -> Optional[str]:
        try:
            return self._git(["rev-parse", "--verify", "-q", f"{commit_hash}^"])
        except GitError:
            # Root commit
            return None

    def full_message(self, ref: str) -> str:
        return self._git(["log", "-1", "--pretty=%B", ref])

    def list_branches(self, pattern: str) -> list[str]:
        output = self._git(["branch", "--list", pattern, "--format=%(refname:short)"])
        return [b for b in output.split("\n") if b]

    def git_dir(self) -> Path:
        return Path(self._git(["rev-parse", "--absolute-git-dir"]))
