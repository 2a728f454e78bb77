"""Git command runner and repository utilities.

Contains:
- run_git: Run a git command and return its raw output
- run_git_text: Run a git command and return its decoded output
- decode_output / encode_content: Lossless bytes <-> str conversion
- get_repo_root: Get the root directory of the current git repository
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from restack.git.exceptions import GitError

LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


def decode_output(data: bytes) -> str:
    """Decode git output without losing undecodable bytes."""
    return data.decode("utf-8", errors="surrogateescape")


def encode_content(text: str) -> bytes:
    """Inverse of decode_output."""
    return text.encode("utf-8", errors="surrogateescape")


def run_git(
    args: list[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    input_data: Optional[bytes] = None,
) -> bytes:
    """Run a git command and return its stdout as bytes.

    Args:
        args: List of arguments to pass to git.
        cwd: Directory to run git in (defaults to the process cwd).
        timeout: Seconds before the invocation is treated as hung.
        input_data: Optional bytes fed to git on stdin.

    Returns:
        The stdout of the git command.

    Raises:
        GitError: If the command fails, times out, or git is missing.
    """
    LOG.debug("Running git command: git %s", " ".join(args))
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            input=input_data,
            capture_output=True,
            timeout=timeout,
            check=True,
        )
        return result.stdout
    except subprocess.CalledProcessError as e:
        stderr = decode_output(e.stderr or b"").strip()
        raise GitError(f"Git command failed: git {' '.join(args)}\n{stderr}") from e
    except subprocess.TimeoutExpired as e:
        raise GitError(f"Git command timed out after {timeout}s: git {' '.join(args)}") from e
    except FileNotFoundError as e:
        raise GitError("Git is not installed or not in PATH.") from e


def run_git_text(
    args: list[str],
    cwd: Optional[Path] = None,
    timeout: Optional[float] = DEFAULT_TIMEOUT,
) -> str:
    """Run a git command and return its decoded, stripped stdout."""
    return decode_output(run_git(args, cwd=cwd, timeout=timeout)).strip()


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Get the root directory of the current git repository.

    Returns:
        Path to the repository root.

    Raises:
        GitError: If not in a git repository.
    """
    try:
        root = run_git_text(["rev-parse", "--show-toplevel"], cwd=cwd)
        return Path(root)
    except GitError:
        raise GitError("Not in a git repository. Please run this command from within a git repo.")
