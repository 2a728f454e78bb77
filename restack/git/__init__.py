"""Git integration for restack.

This package provides the repository seam with:
- exceptions: GitError
- runner: run_git, run_git_text, decode_output, encode_content,
          get_repo_root
- gateway: RepositoryGateway, GitGateway, parse_log_output
- lock: RepositoryLock
"""

# Exceptions
from restack.git.exceptions import (
    GitError,
)

# Runner utilities
from restack.git.runner import (
    decode_output,
    encode_content,
    get_repo_root,
    run_git,
    run_git_text,
)

# Gateway
from restack.git.gateway import (
    GitGateway,
    RepositoryGateway,
    parse_log_output,
)

# Lock
from restack.git.lock import (
    RepositoryLock,
)


__all__ = [
    # Exceptions
    "GitError",
    # Runner
    "decode_output",
    "encode_content",
    "get_repo_root",
    "run_git",
    "run_git_text",
    # Gateway
    "GitGateway",
    "RepositoryGateway",
    "parse_log_output",
    # Lock
    "RepositoryLock",
]
