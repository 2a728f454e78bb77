"""Git-related exception classes.

Contains:
- GitError: Raised when a git invocation fails or times out
"""

from restack.exceptions import GatewayError


class GitError(GatewayError):
    """Custom exception for git-related errors."""

    pass
