"""Exception classes for restack.

Every error names the phase it failed in so callers can tell the user
what went wrong and whether the repository was touched:

- RestackError: Base class carrying ``phase`` and ``rolled_back``
- ParseError: Malformed diff segment (absorbed by the parser)
- PlanError: Invalid or incomplete assignment, raised before any mutation
- DirtyWorkingTreeError: Working tree has uncommitted changes
- RestackInProgressError: Another restack holds the repository lock
- GatewayError: An external git invocation failed
- RestackCancelledError: Execution was cancelled between plan steps
- RollbackFailedError: Restoring the pre-restack state failed
- ConfigError: Configuration could not be loaded or is invalid
"""

from typing import Optional


class RestackError(Exception):
    """Base exception for all restack errors."""

    phase = "execute"

    def __init__(self, message: str, rolled_back: Optional[bool] = None):
        super().__init__(message)
        self.message = message
        self.rolled_back = rolled_back

    def __str__(self) -> str:
        text = f"[{self.phase}] {self.message}"
        if self.rolled_back is True:
            text += " (repository rolled back to its previous state)"
        return text


class ParseError(RestackError):
    """Raised for a malformed diff segment."""

    phase = "parse"


class PlanError(RestackError):
    """Raised when an assignment cannot be turned into a plan."""

    phase = "plan"


class DirtyWorkingTreeError(RestackError):
    """Raised when the working tree has uncommitted changes."""

    phase = "precondition"


class RestackInProgressError(RestackError):
    """Raised when the repository is locked by another restack."""

    phase = "precondition"


class GatewayError(RestackError):
    """Raised when a version-control invocation fails."""

    phase = "execute"


class RestackCancelledError(RestackError):
    """Raised when a restack is cancelled between plan steps."""

    phase = "execute"


class RollbackFailedError(RestackError):
    """Raised when the rollback after a failed restack fails itself.

    The backup branch still points at the original HEAD; the message
    tells the user how to restore it by hand.
    """

    phase = "rollback"

    def __init__(self, message: str, backup_branch: str):
        super().__init__(
            f"{message}\nRecover manually with: git reset --hard {backup_branch}",
            rolled_back=False,
        )
        self.backup_branch = backup_branch


class ConfigError(RestackError):
    """Raised when configuration cannot be loaded or validated."""

    phase = "config"
