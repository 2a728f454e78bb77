"""Restack session records.

After a successful restack, the backup branch and the commits created
are recorded in <git-dir>/restack/last_session.json so the user can
inspect or drop the backup later:
- RestackSession: Pydantic model of the record
- get_session_file: Path to the record
- save_session / load_session / clear_session
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError


class RestackSession(BaseModel):
    """Record of the last successful restack."""

    created_at: str  # ISO format timestamp
    branch: Optional[str] = None
    base: str
    original_head: str
    backup_branch: str
    new_commit_hashes: list[str]


def get_session_file(git_dir: Path) -> Path:
    """Return path to the session record, creating its directory."""
    session_dir = Path(git_dir) / "restack"
    session_dir.mkdir(exist_ok=True)
    return session_dir / "last_session.json"


def save_session(
    git_dir: Path,
    branch: Optional[str],
    base: str,
    original_head: str,
    backup_branch: str,
    new_commit_hashes: list[str],
) -> RestackSession:
    """Persist the record of a successful restack."""
    session = RestackSession(
        created_at=datetime.now(timezone.utc).isoformat(),
        branch=branch,
        base=base,
        original_head=original_head,
        backup_branch=backup_branch,
        new_commit_hashes=new_commit_hashes,
    )
    get_session_file(git_dir).write_text(session.model_dump_json(indent=2))
    return session


def load_session(git_dir: Path) -> Optional[RestackSession]:
    """Load the last session record, or None if absent or unreadable."""
    session_file = get_session_file(git_dir)
    if not session_file.exists():
        return None
    try:
        return RestackSession(**json.loads(session_file.read_text()))
    except (json.JSONDecodeError, ValidationError):
        return None


def clear_session(git_dir: Path) -> None:
    """Remove the session record."""
    get_session_file(git_dir).unlink(missing_ok=True)
