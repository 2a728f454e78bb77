"""Data models for the restack diff parser.

Contains:
- LineKind: Prefix tag of a hunk body line
- DiffLine: A single tagged hunk body line
- ChangeType: How a commit changed a file
- Hunk: A contiguous block of a unified diff
- FileChange: Diff for a single file containing multiple hunks
- CommitRef: Snapshot of an existing commit
- StackCommit: A commit together with its parsed diff
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LineKind(str, Enum):
    """Prefix tag of a hunk body line."""

    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"
    NO_NEWLINE = "\\"


@dataclass(frozen=True)
class DiffLine:
    """A single hunk body line, split into its tag and its text."""

    kind: LineKind
    text: str

    @property
    def raw(self) -> str:
        """The line exactly as it appeared in the diff."""
        return self.kind.value + self.text

    @property
    def is_change(self) -> bool:
        return self.kind in (LineKind.ADDED, LineKind.REMOVED)


class ChangeType(str, Enum):
    """How a commit changed a file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass
class Hunk:
    """A contiguous block of a unified diff covering one span of a file."""

    id: str
    file_id: str
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str  # The @@ ... @@ line
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def content(self) -> str:
        """Verbatim hunk text, header line first."""
        return "\n".join([self.header] + [line.raw for line in self.lines])

    def count_old_side(self) -> int:
        """Count the lines that exist on the old side (context + removed)."""
        return sum(1 for ln in self.lines if ln.kind in (LineKind.CONTEXT, LineKind.REMOVED))

    def count_new_side(self) -> int:
        """Count the lines that exist on the new side (context + added)."""
        return sum(1 for ln in self.lines if ln.kind in (LineKind.CONTEXT, LineKind.ADDED))


@dataclass
class FileChange:
    """Diff for a single file containing multiple hunks."""

    id: str
    file_name: str
    change_type: ChangeType = ChangeType.MODIFIED
    hunks: list[Hunk] = field(default_factory=list)
    old_path: Optional[str] = None  # For renames
    is_binary: bool = False


@dataclass(frozen=True)
class CommitRef:
    """Immutable snapshot of one existing commit."""

    hash: str
    author: str
    date: str
    message: str
    files_changed: tuple[str, ...] = ()
    parents: tuple[str, ...] = ()

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


@dataclass
class StackCommit:
    """A commit in the restacked range with its full diff against its parent."""

    commit: CommitRef
    changes: list[FileChange] = field(default_factory=list)
