"""Diff parsing for restack.

This package turns unified diff text into structured records:
- models: LineKind, DiffLine, ChangeType, Hunk, FileChange, CommitRef,
          StackCommit
- parser: parse_unified_diff, parse_hunk_header, unquote_path
"""

# Models
from restack.diff.models import (
    ChangeType,
    CommitRef,
    DiffLine,
    FileChange,
    Hunk,
    LineKind,
    StackCommit,
)

# Parser
from restack.diff.parser import (
    parse_hunk_header,
    parse_unified_diff,
    unquote_path,
)


__all__ = [
    # Models
    "ChangeType",
    "CommitRef",
    "DiffLine",
    "FileChange",
    "Hunk",
    "LineKind",
    "StackCommit",
    # Parser
    "parse_hunk_header",
    "parse_unified_diff",
    "unquote_path",
]
