"""Diff parser for restack.

Contains functions for parsing unified diff output:
- parse_unified_diff: Parse unified diff output from git show / git diff
- parse_hunk_header: Parse the ranges of an @@ hunk header
- unquote_path: Undo git's C-style quoting of a path
"""

import logging
import re
from typing import Optional

from restack.diff.models import ChangeType, DiffLine, FileChange, Hunk, LineKind
from restack.exceptions import ParseError

LOG = logging.getLogger(__name__)

# Either side may be C-quoted when the path holds special characters
_QUOTED = r'"(?:[^"\\]|\\.)*"'
_FILE_HEADER_RE = re.compile(rf"^diff --git (?P<old>{_QUOTED}|a/.+) (?P<new>{_QUOTED}|b/.+)$")
_OCTAL_ESCAPE_RE = re.compile(r"[0-7]{3}")
_C_ESCAPES = {"a": 7, "b": 8, "t": 9, "n": 10, "v": 11, "f": 12, "r": 13, '"': 34, "\\": 92}
_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")

_BODY_PREFIXES = {kind.value: kind for kind in LineKind}


def parse_hunk_header(header: str) -> tuple[int, int, int, int]:
    """Parse the ranges of an @@ hunk header.

    Args:
        header: A line such as ``@@ -10,6 +10,8 @@ def main():``

    Returns:
        Tuple of (old_start, old_lines, new_start, new_lines). A missing
        count defaults to 1.

    Raises:
        ParseError: If the line is not a valid hunk header.
    """
    match = _HUNK_HEADER_RE.match(header)
    if not match:
        raise ParseError(f"Malformed hunk header: {header!r}")

    old_start = int(match.group(1))
    old_lines = int(match.group(2)) if match.group(2) is not None else 1
    new_start = int(match.group(3))
    new_lines = int(match.group(4)) if match.group(4) is not None else 1
    return old_start, old_lines, new_start, new_lines


def unquote_path(token: str) -> str:
    """Undo git's C-style quoting of a path.

    Unquoted tokens are returned unchanged. Octal escapes are UTF-8 bytes,
    so ``"caf\\303\\251.txt"`` becomes ``café.txt``.
    """
    if len(token) < 2 or not (token.startswith('"') and token.endswith('"')):
        return token

    body = token[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        char = body[i]
        if char != "\\":
            out.extend(char.encode("utf-8", errors="surrogateescape"))
            i += 1
            continue
        escape = body[i + 1:i + 2]
        if escape in _C_ESCAPES:
            out.append(_C_ESCAPES[escape])
            i += 2
        elif _OCTAL_ESCAPE_RE.fullmatch(body[i + 1:i + 4]):
            out.append(int(body[i + 1:i + 4], 8) & 0xFF)
            i += 4
        else:
            out.append(ord("\\"))
            i += 1
    return out.decode("utf-8", errors="surrogateescape")


def _strip_side_prefix(token: str, prefix: str) -> str:
    path = unquote_path(token)
    return path[len(prefix):] if path.startswith(prefix) else path


class _ParseState:
    """Mutable cursor used while walking the diff lines."""

    def __init__(self) -> None:
        self.files: list[FileChange] = []
        self.file: Optional[FileChange] = None
        self.hunk: Optional[Hunk] = None
        self.remaining_old = 0
        self.remaining_new = 0
        # Whether the previous line was accepted into the current hunk
        self.attached = False

    @property
    def hunk_open(self) -> bool:
        return self.hunk is not None and (self.remaining_old > 0 or self.remaining_new > 0)

    def close_hunk(self, warnings: list[str], line_no: int) -> None:
        if self.hunk_open:
            warnings.append(
                f"Line {line_no}: hunk {self.hunk.header!r} ended before its ranges were consumed"
            )
        self.hunk = None
        self.remaining_old = 0
        self.remaining_new = 0
        self.attached = False


def parse_unified_diff(raw_diff: str, warnings: Optional[list[str]] = None) -> list[FileChange]:
    """Parse unified diff output into FileChange records.

    Malformed headers never abort the parse: the offending line is
    skipped and described in ``warnings``.

    Args:
        raw_diff: Raw output of ``git show`` / ``git diff`` for one or more
            commits.
        warnings: Optional list that receives a message per skipped line.

    Returns:
        List of FileChange objects in file-header order.
    """
    if warnings is None:
        warnings = []

    state = _ParseState()
    if not raw_diff:
        return state.files

    for line_no, line in enumerate(raw_diff.split("\n"), start=1):
        if line.startswith("diff --git"):
            _start_file(state, line, line_no, warnings)
            continue

        if state.file is None:
            continue

        if line.startswith("@@"):
            _start_hunk(state, line, line_no, warnings)
            continue

        if state.hunk_open or (state.attached and line.startswith("\\")):
            _append_body_line(state, line, line_no, warnings)
            continue

        state.attached = False
        _apply_status_line(state.file, line)

    return state.files


def _start_file(state: _ParseState, line: str, line_no: int, warnings: list[str]) -> None:
    """Open a new FileChange from a ``diff --git`` header."""
    state.close_hunk(warnings, line_no)

    match = _FILE_HEADER_RE.match(line)
    if not match:
        warnings.append(f"Line {line_no}: unrecognized file header skipped: {line!r}")
        LOG.debug("Skipping malformed file header at line %d", line_no)
        state.file = None
        return

    state.file = FileChange(
        id=f"file-{len(state.files)}",
        file_name=_strip_side_prefix(match.group("new"), "b/"),
    )
    state.files.append(state.file)


def _start_hunk(state: _ParseState, line: str, line_no: int, warnings: list[str]) -> None:
    """Open a new Hunk in the current file from an ``@@`` header."""
    state.close_hunk(warnings, line_no)
    assert state.file is not None

    try:
        old_start, old_lines, new_start, new_lines = parse_hunk_header(line)
    except ParseError as e:
        warnings.append(f"Line {line_no}: {e.message}")
        LOG.debug("Skipping malformed hunk header at line %d", line_no)
        return

    hunk = Hunk(
        id=f"{state.file.id}-hunk-{len(state.file.hunks)}",
        file_id=state.file.id,
        old_start=old_start,
        old_lines=old_lines,
        new_start=new_start,
        new_lines=new_lines,
        header=line,
    )
    state.file.hunks.append(hunk)
    state.hunk = hunk
    state.remaining_old = old_lines
    state.remaining_new = new_lines
    state.attached = True


def _append_body_line(state: _ParseState, line: str, line_no: int, warnings: list[str]) -> None:
    """Append a body line to the open hunk, or ignore it."""
    assert state.hunk is not None

    kind = _BODY_PREFIXES.get(line[:1])
    if kind is None:
        # Blank or foreign line where the hunk expected a body line
        state.attached = False
        return

    if kind == LineKind.CONTEXT:
        fits = state.remaining_old > 0 and state.remaining_new > 0
    elif kind == LineKind.REMOVED:
        fits = state.remaining_old > 0
    elif kind == LineKind.ADDED:
        fits = state.remaining_new > 0
    else:
        fits = True

    if not fits:
        warnings.append(
            f"Line {line_no}: line does not fit the ranges of {state.hunk.header!r}; skipped"
        )
        state.attached = False
        return

    if kind in (LineKind.CONTEXT, LineKind.REMOVED):
        state.remaining_old -= 1
    if kind in (LineKind.CONTEXT, LineKind.ADDED):
        state.remaining_new -= 1

    state.hunk.lines.append(DiffLine(kind=kind, text=line[1:]))
    state.attached = True


def _apply_status_line(file_change: FileChange, line: str) -> None:
    """Update change type and paths from an extended header line."""
    if line.startswith("new file mode"):
        file_change.change_type = ChangeType.ADDED
    elif line.startswith("deleted file mode"):
        file_change.change_type = ChangeType.DELETED
    elif line.startswith("rename from "):
        file_change.change_type = ChangeType.RENAMED
        file_change.old_path = unquote_path(line[len("rename from "):])
    elif line.startswith("Binary files ") or line.startswith("GIT binary patch"):
        file_change.is_binary = True
