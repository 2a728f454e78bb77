"""Selectable change units for restack.

Contains functions for projecting parsed diffs into units a user can
assign to new commits:
- Granularity: Hunk or line selection mode
- ChangeUnit: A whole hunk or a single added/removed line
- hunk_units: One unit per hunk
- explode_hunk: One unit per added/removed line of a hunk
- line_units: Explode every hunk of a commit
- units_for_commits: Units of a commit range in chronological order
- group_by_file: Group units by file name, keeping encounter order
- build_unit_inventory: Map unit IDs to units
- unreplayable_changes: Describe changes that no unit can carry over

Unit IDs are only meaningful for the parse pass that produced them;
callers re-derive them after every re-fetch.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional

from restack.diff.models import ChangeType, FileChange, Hunk, LineKind, StackCommit
from restack.stack.patch import LineMutation, MutationType


class Granularity(str, Enum):
    """Selection grain of change units."""

    HUNK = "hunk"
    LINE = "line"


_MUTATION_FOR_KIND = {
    LineKind.ADDED: MutationType.ADD,
    LineKind.REMOVED: MutationType.DELETE,
}


@dataclass(frozen=True)
class ChangeUnit:
    """A read-only, selectable projection of a hunk or of one of its lines."""

    id: str
    commit_hash: str
    file_id: str
    file_name: str
    hunk_id: str
    change_type: ChangeType
    mutations: tuple[LineMutation, ...]
    line_index: Optional[int] = None  # Position in the hunk content buffer
    order: int = 0  # Encounter position within the unit list

    @property
    def is_line(self) -> bool:
        return self.line_index is not None


def _hunk_mutations(hunk: Hunk) -> tuple[LineMutation, ...]:
    return tuple(
        LineMutation(type=_MUTATION_FOR_KIND[line.kind], content=line.text)
        for line in hunk.lines
        if line.is_change
    )


def hunk_units(commit_hash: str, files: Iterable[FileChange]) -> list[ChangeUnit]:
    """Project every hunk of a commit to a unit.

    Args:
        commit_hash: Hash of the commit the diff belongs to
        files: Parsed FileChange objects of that commit

    Returns:
        One ChangeUnit per hunk, in file then hunk order
    """
    units: list[ChangeUnit] = []
    for file_change in files:
        if file_change.is_binary:
            continue
        for hunk in file_change.hunks:
            units.append(
                ChangeUnit(
                    id=f"{commit_hash}-{file_change.id}-{hunk.id}",
                    commit_hash=commit_hash,
                    file_id=file_change.id,
                    file_name=file_change.file_name,
                    hunk_id=hunk.id,
                    change_type=file_change.change_type,
                    mutations=_hunk_mutations(hunk),
                    order=len(units),
                )
            )
    return units


def explode_hunk(commit_hash: str, file_change: FileChange, hunk: Hunk) -> list[ChangeUnit]:
    """Split a hunk into one unit per added or removed line.

    Context lines and no-newline markers carry no edit intent and are
    never selectable. The index counts the header as line 0, matching
    the hunk content buffer.

    Args:
        commit_hash: Hash of the commit the hunk belongs to
        file_change: The file owning the hunk
        hunk: The hunk to explode

    Returns:
        Ordered list of line units
    """
    units: list[ChangeUnit] = []
    for index, line in enumerate(hunk.lines, start=1):
        if not line.is_change:
            continue
        units.append(
            ChangeUnit(
                id=f"{commit_hash}-{file_change.id}-{hunk.id}-line-{index}",
                commit_hash=commit_hash,
                file_id=file_change.id,
                file_name=file_change.file_name,
                hunk_id=hunk.id,
                change_type=file_change.change_type,
                mutations=(LineMutation(type=_MUTATION_FOR_KIND[line.kind], content=line.text),),
                line_index=index,
                order=len(units),
            )
        )
    return units


def line_units(commit_hash: str, files: Iterable[FileChange]) -> list[ChangeUnit]:
    """Explode every hunk of a commit into line units."""
    units: list[ChangeUnit] = []
    for file_change in files:
        if file_change.is_binary:
            continue
        for hunk in file_change.hunks:
            for unit in explode_hunk(commit_hash, file_change, hunk):
                units.append(replace(unit, order=len(units)))
    return units


def units_for_commits(
    stack_commits: Iterable[StackCommit], granularity: Granularity = Granularity.HUNK
) -> list[ChangeUnit]:
    """Build the units of a commit range.

    Args:
        stack_commits: Commits in chronological order (oldest first)
        granularity: Hunk or line selection

    Returns:
        All units, ordered by commit, file, hunk and line
    """
    project = hunk_units if granularity == Granularity.HUNK else line_units
    units: list[ChangeUnit] = []
    for stack_commit in stack_commits:
        for unit in project(stack_commit.commit.hash, stack_commit.changes):
            units.append(replace(unit, order=len(units)))
    return units


def group_by_file(units: Iterable[ChangeUnit]) -> dict[str, list[ChangeUnit]]:
    """Group units by file name, preserving encounter order."""
    grouped: dict[str, list[ChangeUnit]] = {}
    for unit in units:
        grouped.setdefault(unit.file_name, []).append(unit)
    return grouped


def build_unit_inventory(units: Iterable[ChangeUnit]) -> dict[str, ChangeUnit]:
    """Build a mapping of unit IDs to ChangeUnit objects."""
    inventory: dict[str, ChangeUnit] = {}
    for unit in units:
        inventory[unit.id] = unit
    return inventory


def _unreplayable_reason(file_change: FileChange) -> Optional[str]:
    if file_change.is_binary:
        return "binary"
    if file_change.change_type == ChangeType.RENAMED:
        if file_change.hunks:
            return f"renamed from {file_change.old_path}; the old path is not removed"
        return f"renamed from {file_change.old_path} without content changes"
    if file_change.hunks:
        return None
    if file_change.change_type == ChangeType.ADDED:
        return "empty new file"
    if file_change.change_type == ChangeType.DELETED:
        return "deleted empty file"
    return "mode change"


def unreplayable_changes(stack_commits: Iterable[StackCommit]) -> list[str]:
    """Describe the file changes of a range that units cannot carry over.

    Binary files, renames, mode changes and empty files have no added or
    removed lines (or not only those), so the new history will not
    reproduce them.

    Returns:
        One ``<short hash> <path> (<reason>)`` entry per affected change
    """
    described: list[str] = []
    for stack_commit in stack_commits:
        for file_change in stack_commit.changes:
            reason = _unreplayable_reason(file_change)
            if reason is not None:
                described.append(
                    f"{stack_commit.commit.short_hash} {file_change.file_name} ({reason})"
                )
    return described
