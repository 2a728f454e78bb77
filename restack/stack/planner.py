"""Restack planning for restack.

Contains:
- FileMutation: Ordered line mutations for one file within one commit
- PlanStep: One new commit of the plan
- RestackPlan: The full ordered plan
- plan_restack: Build a plan from a unit-to-commit assignment

Planning touches no repository state: every check runs before the
executor performs its first mutation.
"""

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

from restack.diff.models import ChangeType
from restack.exceptions import PlanError
from restack.stack.patch import LineMutation
from restack.stack.units import ChangeUnit, build_unit_inventory, group_by_file

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileMutation:
    """Line mutations replayed into one file for one new commit."""

    file_name: str
    mutations: tuple[LineMutation, ...]
    delete_if_empty: bool = False  # Source commit deleted the file


@dataclass(frozen=True)
class PlanStep:
    """One new commit: its message and the files it rewrites."""

    index: int
    message: str
    file_mutations: dict[str, FileMutation]
    unit_ids: tuple[str, ...] = ()


@dataclass
class RestackPlan:
    """Ordered list of commits to build on top of the base."""

    steps: list[PlanStep] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def plan_restack(
    units: Sequence[ChangeUnit],
    assignment: Mapping[str, int],
    messages: Mapping[int, str],
) -> RestackPlan:
    """Group an assignment of units into an ordered restack plan.

    Args:
        units: Every unit of the current parse, in original order
        assignment: Unit ID -> target commit index
        messages: Target commit index -> commit message

    Returns:
        RestackPlan with one step per target index, ascending

    Raises:
        PlanError: If a unit ID is unknown, a target has no units, or a
            target lacks a message
    """
    inventory = build_unit_inventory(units)
    errors: list[str] = []

    if not assignment:
        raise PlanError("No units were assigned to any commit")

    unknown = [unit_id for unit_id in assignment if unit_id not in inventory]
    for unit_id in unknown:
        errors.append(f"Unknown unit: {unit_id}")

    targets: dict[int, list[ChangeUnit]] = {}
    for unit_id, target in assignment.items():
        if unit_id in inventory:
            targets.setdefault(target, []).append(inventory[unit_id])

    for index in sorted(set(targets) | set(messages)):
        if not targets.get(index):
            errors.append(f"Commit {index} has no assigned units")
        message = messages.get(index)
        if message is None or not message.strip():
            errors.append(f"Commit {index} has no message")

    if errors:
        raise PlanError("Invalid restack assignment:\n  " + "\n  ".join(errors))

    plan = RestackPlan()
    for index in sorted(targets):
        target_units = sorted(targets[index], key=lambda u: u.order)
        file_mutations: dict[str, FileMutation] = {}
        for file_name, file_units in group_by_file(target_units).items():
            file_mutations[file_name] = FileMutation(
                file_name=file_name,
                mutations=tuple(m for unit in file_units for m in unit.mutations),
                delete_if_empty=any(u.change_type == ChangeType.DELETED for u in file_units),
            )
        plan.steps.append(
            PlanStep(
                index=index,
                message=messages[index],
                file_mutations=file_mutations,
                unit_ids=tuple(u.id for u in target_units),
            )
        )

    unassigned = [u.id for u in units if u.id not in assignment]
    if unassigned:
        plan.warnings.append(
            f"Unassigned units are dropped from the new history: {', '.join(unassigned[:5])}"
            + (f" and {len(unassigned) - 5} more" if len(unassigned) > 5 else "")
        )

    LOG.debug("Planned %d commits from %d units", len(plan.steps), len(assignment))
    return plan
