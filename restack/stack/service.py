"""Request/response boundary of restack.

Contains:
- RestackService: list commits, fetch files, plan and apply restacks
- parse_restack_payload: Validate a hunk-mode or line-mode payload
- assignment_from_operations: Resolve hunk-mode operations to unit IDs
- assignment_from_request: Resolve a line-mode request to unit IDs
"""

import logging
import threading
from typing import Any, Optional, Sequence, Union

from pydantic import ValidationError

from restack.config import RestackConfig
from restack.diff.models import CommitRef, StackCommit
from restack.exceptions import GatewayError, PlanError, RestackError
from restack.git.gateway import RepositoryGateway
from restack.git.lock import RepositoryLock
from restack.session import save_session
from restack.stack.executor import RestackExecutor, preview_plan
from restack.stack.history import fetch_stack_commits, get_file_at_commit, list_commits
from restack.stack.planner import RestackPlan, plan_restack
from restack.stack.requests import (
    FileContent,
    RestackOperation,
    RestackRequest,
    RestackResponse,
)
from restack.stack.units import (
    ChangeUnit,
    Granularity,
    build_unit_inventory,
    units_for_commits,
    unreplayable_changes,
)

LOG = logging.getLogger(__name__)

RestackPayload = Union[list[RestackOperation], RestackRequest]

_LINE_PREFIX = {"add": "+", "delete": "-"}


def parse_restack_payload(payload: Any) -> RestackPayload:
    """Validate a restack payload.

    Args:
        payload: A RestackRequest, a list of RestackOperation, or their
            JSON-compatible dict/list forms.

    Returns:
        The validated operations list or request.

    Raises:
        PlanError: If the payload does not match either shape.
    """
    try:
        if isinstance(payload, RestackRequest):
            return payload
        if isinstance(payload, (list, tuple)):
            return [
                op if isinstance(op, RestackOperation) else RestackOperation.model_validate(op)
                for op in payload
            ]
        if isinstance(payload, dict):
            return RestackRequest.model_validate(payload)
    except ValidationError as e:
        raise PlanError(f"Invalid restack payload: {e}")
    raise PlanError(f"Unsupported restack payload: {type(payload).__name__}")


def assignment_from_operations(
    units: Sequence[ChangeUnit], operations: Sequence[RestackOperation]
) -> dict[str, int]:
    """Map hunk-mode operations to unit IDs.

    Hunk IDs repeat across commits; an operation matching hunks of more
    than one commit must name its commit.

    Raises:
        PlanError: If an operation matches no hunk, several hunks, or a
            hunk is assigned twice.
    """
    by_position: dict[tuple[str, str], list[ChangeUnit]] = {}
    for unit in units:
        by_position.setdefault((unit.file_id, unit.hunk_id), []).append(unit)

    assignment: dict[str, int] = {}
    errors: list[str] = []
    for op in operations:
        candidates = by_position.get((op.file_id, op.hunk_id), [])
        if op.commit_hash:
            candidates = [u for u in candidates if u.commit_hash.startswith(op.commit_hash)]

        if not candidates:
            errors.append(f"Unknown hunk {op.hunk_id} in {op.file_id}")
        elif len(candidates) > 1:
            errors.append(
                f"Hunk {op.hunk_id} in {op.file_id} exists in {len(candidates)} commits; "
                "set commitHash to choose one"
            )
        elif candidates[0].id in assignment:
            errors.append(f"Hunk {candidates[0].id} is assigned more than once")
        else:
            assignment[candidates[0].id] = op.target_commit_index

    if errors:
        raise PlanError("Invalid restack operations:\n  " + "\n  ".join(errors))
    return assignment


def assignment_from_request(
    units: Sequence[ChangeUnit], request: RestackRequest
) -> tuple[dict[str, int], dict[int, str]]:
    """Map a line-mode request to unit IDs and commit messages.

    Every referenced line must exist in the current parse; lines echoed
    back in ``all_lines`` must also match the parsed content and type.

    Raises:
        PlanError: If a line is unknown, stale, or assigned twice.
    """
    inventory = build_unit_inventory(units)
    errors: list[str] = []

    for line in request.all_lines:
        unit = inventory.get(line.id)
        if unit is None:
            continue
        mutation = unit.mutations[0]
        expected = _LINE_PREFIX[mutation.type.value] + mutation.content
        if line.content != expected or line.line_type != mutation.type.value:
            errors.append(f"Line {line.id} does not match the current history; refetch commits")

    assignment: dict[str, int] = {}
    messages: dict[int, str] = {}
    for index, new_commit in enumerate(request.new_commits):
        messages[index] = new_commit.message
        for line_id in new_commit.line_ids:
            if line_id in assignment:
                errors.append(f"Line {line_id} is assigned more than once")
            else:
                assignment[line_id] = index

    if errors:
        raise PlanError("Invalid restack request:\n  " + "\n  ".join(errors))
    return assignment, messages


class RestackService:
    """Transport-agnostic entry point used by the CLI and UIs."""

    def __init__(
        self,
        gateway: RepositoryGateway,
        config: Optional[RestackConfig] = None,
        lock: Optional[RepositoryLock] = None,
    ):
        self.gateway = gateway
        self.config = config or RestackConfig()
        self._lock = lock

    # Read-only operations

    def list_commits(self, base: Optional[str] = None, head: str = "HEAD"):
        """List the commits of a range, oldest first, with parsed diffs."""
        return list_commits(
            self.gateway,
            base=base,
            head=head,
            default_commits=self.config.default_commits,
            context_lines=self.config.context_lines,
            max_workers=self.config.max_workers,
        )

    def get_file_at_commit(self, commit_hash: str, path: str) -> FileContent:
        """Fetch a file at a commit, falling back to the parent's content."""
        return get_file_at_commit(self.gateway, commit_hash, path)

    # Planning

    def build_plan(self, payload: Any) -> tuple[RestackPlan, str]:
        """Validate a payload and turn it into a plan.

        Returns:
            Tuple of (plan, base commit hash)

        Raises:
            PlanError: If the payload is invalid for the current history
        """
        parsed = parse_restack_payload(payload)
        try:
            if isinstance(parsed, RestackRequest):
                return self._plan_from_request(parsed)
            return self._plan_from_operations(parsed)
        except GatewayError as e:
            # Nothing has been mutated yet
            raise PlanError(f"Could not read the commit range: {e.message}") from e

    def _plan_from_operations(self, operations: list[RestackOperation]) -> tuple[RestackPlan, str]:
        if not operations:
            raise PlanError("No operations provided")

        count = max(op.target_commit_index for op in operations) + 1
        head = self.gateway.head()
        try:
            base = self.gateway.rev_parse(f"{head}~{count}")
        except GatewayError:
            raise PlanError(f"Operations target {count} commits but HEAD has fewer ancestors")

        range_commits = list(reversed(self.gateway.log(f"{base}..{head}")))
        _reject_merges(range_commits)
        stack = fetch_stack_commits(
            self.gateway, range_commits, self.config.context_lines, self.config.max_workers
        )
        units = units_for_commits(stack, Granularity.HUNK)
        assignment = assignment_from_operations(units, operations)

        # Target i keeps the message of the i-th commit of the range
        messages = {
            index: self.gateway.full_message(range_commits[index].hash)
            for index in set(assignment.values())
        }
        plan = plan_restack(units, assignment, messages)
        _warn_unreplayable(plan, stack)
        return plan, base

    def _plan_from_request(self, request: RestackRequest) -> tuple[RestackPlan, str]:
        if not request.new_commits:
            raise PlanError("No commits to create")

        head = self.gateway.head()
        try:
            base = self.gateway.merge_base(request.base_branch, head)
        except GatewayError:
            raise PlanError(f"No merge base between {request.base_branch} and HEAD")
        range_commits = list(reversed(self.gateway.log(f"{base}..{head}")))
        _reject_merges(range_commits)

        selected = [c for c in range_commits if _is_selected(c.hash, request.selected_commit_hashes)]
        unknown = [
            h for h in request.selected_commit_hashes
            if not any(c.hash.startswith(h) for c in range_commits)
        ]
        if unknown:
            raise PlanError(f"Selected commits are not between base and HEAD: {', '.join(unknown)}")
        if len(selected) != len(range_commits):
            skipped = [c.short_hash for c in range_commits if c not in selected]
            raise PlanError(
                "Every commit between base and HEAD must be selected; "
                f"these would be dropped: {', '.join(skipped)}"
            )

        stack = fetch_stack_commits(
            self.gateway, selected, self.config.context_lines, self.config.max_workers
        )
        units = units_for_commits(stack, Granularity.LINE)
        assignment, messages = assignment_from_request(units, request)
        plan = plan_restack(units, assignment, messages)
        _warn_unreplayable(plan, stack)
        return plan, base

    def preview_restack(self, payload: Any):
        """Plan a restack and compute its file contents without mutating anything.

        Returns:
            Tuple of (plan, base, per-step file contents)
        """
        plan, base = self.build_plan(payload)
        return plan, base, preview_plan(self.gateway, plan, base)

    # Execution

    def apply_restack(
        self, payload: Any, cancel: Optional[threading.Event] = None
    ) -> RestackResponse:
        """Plan and execute a restack.

        Errors are returned in the response rather than raised, each
        naming the phase that failed and whether the repository was
        rolled back.
        """
        try:
            plan, base = self.build_plan(payload)
            for warning in plan.warnings:
                LOG.warning(warning)
            branch = self.gateway.current_branch_name()
            executor = RestackExecutor(
                self.gateway,
                lock=self._lock or RepositoryLock(self.gateway.git_dir()),
                backup_prefix=self.config.backup_prefix,
            )
            result = executor.execute(plan, base, cancel=cancel)
        except RestackError as e:
            LOG.error("Restack failed: %s", e)
            return RestackResponse(
                success=False,
                error=str(e),
                phase=e.phase,
                rolled_back=e.rolled_back,
                backup_branch=getattr(e, "backup_branch", None),
            )

        try:
            save_session(
                self.gateway.git_dir(),
                branch=branch,
                base=result.base,
                original_head=result.original_head,
                backup_branch=result.backup_branch,
                new_commit_hashes=result.new_commit_hashes,
            )
        except (OSError, GatewayError) as e:
            LOG.warning("Could not record restack session: %s", e)

        return RestackResponse(
            success=True,
            new_commit_hashes=result.new_commit_hashes,
            backup_branch=result.backup_branch,
            warnings=result.warnings,
        )


def _is_selected(commit_hash: str, selected: Sequence[str]) -> bool:
    return any(commit_hash.startswith(h) for h in selected if h)


def _reject_merges(range_commits: Sequence[CommitRef]) -> None:
    merges = [c.short_hash for c in range_commits if c.is_merge]
    if merges:
        raise PlanError(f"Cannot restack a range containing merge commits: {', '.join(merges)}")


def _warn_unreplayable(plan: RestackPlan, stack: Sequence[StackCommit]) -> None:
    dropped = unreplayable_changes(stack)
    if dropped:
        plan.warnings.append(
            "Changes without selectable lines are not carried into the new history: "
            + "; ".join(dropped)
        )
