"""Executor for restack plans.

Contains:
- Snapshot: Pre-restack state used exclusively for rollback
- RestackResult: Outcome of a successful restack
- RestackExecutor: Replays a plan as new commits, all or nothing
- preview_plan: Compute a plan's file contents without touching git

Backup branch policy: the backup branch is kept after a successful
restack (the user removes it), deleted after a successful rollback and
kept when the rollback itself fails.
"""

import logging
import threading
import time
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Callable, Optional

from restack.exceptions import (
    DirtyWorkingTreeError,
    GatewayError,
    PlanError,
    RestackCancelledError,
    RestackError,
    RollbackFailedError,
)
from restack.git.gateway import RepositoryGateway
from restack.git.lock import RepositoryLock
from restack.stack.patch import apply_mutations
from restack.stack.planner import PlanStep, RestackPlan

LOG = logging.getLogger(__name__)

DEFAULT_BACKUP_PREFIX = "backup"


@dataclass(frozen=True)
class Snapshot:
    """State captured before the first mutation of a restack."""

    original_head: str
    backup_branch: str
    branch_name: Optional[str]


@dataclass
class RestackResult:
    """Outcome of a successful restack."""

    new_commit_hashes: list[str]
    backup_branch: str
    original_head: str
    base: str
    warnings: list[str] = field(default_factory=list)


def _step_contents(
    step: PlanStep, read: Callable[[str], Optional[bytes]]
) -> dict[str, Optional[bytes]]:
    """Compute the new content of every file a step touches.

    Returns:
        Mapping of file name to new content, None meaning "remove".
    """
    contents: dict[str, Optional[bytes]] = {}
    for file_name, file_mutation in step.file_mutations.items():
        new_content = apply_mutations(read(file_name), file_mutation.mutations, path=file_name)
        if file_mutation.delete_if_empty and not new_content:
            contents[file_name] = None
        else:
            contents[file_name] = new_content
    return contents


def preview_plan(
    gateway: RepositoryGateway, plan: RestackPlan, base_ref: str
) -> list[dict[str, Optional[bytes]]]:
    """Compute every step's file contents in memory.

    Only read-only gateway calls are made, so this is safe to run as a
    dry-run before execute().

    Args:
        gateway: Repository gateway
        plan: The plan to preview
        base_ref: Commit the new history is built on

    Returns:
        One mapping per step of file name to new content (None = removed)
    """
    overlay: dict[str, Optional[bytes]] = {}

    def read(path: str) -> Optional[bytes]:
        if path in overlay:
            return overlay[path]
        return gateway.file_at(base_ref, path)

    previews: list[dict[str, Optional[bytes]]] = []
    for step in plan.steps:
        contents = _step_contents(step, read)
        overlay.update(contents)
        previews.append(contents)
    return previews


class RestackExecutor:
    """Replay a RestackPlan against a repository, atomically.

    Either every planned commit is created, or the repository is reset
    to exactly the HEAD and tree it had before execute() was called.
    """

    def __init__(
        self,
        gateway: RepositoryGateway,
        lock: Optional[RepositoryLock] = None,
        backup_prefix: str = DEFAULT_BACKUP_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        self.gateway = gateway
        self.lock = lock
        self.backup_prefix = backup_prefix
        self.clock = clock

    def execute(
        self,
        plan: RestackPlan,
        base_ref: str,
        cancel: Optional[threading.Event] = None,
    ) -> RestackResult:
        """Build the plan's commits on top of base_ref.

        Args:
            plan: Plan produced by plan_restack
            base_ref: Commit the new history is built on
            cancel: Optional event checked between plan steps

        Returns:
            RestackResult with the new commit hashes in order

        Raises:
            PlanError: If the plan has no steps
            DirtyWorkingTreeError: If the working tree is not clean
            RestackInProgressError: If another restack holds the lock
            GatewayError: If a step failed (the repository was rolled back)
            RestackCancelledError: If cancelled (the repository was rolled back)
            RollbackFailedError: If restoring the original state failed
        """
        if not plan.steps:
            raise PlanError("Plan has no commits")

        with self.lock if self.lock is not None else nullcontext():
            if not self.gateway.is_clean():
                raise DirtyWorkingTreeError(
                    "Working tree has uncommitted changes. Commit or stash them first."
                )

            base = self.gateway.rev_parse(base_ref)
            snapshot = self._take_snapshot()
            written: set[str] = set()

            try:
                new_hashes = self._replay(plan, base, cancel, written)
            except BaseException as exc:
                self._rollback(snapshot, written, exc)
                if not isinstance(exc, Exception):
                    raise
                if isinstance(exc, RestackError):
                    exc.rolled_back = True
                    raise
                raise GatewayError(f"Restack failed: {exc}", rolled_back=True) from exc

        LOG.info(
            "Restack created %d commits; backup branch %s kept",
            len(new_hashes),
            snapshot.backup_branch,
        )
        return RestackResult(
            new_commit_hashes=new_hashes,
            backup_branch=snapshot.backup_branch,
            original_head=snapshot.original_head,
            base=base,
            warnings=list(plan.warnings),
        )

    def _take_snapshot(self) -> Snapshot:
        original_head = self.gateway.head()
        branch = self.gateway.current_branch_name()
        timestamp = int(self.clock() * 1000)
        backup_branch = f"{self.backup_prefix}-{branch or 'detached'}-{timestamp}"
        self.gateway.create_branch(backup_branch, original_head)
        LOG.info("Created backup branch %s at %s", backup_branch, original_head[:7])
        return Snapshot(original_head=original_head, backup_branch=backup_branch, branch_name=branch)

    def _replay(
        self,
        plan: RestackPlan,
        base: str,
        cancel: Optional[threading.Event],
        written: set[str],
    ) -> list[str]:
        self.gateway.reset_hard(base)
        LOG.debug("Reset to base %s", base[:7])

        new_hashes: list[str] = []
        total = len(plan.steps)
        for position, step in enumerate(plan.steps, start=1):
            if cancel is not None and cancel.is_set():
                raise RestackCancelledError(
                    f"Restack cancelled before commit {position}/{total}"
                )

            LOG.info("Creating commit %d/%d: %s", position, total, step.message.split("\n")[0])
            contents = _step_contents(step, lambda path: self.gateway.file_at("HEAD", path))
            for file_name, content in contents.items():
                written.add(file_name)
                if content is None:
                    self.gateway.remove_working_file(file_name)
                else:
                    self.gateway.write_working_file(file_name, content)

            self.gateway.stage_all()
            new_hashes.append(self.gateway.commit(step.message))
            LOG.debug("Commit %d/%d created: %s", position, total, new_hashes[-1][:7])

        return new_hashes

    def _rollback(self, snapshot: Snapshot, written: set[str], cause: BaseException) -> None:
        LOG.error("Restack failed (%s); restoring %s", cause, snapshot.backup_branch)
        try:
            self.gateway.reset_hard(snapshot.backup_branch)
            # Files written but never committed are untracked and survive the reset
            for path in sorted(written):
                if self.gateway.file_at(snapshot.backup_branch, path) is None:
                    self.gateway.remove_working_file(path)
        except Exception as rollback_exc:
            LOG.error("Rollback failed: %s", rollback_exc)
            raise RollbackFailedError(
                f"Restack failed ({cause}) and rollback failed ({rollback_exc})",
                backup_branch=snapshot.backup_branch,
            ) from cause

        LOG.info(
            "Rolled back %s to %s",
            snapshot.branch_name or "detached HEAD",
            snapshot.original_head[:7],
        )
        try:
            self.gateway.delete_branch(snapshot.backup_branch)
        except GatewayError as e:
            LOG.warning("Could not delete backup branch %s: %s", snapshot.backup_branch, e)
