"""Restack planning and execution.

This package turns parsed commits into a rewritten history with:
- patch: MutationType, LineMutation, apply_mutations
- units: Granularity, ChangeUnit, hunk_units, explode_hunk, line_units,
         units_for_commits, group_by_file, build_unit_inventory,
         unreplayable_changes
- planner: FileMutation, PlanStep, RestackPlan, plan_restack
- executor: RestackExecutor, RestackResult, Snapshot, preview_plan
- history: list_commits, fetch_stack_commit, fetch_stack_commits,
           get_file_at_commit
- requests: RestackOperation, RestackLine, RestackCommit, RestackRequest,
            RestackResponse, FileContent
- service: RestackService, parse_restack_payload
"""

# Patch
from restack.stack.patch import (
    LineMutation,
    MutationType,
    apply_mutations,
)

# Units
from restack.stack.units import (
    ChangeUnit,
    Granularity,
    build_unit_inventory,
    explode_hunk,
    group_by_file,
    hunk_units,
    line_units,
    units_for_commits,
    unreplayable_changes,
)

# Planner
from restack.stack.planner import (
    FileMutation,
    PlanStep,
    RestackPlan,
    plan_restack,
)

# Executor
from restack.stack.executor import (
    RestackExecutor,
    RestackResult,
    Snapshot,
    preview_plan,
)

# Request models
from restack.stack.requests import (
    FileContent,
    RestackCommit,
    RestackLine,
    RestackOperation,
    RestackRequest,
    RestackResponse,
)

# History
from restack.stack.history import (
    fetch_stack_commit,
    fetch_stack_commits,
    get_file_at_commit,
    list_commits,
)

# Service
from restack.stack.service import (
    RestackService,
    assignment_from_operations,
    assignment_from_request,
    parse_restack_payload,
)


__all__ = [
    # Patch
    "LineMutation",
    "MutationType",
    "apply_mutations",
    # Units
    "ChangeUnit",
    "Granularity",
    "build_unit_inventory",
    "explode_hunk",
    "group_by_file",
    "hunk_units",
    "line_units",
    "units_for_commits",
    "unreplayable_changes",
    # Planner
    "FileMutation",
    "PlanStep",
    "RestackPlan",
    "plan_restack",
    # Executor
    "RestackExecutor",
    "RestackResult",
    "Snapshot",
    "preview_plan",
    # Request models
    "FileContent",
    "RestackCommit",
    "RestackLine",
    "RestackOperation",
    "RestackRequest",
    "RestackResponse",
    # History
    "fetch_stack_commit",
    "fetch_stack_commits",
    "get_file_at_commit",
    "list_commits",
    # Service
    "RestackService",
    "assignment_from_operations",
    "assignment_from_request",
    "parse_restack_payload",
]
