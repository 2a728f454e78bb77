"""Request and response models for the restack service boundary.

Contains Pydantic models for the JSON shapes exchanged with a UI:
- RestackOperation: Hunk-mode assignment of one hunk to a target commit
- RestackLine: One selectable line in line mode
- RestackCommit: A new commit in line mode
- RestackRequest: The full line-mode request
- RestackResponse: Result of applying a restack
- FileContent: Content of a file at a commit

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RestackOperation(_WireModel):
    """Assignment of one hunk to a target commit index."""

    target_commit_index: int
    hunk_id: str
    file_id: str
    commit_hash: Optional[str] = None  # Disambiguates hunk IDs across commits

    @field_validator("target_commit_index")
    @classmethod
    def non_negative_index(cls, value: int) -> int:
        if value < 0:
            raise ValueError("targetCommitIndex must be >= 0")
        return value


class RestackLine(_WireModel):
    """One selectable line, as the UI received it."""

    id: str
    commit_hash: str
    file_name: str
    content: str  # Including the +/- prefix
    line_type: Literal["add", "delete"]


class RestackCommit(_WireModel):
    """A new commit: its message and the lines it takes."""

    message: str
    line_ids: list[str]


class RestackRequest(_WireModel):
    """Line-mode restack request."""

    base_branch: str
    selected_commit_hashes: list[str]
    new_commits: list[RestackCommit]
    all_lines: list[RestackLine] = []


class RestackResponse(_WireModel):
    """Result of apply_restack."""

    success: bool
    new_commit_hashes: list[str] = []
    backup_branch: Optional[str] = None
    warnings: list[str] = []
    error: Optional[str] = None
    phase: Optional[str] = None
    rolled_back: Optional[bool] = None

    def to_wire(self) -> dict:
        """Dump with camelCase keys, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class FileContent(_WireModel):
    """Content of a file at a commit."""

    content: str
    deleted_in_commit: bool = False
