"""File patch application for restack.

Contains:
- MutationType: Whether a line is added or deleted
- LineMutation: One line-level edit replayed into a file
- apply_mutations: Compute a file's new content from line mutations

Lines are matched by content, not by position: a deletion removes the
first remaining line with the same text and additions are appended at
the end of the file. Files containing duplicate lines can therefore be
edited at the wrong place; such deletions are logged as ambiguous.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from restack.git.runner import decode_output, encode_content

LOG = logging.getLogger(__name__)


class MutationType(str, Enum):
    """Whether a mutation adds or deletes a line."""

    ADD = "add"
    DELETE = "delete"


@dataclass(frozen=True)
class LineMutation:
    """One line-level edit, text without the diff prefix."""

    type: MutationType
    content: str


def apply_mutations(
    base_content: Optional[bytes],
    mutations: Iterable[LineMutation],
    path: str = "<file>",
) -> bytes:
    """Apply line mutations to a file's content.

    Args:
        base_content: Current file content, or None when the file is absent.
        mutations: Ordered mutations; deletions are applied first, in
            order, then additions are appended in order.
        path: File name used in log messages.

    Returns:
        The new file content. Non-empty content always ends with a newline.
    """
    mutations = list(mutations)
    text = decode_output(base_content) if base_content else ""
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    for mutation in mutations:
        if mutation.type != MutationType.DELETE:
            continue
        occurrences = lines.count(mutation.content)
        if occurrences == 0:
            LOG.warning("%s: line to delete not found: %r", path, mutation.content)
            continue
        if occurrences > 1:
            LOG.warning(
                "%s: line to delete occurs %d times, removing the first: %r",
                path,
                occurrences,
                mutation.content,
            )
        lines.remove(mutation.content)

    lines.extend(m.content for m in mutations if m.type == MutationType.ADD)

    if not lines:
        return b""
    return encode_content("\n".join(lines) + "\n")
