"""Branch domain models for BranchTree.

BranchInfo is the SDK-facing model returned when listing branches.
BranchNode is the nested presentation form built by the tree assembler.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class BranchInfo(BaseModel):
    """SDK-facing branch information model.

    A branch with ``parent_branch_id=None`` is a top-level conversation.
    """

    id: str
    name: str
    root_message_id: Optional[str] = None
    parent_branch_id: Optional[str] = None
    is_merged: bool = False
    user_id: str
    created_at: datetime
    message_count: Optional[int] = None  # Populated by listing/tree queries

    @property
    def is_conversation(self) -> bool:
        return self.parent_branch_id is None

    def __str__(self) -> str:
        flag = " (merged)" if self.is_merged else ""
        return f"{self.name} [{self.id[:8]}]{flag}"


class BranchNode(BaseModel):
    """A branch with its sub-branches, for navigation views."""

    branch: BranchInfo
    children: list[BranchNode] = []

    def walk(self) -> Iterator[tuple[int, BranchInfo]]:
        """Yield ``(depth, BranchInfo)`` pairs in pre-order."""
        stack: list[tuple[int, BranchNode]] = [(0, self)]
        while stack:
            depth, node = stack.pop()
            yield depth, node.branch
            for child in reversed(node.children):
                stack.append((depth + 1, child))

    def ids(self) -> list[str]:
        return [b.id for _, b in self.walk()]


BranchNode.model_rebuild()
