"""Merge domain model for BranchTree."""

from __future__ import annotations

from pydantic import BaseModel

from branchtree.models.message import MessageInfo


class MergeResult(BaseModel):
    """Outcome of folding a branch back into its parent.

    ``summary_degraded`` is True when the text-generation collaborator was
    unavailable and the deterministic placeholder summary was used.
    """

    branch_id: str
    parent_branch_id: str
    summary_message: MessageInfo
    summarized_count: int
    summary_degraded: bool = False

    def __str__(self) -> str:
        tag = " (fallback summary)" if self.summary_degraded else ""
        return (
            f"Merged {self.branch_id[:8]} into {self.parent_branch_id[:8]}: "
            f"{self.summarized_count} message(s){tag}"
        )
