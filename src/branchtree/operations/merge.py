"""Merge Engine: fold a branch back into its parent as a summary.

Merging is additive.  The branch's unique messages are summarized by the
text-generation collaborator and appended to the parent branch as one
system message; the branch itself is only flagged ``is_merged``.

Step order matters for all-or-nothing behaviour: every precondition and
the (slow, fallible) summary run before the first write, and the merged
flag is flipped last.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from branchtree.exceptions import (
    AlreadyMergedError,
    EmptyBranchError,
    IntegrityViolationError,
    TopLevelMergeError,
)
from branchtree.llm.generator import bounded_complete
from branchtree.models.merge import MergeResult
from branchtree.models.message import MessageRole
from branchtree.operations.branch import append_message, get_head, require_branch
from branchtree.operations.lineage import resolve_lineage, unique_to_branch
from branchtree.prompts.summarize import (
    MERGE_SUMMARY_SYSTEM,
    build_merge_prompt,
    build_merge_transcript,
    compose_merge_message,
    fallback_summary,
)

if TYPE_CHECKING:
    from branchtree.llm.protocols import TextGenerator
    from branchtree.models.config import LineageStrategy
    from branchtree.storage.repositories import BranchRepository, MessageRepository

logger = logging.getLogger(__name__)


def resolve_insertion_point(
    parent_branch_id: str,
    root_message_id: str | None,
    message_repo: MessageRepository,
) -> str:
    """Message the summary will reply to.

    The parent branch's head, else the merged branch's fork point.

    Raises:
        IntegrityViolationError: If neither resolves to a stored message.
    """
    head = get_head(parent_branch_id, message_repo)
    if head is not None:
        return head.id
    if root_message_id is not None and message_repo.get(root_message_id) is not None:
        return root_message_id
    raise IntegrityViolationError(
        f"Cannot resolve an insertion point in branch {parent_branch_id} "
        f"(no head, fork point {root_message_id!r} missing)"
    )


def merge_branch(
    branch_id: str,
    message_repo: MessageRepository,
    branch_repo: BranchRepository,
    generator: TextGenerator | None,
    *,
    max_messages: int = 20,
    max_chars: int = 1000,
    timeout: float = 30.0,
    strategy: LineageStrategy = "recursive",
    max_depth: int = 10_000,
) -> MergeResult:
    """Summarize *branch_id* into its parent branch.

    Args:
        branch_id: Branch to merge.
        message_repo: Message repository.
        branch_repo: Branch repository.
        generator: Text generator for the summary; None forces the
            fallback summary.
        max_messages: Most-recent message cap for the transcript.
        max_chars: Per-message character cap for the transcript.
        timeout: Seconds allowed for summary generation.
        strategy: Lineage resolution strategy.
        max_depth: Maximum parent links followed when resolving lineage.

    Returns:
        :class:`MergeResult` with the appended summary message.

    Raises:
        BranchNotFoundError: If the branch does not exist.
        TopLevelMergeError: If the branch has no parent branch.
        AlreadyMergedError: If the branch was merged before.
        EmptyBranchError: If the branch has no messages.
        IntegrityViolationError: If the parent branch or the insertion
            point cannot be resolved.
    """
    branch = require_branch(branch_id, branch_repo)
    if branch.parent_branch_id is None:
        raise TopLevelMergeError(branch_id)
    if branch.is_merged:
        raise AlreadyMergedError(branch_id)

    head = get_head(branch_id, message_repo)
    if head is None:
        raise EmptyBranchError(branch_id)

    if branch_repo.get(branch.parent_branch_id) is None:
        raise IntegrityViolationError(
            f"Parent branch {branch.parent_branch_id} of {branch_id} does not exist"
        )

    history = resolve_lineage(
        head.id, message_repo, strategy=strategy, max_depth=max_depth
    )
    unique = unique_to_branch(history, branch.root_message_id)

    transcript = build_merge_transcript(
        unique, max_messages=max_messages, max_chars=max_chars
    )
    generation = bounded_complete(
        generator,
        MERGE_SUMMARY_SYSTEM,
        build_merge_prompt(branch.name, transcript),
        timeout=timeout,
        fallback=fallback_summary(branch.name, len(unique)),
    )

    insertion_id = resolve_insertion_point(
        branch.parent_branch_id, branch.root_message_id, message_repo
    )
    summary_message = append_message(
        branch.parent_branch_id,
        insertion_id,
        MessageRole.SYSTEM,
        compose_merge_message(branch.name, generation.text),
        message_repo,
        branch_repo,
    )
    branch_repo.set_merged(branch_id, True)

    logger.info(
        "Merged branch %s into %s (%d message(s) summarized%s)",
        branch_id,
        branch.parent_branch_id,
        len(unique),
        ", fallback summary" if generation.degraded else "",
    )
    return MergeResult(
        branch_id=branch_id,
        parent_branch_id=branch.parent_branch_id,
        summary_message=summary_message,
        summarized_count=len(unique),
        summary_degraded=generation.degraded,
    )
