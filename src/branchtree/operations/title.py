"""Branch title generation.

Replaces a branch's timestamped default name with a short generated
title.  Failures leave the name unchanged.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from branchtree.llm.generator import bounded_complete
from branchtree.operations.branch import require_branch
from branchtree.operations.rows import message_info
from branchtree.prompts.title import BRANCH_TITLE_SYSTEM, build_title_prompt, clean_title

if TYPE_CHECKING:
    from branchtree.llm.protocols import TextGenerator
    from branchtree.storage.repositories import BranchRepository, MessageRepository

logger = logging.getLogger(__name__)

_TITLE_SAMPLE_MESSAGES = 4


def title_branch(
    branch_id: str,
    message_repo: MessageRepository,
    branch_repo: BranchRepository,
    generator: TextGenerator | None,
    *,
    timeout: float = 30.0,
    max_chars: int = 60,
) -> str:
    """Generate and store a title for *branch_id*; return the effective name.

    Uses the branch's first few messages.  Without messages, on generator
    failure, or on an unusable result the current name is kept.

    Raises:
        BranchNotFoundError: If the branch does not exist.
    """
    branch = require_branch(branch_id, branch_repo)
    sample = [
        message_info(r)
        for r in message_repo.list_by_branch(branch_id, limit=_TITLE_SAMPLE_MESSAGES)
    ]
    if not sample:
        return branch.name

    generation = bounded_complete(
        generator,
        BRANCH_TITLE_SYSTEM,
        build_title_prompt(sample),
        timeout=timeout,
        fallback="",
    )
    if generation.degraded:
        return branch.name

    title = clean_title(generation.text, max_chars)
    if not title:
        logger.warning("Generated title for branch %s was unusable", branch_id)
        return branch.name

    branch_repo.rename(branch_id, title)
    logger.debug("Titled branch %s: %s", branch_id, title)
    return title
