"""Fork Engine: start a new branch at any existing message.

Forking never mutates the source branch: the new branch records the fork
point in ``root_message_id`` and its first message links back to it via
``parent_id``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from branchtree.models.message import MessageRole
from branchtree.operations.branch import (
    append_message,
    create_branch,
    default_branch_name,
    require_message,
)
from branchtree.operations.rows import branch_info, now_utc

if TYPE_CHECKING:
    from branchtree.models.branch import BranchInfo
    from branchtree.models.message import MessageInfo
    from branchtree.storage.repositories import BranchRepository, MessageRepository

logger = logging.getLogger(__name__)


def fork(
    source_message_id: str,
    content: str,
    user_id: str,
    message_repo: MessageRepository,
    branch_repo: BranchRepository,
    *,
    role: MessageRole | str = MessageRole.USER,
    branch_name: str | None = None,
    name_prefix: str = "Branch",
) -> tuple[BranchInfo, MessageInfo]:
    """Create a branch rooted at *source_message_id* with one message.

    Args:
        source_message_id: Message to fork from (any branch).
        content: Body of the new branch's first message.
        user_id: Owner of the new branch.
        message_repo: Message repository.
        branch_repo: Branch repository.
        role: Role of the first message.
        branch_name: Display name; a timestamped label when omitted.
        name_prefix: Prefix for the default label.

    Returns:
        ``(branch, message)``; the message is the new branch's head.

    Raises:
        MessageNotFoundError: If the source message does not exist.
    """
    source = require_message(source_message_id, message_repo)

    branch_row = create_branch(
        user_id,
        branch_repo,
        name=branch_name if branch_name is not None else default_branch_name(name_prefix, now_utc()),
        root_message_id=source.id,
        parent_branch_id=source.branch_id,
    )
    message = append_message(
        branch_row.id, source.id, role, content, message_repo, branch_repo
    )
    logger.debug(
        "Forked branch %s from message %s in branch %s",
        branch_row.id,
        source.id,
        source.branch_id,
    )
    return branch_info(branch_row), message
