"""Branch Manager operations for BranchTree.

Create conversations, append messages under the single-head invariant,
resolve heads and siblings, rename, count, and delete branches.
Composes storage primitives (branch repo, message repo) into
higher-level actions.  Nothing here commits; callers own the transaction.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

from branchtree.exceptions import (
    BranchNotFoundError,
    InvalidBranchNameError,
    InvalidOperationError,
    MessageNotFoundError,
)
from branchtree.models.message import MessageRole, SiblingSet
from branchtree.operations.rows import branch_info, message_info, now_utc
from branchtree.storage.schema import BranchRow, MessageRow

if TYPE_CHECKING:
    from branchtree.models.branch import BranchInfo
    from branchtree.models.message import MessageInfo
    from branchtree.storage.repositories import BranchRepository, MessageRepository

logger = logging.getLogger(__name__)

_MAX_NAME_LENGTH = 200


def new_id() -> str:
    return str(uuid.uuid4())


def validate_branch_name(name: str) -> str:
    """Validate a display name and return it stripped.

    Raises InvalidBranchNameError on violation.
    """
    stripped = name.strip() if name else ""
    if not stripped:
        raise InvalidBranchNameError(name, "branch name cannot be empty")
    if len(stripped) > _MAX_NAME_LENGTH:
        raise InvalidBranchNameError(
            name, f"branch name cannot exceed {_MAX_NAME_LENGTH} characters"
        )
    if "\n" in stripped or "\r" in stripped:
        raise InvalidBranchNameError(name, "branch name must be a single line")
    return stripped


def default_conversation_name(prefix: str, when: datetime) -> str:
    """Timestamped label such as ``Chat Oct 19, 3:04 PM``."""
    hour = when.hour % 12 or 12
    meridiem = "AM" if when.hour < 12 else "PM"
    return f"{prefix} {when.strftime('%b')} {when.day}, {hour}:{when.minute:02d} {meridiem}"


def default_branch_name(prefix: str, when: datetime) -> str:
    """Millisecond-stamped label such as ``Branch 1760886245123``."""
    millis = int(when.replace(tzinfo=timezone.utc).timestamp() * 1000)
    return f"{prefix} {millis}"


def coerce_role(role: MessageRole | str) -> MessageRole:
    """Accept a MessageRole or its string value."""
    try:
        return MessageRole(role)
    except ValueError:
        raise InvalidOperationError(
            f"Invalid role {role!r}; expected one of "
            f"{', '.join(r.value for r in MessageRole)}"
        ) from None


def require_branch(branch_id: str, branch_repo: BranchRepository) -> BranchRow:
    row = branch_repo.get(branch_id)
    if row is None:
        raise BranchNotFoundError(branch_id)
    return row


def require_message(message_id: str, message_repo: MessageRepository) -> MessageRow:
    row = message_repo.get(message_id)
    if row is None:
        raise MessageNotFoundError(message_id)
    return row


def create_branch(
    user_id: str,
    branch_repo: BranchRepository,
    *,
    name: str,
    root_message_id: str | None = None,
    parent_branch_id: str | None = None,
) -> BranchRow:
    """Insert a branch row.  Top-level when *parent_branch_id* is None."""
    row = BranchRow(
        id=new_id(),
        name=validate_branch_name(name),
        root_message_id=root_message_id,
        parent_branch_id=parent_branch_id,
        is_merged=False,
        user_id=user_id,
        created_at=now_utc(),
    )
    branch_repo.save(row)
    logger.debug(
        "Created branch %s (parent=%s, root_message=%s)",
        row.id,
        parent_branch_id,
        root_message_id,
    )
    return row


def create_conversation(
    user_id: str,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    *,
    name: str | None = None,
    system_prompt: str | None = None,
    name_prefix: str = "Chat",
) -> tuple[BranchInfo, MessageInfo | None]:
    """Create a new top-level branch, optionally seeded with a system prompt.

    Returns:
        ``(branch, root_message)``; *root_message* is None without a prompt.
    """
    if name is None:
        name = default_conversation_name(name_prefix, now_utc())
    row = create_branch(user_id, branch_repo, name=name)

    root_message: MessageInfo | None = None
    if system_prompt:
        root_message = append_message(
            row.id, None, MessageRole.SYSTEM, system_prompt, message_repo, branch_repo
        )
    return branch_info(row), root_message


def append_message(
    branch_id: str,
    parent_id: str | None,
    role: MessageRole | str,
    content: str,
    message_repo: MessageRepository,
    branch_repo: BranchRepository,
) -> MessageInfo:
    """Append a message to a branch and make it the branch head.

    Clears every existing head of the branch, then inserts the new
    message with ``is_head=True``.  Both writes happen in the caller's
    transaction, so they commit or roll back together.  The clear runs
    even when *parent_id* is None, so a branch never holds two heads.

    Raises:
        BranchNotFoundError: If the branch does not exist.
        MessageNotFoundError: If *parent_id* is given but does not exist.
        InvalidOperationError: If *role* is not a valid role.
    """
    role = coerce_role(role)
    require_branch(branch_id, branch_repo)
    if parent_id is not None:
        require_message(parent_id, message_repo)

    cleared = message_repo.clear_heads(branch_id)
    if cleared > 1:
        logger.warning("Branch %s had %d heads; all cleared", branch_id, cleared)

    row = MessageRow(
        id=new_id(),
        content=content,
        role=role,
        parent_id=parent_id,
        branch_id=branch_id,
        is_head=True,
        created_at=now_utc(),
    )
    message_repo.save(row)
    logger.debug("Appended %s message %s to branch %s", role.value, row.id, branch_id)
    return message_info(row)


def get_head(branch_id: str, message_repo: MessageRepository) -> MessageInfo | None:
    """Return the head of a branch, or None if the branch is empty.

    If several heads are ever found the most recent one wins.
    """
    heads = message_repo.get_heads(branch_id)
    if not heads:
        return None
    if len(heads) > 1:
        logger.warning(
            "Branch %s has %d heads; using most recent %s",
            branch_id,
            len(heads),
            heads[0].id,
        )
    return message_info(heads[0])


def get_children(message_id: str, message_repo: MessageRepository) -> list[MessageInfo]:
    """Direct replies to a message in any branch, oldest first."""
    return [message_info(r) for r in message_repo.get_children(message_id)]


def get_siblings(message_id: str, message_repo: MessageRepository) -> SiblingSet:
    """Messages sharing this message's parent, across branches.

    A fork point's children include the next message of every branch
    forked from it, which is what alternate-timeline navigation walks.
    The set includes the message itself; ``current_index`` is its
    position.  A message without parent (or unknown) has no siblings.
    """
    row = message_repo.get(message_id)
    if row is None or row.parent_id is None:
        return SiblingSet()

    siblings = [message_info(r) for r in message_repo.get_children(row.parent_id)]
    index = next((i for i, m in enumerate(siblings) if m.id == message_id), -1)
    return SiblingSet(siblings=siblings, current_index=index)


def message_counts(
    branch_ids: Iterable[str], message_repo: MessageRepository
) -> dict[str, int]:
    return message_repo.count_by_branch(branch_ids)


def list_conversations(
    user_id: str,
    branch_repo: BranchRepository,
    *,
    with_counts: bool = True,
) -> list[BranchInfo]:
    """Top-level branches of *user_id*, newest first."""
    return [
        branch_info(row, count if with_counts else None)
        for row, count in branch_repo.list_conversations(user_id)
    ]


def rename_branch(
    branch_id: str, name: str, branch_repo: BranchRepository
) -> BranchInfo:
    """Change a branch's display name.

    Raises:
        BranchNotFoundError: If the branch does not exist.
        InvalidBranchNameError: If *name* is empty or malformed.
    """
    clean = validate_branch_name(name)
    require_branch(branch_id, branch_repo)
    branch_repo.rename(branch_id, clean)
    return branch_info(require_branch(branch_id, branch_repo))


def delete_branch(
    branch_id: str,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
) -> list[str]:
    """Delete a branch, its messages, and every descendant branch.

    Descendants are discovered with an explicit stack and a visited set,
    so deep or cyclic branch graphs cannot exhaust the call stack.

    Returns:
        Deleted branch ids, children before parents.

    Raises:
        BranchNotFoundError: If the branch does not exist.
    """
    require_branch(branch_id, branch_repo)

    discovered: list[str] = []
    visited: set[str] = set()
    stack = [branch_id]
    while stack:
        current = stack.pop()
        if current in visited:
            logger.warning("Branch cycle detected at %s; skipping", current)
            continue
        visited.add(current)
        discovered.append(current)
        for child in branch_repo.list_children(current):
            if child.id not in visited:
                stack.append(child.id)

    # Pre-order reversed: every descendant precedes its ancestors
    doomed = list(reversed(discovered))
    removed = message_repo.delete_by_branch(doomed)
    for bid in doomed:
        branch_repo.delete(bid)
    logger.debug(
        "Deleted branch %s: %d branch(es), %d message(s)",
        branch_id,
        len(doomed),
        removed,
    )
    return doomed
