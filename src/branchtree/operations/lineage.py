"""Lineage resolution: root-to-node message history.

The walk follows ``parent_id`` across branch boundaries, so a message in
a forked branch resolves through the fork point into the parent branch.
Two strategies produce identical root-first output:

- ``walk``: one lookup per ancestor.
- ``recursive``: a single recursive query (see
  :meth:`MessageRepository.get_ancestors`).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from branchtree.operations.rows import message_info

if TYPE_CHECKING:
    from branchtree.models.config import LineageStrategy
    from branchtree.models.message import MessageInfo
    from branchtree.storage.repositories import MessageRepository
    from branchtree.storage.schema import MessageRow

logger = logging.getLogger(__name__)


def walk_ancestors(
    message_id: str,
    message_repo: MessageRepository,
    *,
    max_depth: int = 10_000,
) -> list[MessageRow]:
    """Collect ancestors one lookup at a time, root-first.

    Stops at a NULL parent, a missing parent (broken chain), or a repeated
    id.  At most *max_depth* parent links are followed, so the result holds
    at most ``max_depth + 1`` rows.
    """
    chain: list[MessageRow] = []
    seen: set[str] = set()
    current_id: str | None = message_id

    while current_id is not None and len(chain) <= max_depth:
        if current_id in seen:
            logger.warning("Cycle in message lineage at %s; truncating walk", current_id)
            break
        row = message_repo.get(current_id)
        if row is None:
            if chain:
                logger.warning(
                    "Broken lineage: parent %s of %s not found",
                    current_id,
                    chain[-1].id,
                )
            break
        seen.add(current_id)
        chain.append(row)
        current_id = row.parent_id

    chain.reverse()
    return chain


def resolve_lineage(
    message_id: str,
    message_repo: MessageRepository,
    *,
    strategy: LineageStrategy = "recursive",
    max_depth: int = 10_000,
) -> list[MessageInfo]:
    """Return the ordered history from the tree root to *message_id*.

    The last element is the message itself.  Returns an empty list if
    *message_id* does not exist.

    Args:
        message_id: The leaf message.
        message_repo: Message repository.
        strategy: ``"recursive"`` (single query) or ``"walk"``.
        max_depth: Maximum parent links followed from the leaf; the result
            holds at most ``max_depth + 1`` messages.
    """
    if strategy == "walk":
        rows: Sequence[MessageRow] = walk_ancestors(
            message_id, message_repo, max_depth=max_depth
        )
    elif strategy == "recursive":
        rows = message_repo.get_ancestors(message_id, max_depth=max_depth)
    else:
        raise ValueError(f"Unknown lineage strategy: {strategy!r}")
    return [message_info(r) for r in rows]


def format_history_for_generation(history: Sequence[MessageInfo]) -> list[dict[str, str]]:
    """Map a resolved lineage to ``{role, content}`` pairs only."""
    return [m.to_llm_message() for m in history]


def unique_to_branch(
    history: Sequence[MessageInfo],
    root_message_id: str | None,
) -> list[MessageInfo]:
    """Messages strictly after the fork point *root_message_id*.

    Falls back to the whole history when the fork point is absent from
    it (or the branch has none).
    """
    if root_message_id is not None:
        for index, msg in enumerate(history):
            if msg.id == root_message_id:
                return list(history[index + 1:])
        logger.warning(
            "Fork point %s not found in lineage; using full history",
            root_message_id,
        )
    return list(history)
