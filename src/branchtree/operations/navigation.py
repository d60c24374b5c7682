"""Alternate-timeline navigation over sibling sets."""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from branchtree.models.message import HistoryEntry
from branchtree.operations.branch import get_head, get_siblings
from branchtree.operations.lineage import resolve_lineage

if TYPE_CHECKING:
    from branchtree.models.config import LineageStrategy
    from branchtree.models.message import MessageInfo
    from branchtree.storage.repositories import MessageRepository

Direction = Literal["prev", "next"]


def history_with_siblings(
    message_id: str,
    message_repo: MessageRepository,
    *,
    strategy: LineageStrategy = "recursive",
    max_depth: int = 10_000,
) -> list[HistoryEntry]:
    """Lineage of *message_id* with sibling count and position per message.

    Sibling sets for the whole lineage come from one bulk children query.
    Messages without a parent report a count of 1 at index 0.
    """
    history = resolve_lineage(
        message_id, message_repo, strategy=strategy, max_depth=max_depth
    )
    parent_ids = {m.parent_id for m in history if m.parent_id is not None}
    children = message_repo.get_children_of(parent_ids)

    entries: list[HistoryEntry] = []
    for msg in history:
        siblings = children.get(msg.parent_id, []) if msg.parent_id else []
        ids = [s.id for s in siblings]
        entries.append(
            HistoryEntry(
                message=msg,
                sibling_count=len(ids) or 1,
                sibling_index=ids.index(msg.id) if msg.id in ids else 0,
            )
        )
    return entries


def navigate_sibling(
    message_id: str,
    direction: Direction,
    message_repo: MessageRepository,
) -> MessageInfo | None:
    """Head of the branch holding the previous/next sibling.

    Returns None at either end of the sibling list, for a message without
    siblings, or when the target branch has no head.
    """
    if direction not in ("prev", "next"):
        raise ValueError(f"direction must be 'prev' or 'next', got {direction!r}")

    sibling_set = get_siblings(message_id, message_repo)
    if sibling_set.current_index < 0:
        return None
    target = sibling_set.current_index + (-1 if direction == "prev" else 1)
    if target < 0 or target >= sibling_set.count:
        return None
    return get_head(sibling_set.siblings[target].branch_id, message_repo)
