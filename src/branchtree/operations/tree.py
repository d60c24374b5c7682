"""Tree Assembler: reconstruct branch hierarchies from the flat relation.

Given a root branch and the branches a user owns, computes the subset
reachable by following ``parent_branch_id`` forward.  The result equals
the fixed point of "add every branch whose parent is already in the set",
but is computed through a parent -> children index in linear time.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Sequence

from branchtree.exceptions import BranchNotFoundError
from branchtree.models.branch import BranchInfo, BranchNode
from branchtree.operations.rows import branch_info

if TYPE_CHECKING:
    from branchtree.storage.repositories import BranchRepository, MessageRepository


def children_index(branches: Sequence[BranchInfo]) -> dict[str, list[BranchInfo]]:
    """Map parent branch id -> child branches ordered by creation time."""
    index: dict[str, list[BranchInfo]] = defaultdict(list)
    for b in sorted(branches, key=lambda b: (b.created_at, b.id)):
        if b.parent_branch_id is not None:
            index[b.parent_branch_id].append(b)
    return index


def reachable_branches(
    root_branch_id: str, branches: Sequence[BranchInfo]
) -> list[BranchInfo]:
    """Branches reachable from *root_branch_id*, root first.

    Breadth-first over the children index with a visited set, so a
    malformed cyclic relation still terminates.  Returns an empty list if
    the root is not among *branches*.
    """
    by_id = {b.id: b for b in branches}
    if root_branch_id not in by_id:
        return []
    index = children_index(branches)

    ordered: list[BranchInfo] = [by_id[root_branch_id]]
    visited = {root_branch_id}
    cursor = 0
    while cursor < len(ordered):
        current = ordered[cursor]
        cursor += 1
        for child in index.get(current.id, []):
            if child.id not in visited:
                visited.add(child.id)
                ordered.append(child)
    return ordered


def build_branch_tree(root_branch_id: str, branches: Sequence[BranchInfo]) -> BranchNode:
    """Nest the reachable branches under their parents.

    Raises:
        BranchNotFoundError: If the root is not among *branches*.
    """
    reachable = reachable_branches(root_branch_id, branches)
    if not reachable:
        raise BranchNotFoundError(root_branch_id)

    nodes = {b.id: BranchNode(branch=b) for b in reachable}
    for b in reachable[1:]:
        parent = nodes.get(b.parent_branch_id)  # type: ignore[arg-type]
        if parent is not None:
            parent.children.append(nodes[b.id])
    for node in nodes.values():
        node.children.sort(key=lambda n: (n.branch.created_at, n.branch.id))
    return nodes[root_branch_id]


def get_tree(
    root_branch_id: str,
    user_id: str,
    branch_repo: BranchRepository,
    message_repo: MessageRepository,
    *,
    with_counts: bool = True,
) -> list[BranchInfo]:
    """All branches of *user_id* reachable from *root_branch_id*.

    Raises:
        BranchNotFoundError: If the root does not exist for this user.
    """
    owned = [branch_info(row) for row in branch_repo.list_by_user(user_id)]
    reachable = reachable_branches(root_branch_id, owned)
    if not reachable:
        raise BranchNotFoundError(root_branch_id)
    if with_counts:
        counts = message_repo.count_by_branch(b.id for b in reachable)
        reachable = [
            b.model_copy(update={"message_count": counts.get(b.id, 0)})
            for b in reachable
        ]
    return reachable
