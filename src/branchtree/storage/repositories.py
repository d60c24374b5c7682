"""Abstract repository interfaces for BranchTree storage.

Defines ABC interfaces for all database operations. No SQLAlchemy
imports here -- pure abstract contracts.

Concrete implementations are in sqlite.py.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, Sequence

if TYPE_CHECKING:
    from branchtree.storage.schema import BranchRow, MessageRow


class MessageRepository(ABC):
    """Abstract interface for message storage operations."""

    @abstractmethod
    def get(self, message_id: str) -> MessageRow | None:
        """Get a message by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, message: MessageRow) -> None:
        """Insert a message."""
        ...

    @abstractmethod
    def get_ancestors(self, message_id: str, *, max_depth: int = 10_000) -> Sequence[MessageRow]:
        """Fetch the full ancestor chain in a single round trip.

        Returns messages root-first, ending with *message_id* itself.
        Stops at a NULL parent or a parent that does not exist.  Returns
        an empty list if *message_id* does not exist.
        """
        ...

    @abstractmethod
    def get_children(self, parent_id: str) -> Sequence[MessageRow]:
        """Get all messages whose parent_id is *parent_id*, oldest first."""
        ...

    @abstractmethod
    def get_children_of(self, parent_ids: Iterable[str]) -> dict[str, list[MessageRow]]:
        """Bulk variant of get_children keyed by parent id."""
        ...

    @abstractmethod
    def get_heads(self, branch_id: str) -> Sequence[MessageRow]:
        """Get messages flagged is_head in a branch, newest first."""
        ...

    @abstractmethod
    def clear_heads(self, branch_id: str) -> int:
        """Unset is_head on every message of a branch. Returns rows touched."""
        ...

    @abstractmethod
    def list_by_branch(self, branch_id: str, limit: int | None = None) -> Sequence[MessageRow]:
        """Get messages of a branch, oldest first."""
        ...

    @abstractmethod
    def count_by_branch(self, branch_ids: Iterable[str]) -> dict[str, int]:
        """Message counts per branch id via one aggregate query.

        Branches with no messages map to 0.
        """
        ...

    @abstractmethod
    def delete_by_branch(self, branch_ids: Iterable[str]) -> int:
        """Delete all messages owned by the given branches."""
        ...


class BranchRepository(ABC):
    """Abstract interface for branch storage operations."""

    @abstractmethod
    def get(self, branch_id: str) -> BranchRow | None:
        """Get a branch by id. Returns None if not found."""
        ...

    @abstractmethod
    def save(self, branch: BranchRow) -> None:
        """Insert a branch."""
        ...

    @abstractmethod
    def list_by_user(self, user_id: str) -> Sequence[BranchRow]:
        """All branches owned by a user, oldest first."""
        ...

    @abstractmethod
    def list_conversations(self, user_id: str) -> Sequence[tuple[BranchRow, int]]:
        """Top-level branches of a user, newest first, with message counts."""
        ...

    @abstractmethod
    def list_children(self, branch_id: str) -> Sequence[BranchRow]:
        """Branches whose parent_branch_id is *branch_id*, oldest first."""
        ...

    @abstractmethod
    def set_merged(self, branch_id: str, merged: bool = True) -> None:
        """Flip the is_merged flag."""
        ...

    @abstractmethod
    def rename(self, branch_id: str, name: str) -> None:
        """Change the display name."""
        ...

    @abstractmethod
    def delete(self, branch_id: str) -> None:
        """Delete a single branch row (messages cascade)."""
        ...
