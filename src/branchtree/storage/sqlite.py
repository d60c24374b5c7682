"""SQLite implementations of repository interfaces.

All repositories use SQLAlchemy 2.0-style queries (select() + session.execute()).
Each repository takes a Session in its constructor.  Nothing here commits:
transaction boundaries belong to the caller.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Sequence

from sqlalchemy import Integer, delete, func, literal, select, update
from sqlalchemy.orm import Session, aliased

from branchtree.storage.repositories import BranchRepository, MessageRepository
from branchtree.storage.schema import BranchRow, MessageRow


class SqliteMessageRepository(MessageRepository):
    """SQLite implementation of message repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, message_id: str) -> MessageRow | None:
        stmt = select(MessageRow).where(MessageRow.id == message_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, message: MessageRow) -> None:
        self._session.add(message)
        self._session.flush()

    def get_ancestors(self, message_id: str, *, max_depth: int = 10_000) -> Sequence[MessageRow]:
        """Fetch the ancestor chain with one recursive CTE.

        The CTE starts at the leaf and follows parent_id backward.  A
        missing parent simply yields no further rows.  At most *max_depth*
        parent links are followed (``max_depth + 1`` rows); a repeated id
        (cyclic chain) truncates the result at the first repeat.
        """
        anchor = select(
            MessageRow.id.label("id"),
            MessageRow.parent_id.label("parent_id"),
            literal(0, Integer).label("depth"),
        ).where(MessageRow.id == message_id)
        chain = anchor.cte("ancestor_chain", recursive=True)

        parent = aliased(MessageRow)
        chain = chain.union_all(
            select(parent.id, parent.parent_id, chain.c.depth + 1).where(
                parent.id == chain.c.parent_id,
                chain.c.depth < max_depth,
            )
        )

        stmt = (
            select(MessageRow)
            .join(chain, MessageRow.id == chain.c.id)
            .order_by(chain.c.depth)
        )
        leaf_first = self._session.execute(stmt).scalars().all()

        seen: set[str] = set()
        ancestors: list[MessageRow] = []
        for row in leaf_first:
            if row.id in seen:
                break
            seen.add(row.id)
            ancestors.append(row)
        ancestors.reverse()
        return ancestors

    def get_children(self, parent_id: str) -> Sequence[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.parent_id == parent_id)
            .order_by(MessageRow.created_at, MessageRow.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def get_children_of(self, parent_ids: Iterable[str]) -> dict[str, list[MessageRow]]:
        ids = list(set(parent_ids))
        grouped: dict[str, list[MessageRow]] = defaultdict(list)
        if not ids:
            return dict(grouped)
        stmt = (
            select(MessageRow)
            .where(MessageRow.parent_id.in_(ids))
            .order_by(MessageRow.created_at, MessageRow.id)
        )
        for row in self._session.execute(stmt).scalars():
            grouped[row.parent_id].append(row)  # type: ignore[index]
        return dict(grouped)

    def get_heads(self, branch_id: str) -> Sequence[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.branch_id == branch_id, MessageRow.is_head.is_(True))
            .order_by(MessageRow.created_at.desc(), MessageRow.id.desc())
        )
        return list(self._session.execute(stmt).scalars().all())

    def clear_heads(self, branch_id: str) -> int:
        stmt = (
            update(MessageRow)
            .where(MessageRow.branch_id == branch_id, MessageRow.is_head.is_(True))
            .values(is_head=False)
            .execution_options(synchronize_session="fetch")
        )
        result = self._session.execute(stmt)
        return result.rowcount or 0

    def list_by_branch(self, branch_id: str, limit: int | None = None) -> Sequence[MessageRow]:
        stmt = (
            select(MessageRow)
            .where(MessageRow.branch_id == branch_id)
            .order_by(MessageRow.created_at, MessageRow.id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self._session.execute(stmt).scalars().all())

    def count_by_branch(self, branch_ids: Iterable[str]) -> dict[str, int]:
        ids = list(set(branch_ids))
        counts = {bid: 0 for bid in ids}
        if not ids:
            return counts
        stmt = (
            select(MessageRow.branch_id, func.count(MessageRow.id))
            .where(MessageRow.branch_id.in_(ids))
            .group_by(MessageRow.branch_id)
        )
        for branch_id, count in self._session.execute(stmt).all():
            counts[branch_id] = count
        return counts

    def delete_by_branch(self, branch_ids: Iterable[str]) -> int:
        ids = list(set(branch_ids))
        if not ids:
            return 0
        result = self._session.execute(
            delete(MessageRow)
            .where(MessageRow.branch_id.in_(ids))
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0


class SqliteBranchRepository(BranchRepository):
    """SQLite implementation of branch repository."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, branch_id: str) -> BranchRow | None:
        stmt = select(BranchRow).where(BranchRow.id == branch_id)
        return self._session.execute(stmt).scalar_one_or_none()

    def save(self, branch: BranchRow) -> None:
        self._session.add(branch)
        self._session.flush()

    def list_by_user(self, user_id: str) -> Sequence[BranchRow]:
        stmt = (
            select(BranchRow)
            .where(BranchRow.user_id == user_id)
            .order_by(BranchRow.created_at, BranchRow.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def list_conversations(self, user_id: str) -> Sequence[tuple[BranchRow, int]]:
        """Aggregate join so counts cost one query, not one per branch."""
        stmt = (
            select(BranchRow, func.count(MessageRow.id))
            .outerjoin(MessageRow, MessageRow.branch_id == BranchRow.id)
            .where(BranchRow.user_id == user_id, BranchRow.parent_branch_id.is_(None))
            .group_by(BranchRow.id)
            .order_by(BranchRow.created_at.desc(), BranchRow.id.desc())
        )
        return [(row, count) for row, count in self._session.execute(stmt).all()]

    def list_children(self, branch_id: str) -> Sequence[BranchRow]:
        stmt = (
            select(BranchRow)
            .where(BranchRow.parent_branch_id == branch_id)
            .order_by(BranchRow.created_at, BranchRow.id)
        )
        return list(self._session.execute(stmt).scalars().all())

    def set_merged(self, branch_id: str, merged: bool = True) -> None:
        row = self.get(branch_id)
        if row is not None:
            row.is_merged = merged
            self._session.flush()

    def rename(self, branch_id: str, name: str) -> None:
        row = self.get(branch_id)
        if row is not None:
            row.name = name
            self._session.flush()

    def delete(self, branch_id: str) -> None:
        self._session.execute(
            delete(BranchRow)
            .where(BranchRow.id == branch_id)
            .execution_options(synchronize_session="fetch")
        )
