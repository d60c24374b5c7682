"""SQLAlchemy ORM schema for BranchTree.

Defines all database tables: branches, messages, _branchtree_meta.

Both messages (a tree) and branches (a forest) are stored as flat
self-referential adjacency lists. MessageRole is imported from the domain
models -- it is NOT redefined here.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from branchtree.models.message import MessageRole


class Base(DeclarativeBase):
    """Base class for all BranchTree ORM models."""

    pass


class BranchRow(Base):
    """A named path of messages. Top-level when parent_branch_id is NULL."""

    __tablename__ = "branches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    # Fork point in the parent branch; NULL for a conversation
    root_message_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    parent_branch_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    is_merged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_branches_user_parent", "user_id", "parent_branch_id"),
    )


class MessageRow(Base):
    """A node in the message tree.

    parent_id deliberately carries no foreign key: the first message of a
    forked branch points into another branch, and lineage walks must
    tolerate a missing parent.
    """

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[MessageRole] = mapped_column(nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    branch_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("branches.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_head: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_messages_branch_head", "branch_id", "is_head"),
        Index("ix_messages_branch_time", "branch_id", "created_at"),
    )


class BranchTreeMetaRow(Base):
    """Key-value metadata (schema version)."""

    __tablename__ = "_branchtree_meta"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
