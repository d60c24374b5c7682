"""Row <-> model conversion and the storage clock."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from branchtree.models.branch import BranchInfo
from branchtree.models.message import MessageInfo

if TYPE_CHECKING:
    from branchtree.storage.schema import BranchRow, MessageRow

_clock_lock = threading.Lock()
_last_timestamp: datetime | None = None


def now_utc() -> datetime:
    """Naive UTC timestamp, strictly increasing within this process.

    Creation order of siblings and heads is defined by ``created_at``, so
    two records created within the same clock tick are pushed apart by
    one microsecond.
    """
    global _last_timestamp
    with _clock_lock:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        if _last_timestamp is not None and now <= _last_timestamp:
            now = _last_timestamp + timedelta(microseconds=1)
        _last_timestamp = now
        return now


def message_info(row: MessageRow) -> MessageInfo:
    """Convert a MessageRow to MessageInfo."""
    return MessageInfo(
        id=row.id,
        content=row.content,
        role=row.role,
        parent_id=row.parent_id,
        branch_id=row.branch_id,
        is_head=row.is_head,
        created_at=row.created_at,
    )


def branch_info(row: BranchRow, message_count: int | None = None) -> BranchInfo:
    """Convert a BranchRow to BranchInfo."""
    return BranchInfo(
        id=row.id,
        name=row.name,
        root_message_id=row.root_message_id,
        parent_branch_id=row.parent_branch_id,
        is_merged=row.is_merged,
        user_id=row.user_id,
        created_at=row.created_at,
        message_count=message_count,
    )
