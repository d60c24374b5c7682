"""Message domain models for BranchTree.

MessageInfo is the SDK-facing model returned when querying messages.
MessageRole is the enum of speaker roles.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class MessageRole(str, enum.Enum):
    """Who authored a message.

    SYSTEM covers both seeded prompts and merge summaries.
    """

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    def __repr__(self) -> str:
        return self.value

    def __str__(self) -> str:
        return self.value


class MessageInfo(BaseModel):
    """SDK-facing message information model.

    Not an ORM model -- used for data transfer only.
    """

    id: str
    content: str
    role: MessageRole
    parent_id: Optional[str] = None
    branch_id: str
    is_head: bool = False
    created_at: datetime

    def to_llm_message(self) -> dict[str, str]:
        """Return the ``{role, content}`` pair consumed by text generation."""
        return {"role": self.role.value, "content": self.content}

    def __str__(self) -> str:
        preview = self.content if len(self.content) <= 60 else self.content[:57] + "..."
        return f"{self.id[:8]} [{self.role.value}] {preview}"


class SiblingSet(BaseModel):
    """Messages sharing one parent, with the position of the queried message.

    ``current_index`` is -1 when the queried message has no parent
    (or does not exist), in which case ``siblings`` is empty.
    """

    siblings: list[MessageInfo] = []
    current_index: int = -1

    @property
    def count(self) -> int:
        return len(self.siblings)

    def ids(self) -> list[str]:
        return [m.id for m in self.siblings]


class HistoryEntry(BaseModel):
    """One lineage element annotated for alternate-timeline navigation."""

    message: MessageInfo
    sibling_count: int = 1
    sibling_index: int = 0
