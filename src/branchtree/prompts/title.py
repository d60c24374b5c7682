"""Branch title generation prompts."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from branchtree.models.message import MessageInfo

BRANCH_TITLE_SYSTEM: str = (
    "You name conversation branches. Reply with a title of at most six words "
    "that captures the topic. Return ONLY the title: no quotes, no trailing "
    "punctuation, no prefix."
)

_MAX_INPUT_CHARS = 2000


def build_title_prompt(messages: Sequence[MessageInfo]) -> str:
    """Build the user prompt from the first messages of a branch."""
    lines = [f"{m.role.value}: {m.content}" for m in messages]
    text = "\n".join(lines)
    truncated = text[:_MAX_INPUT_CHARS]
    if len(text) > _MAX_INPUT_CHARS:
        truncated += "..."
    return f"Suggest a title for this conversation branch:\n\n{truncated}"


def clean_title(raw: str, max_chars: int) -> str:
    """Normalize a generated title: first line, no quotes, bounded length."""
    title = raw.strip().splitlines()[0] if raw.strip() else ""
    if title.lower().startswith("title:"):
        title = title[len("title:"):]
    title = title.strip().strip("\"'`*").rstrip(".").strip()
    if len(title) > max_chars:
        title = title[:max_chars].rstrip()
    return title
