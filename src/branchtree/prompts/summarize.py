"""Merge summary prompts.

Provides the system prompt, the bounded transcript builder, and the
message templates used when a branch is folded back into its parent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from branchtree.models.message import MessageInfo

MERGE_SUMMARY_SYSTEM: str = (
    "You summarize a side branch of a conversation so it can be folded back "
    "into the main thread. Produce a concise technical summary.\n\n"
    "Guidelines:\n"
    "- List the key decisions made and the reasoning that settled them.\n"
    "- Record concrete changes: code, configuration, names, numbers.\n"
    "- State the conclusions reached.\n"
    "- Note open items or questions left unresolved.\n"
    "- Use short Markdown bullet lists under those headings; omit empty ones.\n"
    "- Do not greet, do not describe the conversation itself, do not speculate."
)

MERGE_HEADER_TEMPLATE: str = "**Merged branch: {name}**"

_TRUNCATION_MARK = "..."


def build_merge_transcript(
    messages: Sequence[MessageInfo],
    *,
    max_messages: int,
    max_chars: int,
) -> str:
    """Format messages as ``ROLE: content`` blocks with bounded size.

    Keeps only the most recent *max_messages* messages and cuts each
    message body to *max_chars* characters.
    """
    recent = list(messages)[-max_messages:]
    blocks: list[str] = []
    for msg in recent:
        text = msg.content
        if len(text) > max_chars:
            text = text[:max_chars] + _TRUNCATION_MARK
        blocks.append(f"{msg.role.value.upper()}: {text}")
    return "\n\n".join(blocks)


def build_merge_prompt(branch_name: str, transcript: str) -> str:
    """Build the user prompt for the summary request."""
    return (
        f"Branch name: {branch_name}\n\n"
        f"Summarize this branch transcript:\n\n"
        f"{transcript}"
    )


def fallback_summary(branch_name: str, message_count: int) -> str:
    """Deterministic placeholder used when summarization is unavailable."""
    return (
        f"Summary unavailable. Branch '{branch_name}' contributed "
        f"{message_count} message(s); open the branch to review them."
    )


def compose_merge_message(branch_name: str, summary: str) -> str:
    """Body of the system message appended to the parent branch."""
    return f"{MERGE_HEADER_TEMPLATE.format(name=branch_name)}\n\n{summary}"
