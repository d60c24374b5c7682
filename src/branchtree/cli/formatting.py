"""Rich formatting helpers for the BranchTree CLI.

Provides functions that format SDK data structures for terminal display.
Rich auto-detects TTY and degrades gracefully when piped (no ANSI codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

if TYPE_CHECKING:
    from branchtree.models.branch import BranchInfo, BranchNode
    from branchtree.models.merge import MergeResult
    from branchtree.models.message import HistoryEntry, MessageInfo

_ROLE_STYLES = {"user": "cyan", "assistant": "green", "system": "magenta"}


def get_console() -> Console:
    """Create a Rich Console that auto-detects TTY for graceful pipe degradation."""
    return Console(stderr=False)


def _preview(text: str, width: int = 60) -> str:
    first = text.strip().splitlines()[0] if text.strip() else ""
    if len(first) > width:
        first = first[: width - 3] + "..."
    return escape(first)


def format_message(info: MessageInfo, console: Console) -> None:
    """Display a single message line."""
    style = _ROLE_STYLES.get(str(info.role), "white")
    console.print(
        f"[yellow]{info.id[:8]}[/yellow] [{style}]{info.role}[/{style}]: "
        f"{_preview(info.content)}",
        highlight=False,
    )


def format_branch_created(branch: BranchInfo, console: Console) -> None:
    """Display a newly created branch or conversation."""
    console.print(
        f"Created [green]{escape(branch.name)}[/green] ([yellow]{branch.id}[/yellow])",
        highlight=False,
    )


def format_history(entries: list[HistoryEntry], console: Console) -> None:
    """Display a root-to-leaf history with sibling markers."""
    if not entries:
        console.print("[dim]No messages.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Id", style="yellow", width=8)
    table.add_column("Time", style="dim")
    table.add_column("Role", width=9)
    table.add_column("Alt", justify="right", style="cyan")
    table.add_column("Content")

    for entry in entries:
        msg = entry.message
        style = _ROLE_STYLES.get(str(msg.role), "white")
        alt = (
            f"{entry.sibling_index + 1}/{entry.sibling_count}"
            if entry.sibling_count > 1
            else ""
        )
        table.add_row(
            msg.id[:8],
            msg.created_at.strftime("%Y-%m-%d %H:%M"),
            f"[{style}]{msg.role}[/{style}]",
            alt,
            _preview(msg.content),
        )

    console.print(table)


def format_conversations(branches: list[BranchInfo], console: Console) -> None:
    """Display conversation list with message counts."""
    if not branches:
        console.print("[dim]No conversations.[/dim]")
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Id", style="yellow")
    table.add_column("Created", style="dim")
    table.add_column("Messages", justify="right", style="green")
    table.add_column("Name")

    for branch in branches:
        count = "" if branch.message_count is None else str(branch.message_count)
        table.add_row(
            branch.id,
            branch.created_at.strftime("%Y-%m-%d %H:%M"),
            count,
            escape(branch.name),
        )

    console.print(table)


def _branch_label(branch: BranchInfo) -> str:
    label = f"[bold]{escape(branch.name)}[/bold] [yellow]{branch.id[:8]}[/yellow]"
    if branch.message_count is not None:
        label += f" [dim]({branch.message_count} msg)[/dim]"
    if branch.is_merged:
        label += " [magenta]merged[/magenta]"
    return label


def format_tree(node: BranchNode, console: Console) -> None:
    """Display a conversation's branch hierarchy as a Rich tree."""
    root = Tree(_branch_label(node.branch))
    stack = [(root, child) for child in reversed(node.children)]
    while stack:
        parent, current = stack.pop()
        added = parent.add(_branch_label(current.branch))
        stack.extend((added, child) for child in reversed(current.children))
    console.print(root)


def format_merge_result(result: MergeResult, console: Console) -> None:
    """Display merge result."""
    console.print(
        f"Merged [yellow]{result.branch_id[:8]}[/yellow] into "
        f"[yellow]{result.parent_branch_id[:8]}[/yellow] "
        f"({result.summarized_count} message(s) summarized)",
        highlight=False,
    )
    if result.summary_degraded:
        console.print("[yellow]Summary unavailable; recorded a placeholder.[/yellow]")
    console.print(escape(result.summary_message.content), highlight=False)


def format_error(message: str, console: Console) -> None:
    """Display an error message."""
    console.print(f"[red]Error:[/red] {message}", highlight=False)
