"""branchtree log -- show the history leading to a message."""

from __future__ import annotations

import click

from branchtree.cli.formatting import format_history


@click.command()
@click.argument("target")
@click.pass_context
def log(ctx: click.Context, target: str) -> None:
    """Show history from the root to TARGET.

    TARGET is a message id or a branch id (the branch head is used).
    Messages with alternate timelines show their position as ``i/n``.
    """
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        message = f.get_message(target)
        if message is None:
            f.get_branch(target)
            message = f.get_head(target)
        if message is None:
            console.print("[dim]No messages.[/dim]")
            return
        format_history(f.history_with_siblings(message.id), console)
