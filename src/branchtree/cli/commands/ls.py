"""branchtree ls -- list conversations."""

from __future__ import annotations

import click

from branchtree.cli.formatting import format_conversations


@click.command()
@click.pass_context
def ls(ctx: click.Context) -> None:
    """List conversations of the current user, newest first."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        format_conversations(f.list_conversations(ctx.obj["user_id"]), console)
