"""branchtree tree -- show a conversation's branches."""

from __future__ import annotations

import click

from branchtree.cli.formatting import format_tree


@click.command()
@click.argument("branch_id")
@click.pass_context
def tree(ctx: click.Context, branch_id: str) -> None:
    """Show every branch reachable from BRANCH_ID."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        format_tree(f.build_tree(branch_id, ctx.obj["user_id"]), console)
