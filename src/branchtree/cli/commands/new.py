"""branchtree new -- start a conversation."""

from __future__ import annotations

import click

from branchtree.cli.formatting import format_branch_created


@click.command()
@click.option("-n", "--name", default=None, help="Conversation name (timestamped if omitted).")
@click.option("-s", "--system", "system_prompt", default=None, help="Seed system prompt.")
@click.pass_context
def new(ctx: click.Context, name: str | None, system_prompt: str | None) -> None:
    """Create a new top-level conversation."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        branch, _ = f.create_conversation(
            ctx.obj["user_id"], name=name, system_prompt=system_prompt
        )
        format_branch_created(branch, console)
