"""branchtree fork -- branch off from a message."""

from __future__ import annotations

import click

from branchtree.cli.commands.say import ROLES
from branchtree.cli.formatting import format_branch_created, format_message


@click.command()
@click.argument("message_id")
@click.argument("content")
@click.option("-n", "--name", default=None, help="Branch name.")
@click.option(
    "--role",
    type=click.Choice(ROLES, case_sensitive=False),
    default="user",
    help="Role of the first message (default: user).",
)
@click.pass_context
def fork(ctx: click.Context, message_id: str, content: str, name: str | None, role: str) -> None:
    """Start a new branch at MESSAGE_ID whose first message is CONTENT."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        branch, first = f.fork(
            message_id,
            content,
            user_id=ctx.obj["user_id"],
            role=role.lower(),
            branch_name=name,
        )
        format_branch_created(branch, console)
        format_message(first, console)
