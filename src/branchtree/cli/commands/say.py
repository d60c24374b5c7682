"""branchtree say -- add a message to a branch."""

from __future__ import annotations

import click

from branchtree.cli.formatting import format_message

ROLES = ["user", "assistant", "system"]


@click.command()
@click.argument("branch_id")
@click.argument("content")
@click.option(
    "--role",
    type=click.Choice(ROLES, case_sensitive=False),
    default="user",
    help="Message role (default: user).",
)
@click.pass_context
def say(ctx: click.Context, branch_id: str, content: str, role: str) -> None:
    """Append CONTENT after the head of BRANCH_ID."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        info = f.extend(branch_id, content, role=role.lower())
        format_message(info, console)
