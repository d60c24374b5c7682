"""branchtree rename -- rename a branch."""

from __future__ import annotations

import click
from rich.markup import escape


@click.command()
@click.argument("branch_id")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, branch_id: str, name: str) -> None:
    """Rename BRANCH_ID to NAME."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        branch = f.rename_branch(branch_id, name)
        console.print(f"Renamed to [green]{escape(branch.name)}[/green]", highlight=False)
