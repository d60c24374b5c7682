"""branchtree rm -- delete a branch and its sub-branches."""

from __future__ import annotations

import click


@click.command()
@click.argument("branch_id")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def rm(ctx: click.Context, branch_id: str, yes: bool) -> None:
    """Delete BRANCH_ID, its messages and every descendant branch."""
    from branchtree.cli import _forest_session

    with _forest_session(ctx) as (f, console):
        if not yes and not click.confirm(f"Delete branch {branch_id} and its sub-branches?"):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        deleted = f.delete_branch(branch_id)
        console.print(f"Deleted {len(deleted)} branch(es).")
