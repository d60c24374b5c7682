"""branchtree merge -- fold a branch back into its parent."""

from __future__ import annotations

import click

from branchtree.cli.formatting import format_merge_result


@click.command()
@click.argument("branch_id")
@click.pass_context
def merge(ctx: click.Context, branch_id: str) -> None:
    """Summarize BRANCH_ID into its parent branch.

    Uses the OpenAI-compatible API when BRANCHTREE_OPENAI_API_KEY is set;
    otherwise a placeholder summary is recorded.
    """
    from branchtree.cli import _forest_session

    with _forest_session(ctx, with_llm=True) as (f, console):
        result = f.merge(branch_id)
        format_merge_result(result, console)
