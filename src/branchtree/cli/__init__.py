"""BranchTree CLI -- terminal interface for branching conversation trees.

This module is NEVER imported from branchtree/__init__.py.
It is only loaded via the ``branchtree`` entry point defined in pyproject.toml.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

try:
    import click
except ImportError:
    raise ImportError(
        "CLI dependencies not installed. Install with: pip install branchtree[cli]"
    ) from None

from branchtree.cli.formatting import format_error, get_console

if TYPE_CHECKING:
    from collections.abc import Iterator

    from rich.console import Console

    from branchtree.forest import Forest


@click.group()
@click.option(
    "--db",
    default=".branchtree.db",
    envvar="BRANCHTREE_DB",
    help="Path to branchtree database.",
)
@click.option(
    "--user",
    "user_id",
    default="local",
    envvar="BRANCHTREE_USER",
    help="User id that owns created and listed conversations.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, db: str, user_id: str, verbose: bool) -> None:
    """BranchTree: branching conversations with fork and merge."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db
    ctx.obj["user_id"] = user_id


def _get_forest(ctx: click.Context, *, with_llm: bool = False) -> Forest:
    """Open a Forest from Click context.

    With *with_llm*, an OpenAI-compatible generator is attached when an
    API key is present in the environment.
    """
    import os

    from branchtree.forest import Forest

    forest = Forest.open(path=ctx.obj["db_path"])
    if with_llm and os.environ.get("BRANCHTREE_OPENAI_API_KEY"):
        from branchtree.llm.client import OpenAIClient

        forest.configure_generator(OpenAIClient())
    return forest


@contextmanager
def _forest_session(
    ctx: click.Context, *, with_llm: bool = False
) -> Iterator[tuple[Forest, Console]]:
    """Context manager that opens a Forest, yields (forest, console), and handles cleanup.

    Ensures the forest is closed on exit and formats exceptions as CLI errors.
    A generator whose timed-out call is still running is left open.
    """
    from branchtree.llm.generator import generations_in_flight

    console = get_console()
    try:
        f = _get_forest(ctx, with_llm=with_llm)
        try:
            yield f, console
        finally:
            generator = f.generator
            f.close()
            if generator is not None and hasattr(generator, "close"):
                if generations_in_flight():
                    logging.getLogger(__name__).debug(
                        "Generation still running; leaving the client open"
                    )
                else:
                    generator.close()
    except SystemExit:
        raise
    except Exception as e:
        format_error(str(e), console)
        raise SystemExit(1) from None


# Register subcommands after cli group is defined
from branchtree.cli.commands.new import new  # noqa: E402
from branchtree.cli.commands.say import say  # noqa: E402
from branchtree.cli.commands.log import log  # noqa: E402
from branchtree.cli.commands.fork import fork  # noqa: E402
from branchtree.cli.commands.merge import merge  # noqa: E402
from branchtree.cli.commands.tree import tree  # noqa: E402
from branchtree.cli.commands.ls import ls  # noqa: E402
from branchtree.cli.commands.rename import rename  # noqa: E402
from branchtree.cli.commands.rm import rm  # noqa: E402

cli.add_command(new)
cli.add_command(say)
cli.add_command(log)
cli.add_command(fork)
cli.add_command(merge)
cli.add_command(tree)
cli.add_command(ls)
cli.add_command(rename)
cli.add_command(rm)
