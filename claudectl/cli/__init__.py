"""CLI for claudectl."""

import click

from claudectl import __version__
from claudectl.cli._utils import setup_logging
from claudectl.cli.agents import clean, delete, list_command, prune
from claudectl.cli.spawn import spawn


@click.group(invoke_without_command=True)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """claudectl: run several Claude agents side by side.

    Every agent gets its own git worktree and terminal tab. Running
    claudectl without a command spawns the default number of agents.
    """
    setup_logging(verbose)
    if ctx.invoked_subcommand is None:
        ctx.invoke(spawn)


main.add_command(spawn)
main.add_command(list_command)
main.add_command(delete)
main.add_command(prune)
main.add_command(clean)

__all__ = ["main"]
