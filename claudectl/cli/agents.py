"""Agent management commands: list, delete, prune, clean."""

from typing import Optional, Sequence

import click
from rich.markup import escape

from claudectl.cli._utils import console, exit_with_error, format_time_ago
from claudectl.config import load_config
from claudectl.errors import ClaudectlError
from claudectl.terminal import TERMINAL_NAMES, get_terminal_name
from claudectl.workflows import (
    CleanRequest,
    CleanState,
    CleanWorkflow,
    DeleteRequest,
    DeleteState,
    DeleteWorkflow,
    PruneRequest,
    PruneState,
    PruneWorkflow,
    list_agents,
)
from claudectl.workflows.common import AgentRef, RemovalFailure


def _print_targets(targets: Sequence[AgentRef], show_repo: bool = False) -> None:
    for ref in targets:
        suffix = f" [dim]({ref.repo_hash})[/dim]" if show_repo else ""
        console.print(f"  [green]{ref.name}[/green] [dim]{escape(ref.worktree.branch)}[/dim]{suffix}")


def _print_failures(failures: Sequence[RemovalFailure]) -> None:
    for failure in failures:
        console.print(f"  [red]✗ {failure.name}[/red] [dim]{escape(failure.message)}[/dim]")


def _finish_cancelled_or_failed(state) -> None:
    """Handle a workflow that ended in error: cancellation exits 0, anything else 1."""
    if state.cancelled:
        console.print(f"[yellow]{state.error}[/yellow]")
        return
    exit_with_error(state.error or "Unknown error")


@click.command("list")
@click.option("--all", "all_repos", is_flag=True, help="List agents in every repository")
def list_command(all_repos: bool) -> None:
    """List agents for the current repository."""
    config = load_config()
    try:
        report = list_agents(config, all_repos=all_repos)
    except ClaudectlError as e:
        exit_with_error(str(e))

    if not report.repos:
        console.print("[dim]No agents found.[/dim]")
        console.print("[dim]Use 'claudectl spawn' to create new agents.[/dim]")
        return

    for repo in report.repos:
        console.print(f"[bold cyan]{escape(repo.repo_name)}[/bold cyan] [dim]({repo.repo_hash})[/dim]")
        for agent in repo.agents:
            console.print(
                f"  [green]{agent.name:<8}[/green] [dim]{escape(agent.branch)}[/dim]  "
                f"[dim]{format_time_ago(agent.modified)}[/dim]"
            )
        console.print()

    console.print(f"[dim]Total: {report.total} agent(s)[/dim]")


@click.command()
@click.argument("agent_name")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
def delete(agent_name: str, force: bool) -> None:
    """Delete one agent's worktree."""
    config = load_config()

    def confirm(state: DeleteState) -> bool:
        return click.confirm(f"Delete agent '{agent_name}' at {state.worktree_path}?", default=False)

    state = DeleteWorkflow(
        DeleteRequest(agent_name=agent_name, force=force),
        config,
        confirm=confirm,
    ).run()

    if state.phase == "error":
        _finish_cancelled_or_failed(state)
        return

    console.print(f"[green]✓ Deleted {agent_name}[/green]")


@click.command()
@click.option("--all", "all_repos", is_flag=True, help="Prune every repository")
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
def prune(all_repos: bool, force: bool) -> None:
    """Remove all agent worktrees."""
    config = load_config()

    def confirm(state: PruneState) -> bool:
        console.print(f"[bold]{len(state.targets)} agent(s) will be removed:[/bold]")
        _print_targets(state.targets, show_repo=all_repos)
        return click.confirm("Continue?", default=False)

    state = PruneWorkflow(
        PruneRequest(all_repos=all_repos, force=force),
        config,
        confirm=confirm,
    ).run()

    if state.phase == "error":
        _finish_cancelled_or_failed(state)
        return

    if not state.targets:
        console.print("[dim]No agents to prune.[/dim]")
        return

    console.print(f"[green]✓ Removed {state.removed} agent(s)[/green]")
    if state.failures:
        console.print(f"[red]{len(state.failures)} failed:[/red]")
        _print_failures(state.failures)
    if state.removed_repos:
        console.print(f"[dim]Removed {len(state.removed_repos)} empty repo(s)[/dim]")


@click.command()
@click.option(
    "--terminal",
    "-t",
    type=click.Choice(TERMINAL_NAMES),
    help="Terminal whose tabs to close (default: auto-detect)",
)
@click.option("--force", "-f", is_flag=True, help="Skip confirmation")
def clean(terminal: Optional[str], force: bool) -> None:
    """Close agent tabs and remove their worktrees."""
    config = load_config()

    def confirm(state: CleanState) -> bool:
        console.print(
            f"[bold]{len(state.targets)} agent(s) will be closed in "
            f"{get_terminal_name(state.terminal_name or '')} and removed:[/bold]"
        )
        _print_targets(state.targets)
        return click.confirm("Continue?", default=False)

    state = CleanWorkflow(
        CleanRequest(terminal=terminal, force=force),
        config,
        confirm=confirm,
    ).run()

    if state.phase == "error":
        _finish_cancelled_or_failed(state)
        return

    if not state.targets:
        console.print("[dim]No agents to clean.[/dim]")
        return

    console.print(f"[green]✓ Closed {state.tabs_closed} tab(s), removed {state.removed} agent(s)[/green]")
    if state.failures:
        console.print(f"[red]{len(state.failures)} failed:[/red]")
        _print_failures(state.failures)
