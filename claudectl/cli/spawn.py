"""Spawn command."""

from typing import Dict, Optional

import click
from rich.markup import escape

from claudectl.cli._utils import STATUS_COLORS, STATUS_LABELS, console, exit_with_error
from claudectl.config import load_config
from claudectl.terminal import TERMINAL_NAMES, get_terminal_name
from claudectl.workflows.spawn import (
    AgentRunState,
    AgentStatus,
    SpawnRequest,
    SpawnState,
    SpawnWorkflow,
)


class SpawnProgress:
    """Prints a line each time an agent's status changes."""

    def __init__(self) -> None:
        self._seen: Dict[str, AgentStatus] = {}

    def __call__(self, state: SpawnState) -> None:
        if state.request.dry_run:
            return
        for agent in state.agents:
            if self._seen.get(agent.name) == agent.status:
                continue
            if agent.name not in self._seen and agent.status == AgentStatus.PENDING:
                self._seen[agent.name] = agent.status
                continue
            self._seen[agent.name] = agent.status
            console.print(format_agent_line(agent))


def format_agent_line(agent: AgentRunState) -> str:
    color = STATUS_COLORS[agent.status]
    if agent.status == AgentStatus.RUNNING:
        marker = "✓"
    elif agent.status == AgentStatus.ERROR:
        marker = "✗"
    else:
        marker = "○"

    line = f"[dim]\\[{agent.name}][/dim] [{color}]{marker} {STATUS_LABELS[agent.status]}[/{color}]"
    if agent.status == AgentStatus.RUNNING:
        if agent.is_reused:
            line += " [dim](reused)[/dim]"
        line += f"\n    [dim]↳ {escape(agent.branch)}[/dim]"
    if agent.status == AgentStatus.ERROR and agent.error:
        line += f" [red dim]{escape(agent.error)}[/red dim]"
    return line


def print_dry_run(state: SpawnState) -> None:
    assert state.repo is not None and state.terminal_name is not None
    console.print("[bold]Dry run[/bold] [dim](no changes made)[/dim]\n")
    console.print(f"Terminal:    {get_terminal_name(state.terminal_name)}")
    console.print(f"Base branch: {escape(state.base_branch or 'repository default')}")
    console.print(f"Repo hash:   {state.repo.repo_hash}\n")
    console.print("[bold]Agents:[/bold]")
    for agent in state.agents:
        console.print(f"  [green]\\[{agent.name}][/green] → {escape(agent.branch)}")
    if state.reused_agents:
        names = ", ".join(a.name for a in state.reused_agents)
        console.print(f"\n[yellow]Reusing existing worktrees:[/yellow] {names}")


def print_summary(state: SpawnState) -> None:
    console.print()
    if state.failed_count:
        console.print(
            f"[green]{state.running_count} running[/green], "
            f"[red]{state.failed_count} failed[/red]"
        )
    else:
        console.print(f"[green]✓ Spawned {state.running_count} agent(s)[/green]")


@click.command()
@click.argument("count", type=int, required=False)
@click.option(
    "--terminal",
    "-t",
    type=click.Choice(TERMINAL_NAMES),
    help="Terminal to open agents in (default: auto-detect)",
)
@click.option("--branch", "-b", help="Base branch for new worktrees (default: current)")
@click.option("--task", "-T", help="Task description, used for branch naming")
@click.option("--agent", "-a", "agent_name", help="Spawn (or reuse) one specific agent")
@click.option("--clean", "-c", is_flag=True, help="Use fresh agents instead of reusing worktrees")
@click.option("--notify/--no-notify", default=None, help="Send a notification when done")
@click.option("--dry-run", is_flag=True, help="Show what would be done without doing it")
def spawn(
    count: Optional[int],
    terminal: Optional[str],
    branch: Optional[str],
    task: Optional[str],
    agent_name: Optional[str],
    clean: bool,
    notify: Optional[bool],
    dry_run: bool,
) -> None:
    """Spawn Claude agents, each in its own worktree and terminal tab."""
    config = load_config()
    request = SpawnRequest(
        count=config.default_count if count is None else count,
        terminal=terminal,
        branch=branch,
        task=task,
        agent_name=agent_name,
        clean=clean,
        notify=config.notify if notify is None else notify,
        dry_run=dry_run,
    )

    state = SpawnWorkflow(request, config, on_change=SpawnProgress()).run()

    if state.phase == "error":
        exit_with_error(state.error or "Spawn failed")

    if dry_run:
        print_dry_run(state)
        return

    print_summary(state)
