"""Shared utilities for CLI modules."""

import logging
import sys
from datetime import datetime
from typing import NoReturn, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from claudectl.workflows.spawn import AgentStatus

# Shared Rich console instance for all CLI modules
console = Console()

STATUS_COLORS = {
    AgentStatus.PENDING: "bright_black",
    AgentStatus.CLONING: "yellow",
    AgentStatus.CREATING_WORKTREE: "yellow",
    AgentStatus.RESETTING: "yellow",
    AgentStatus.SWITCHING_BRANCH: "yellow",
    AgentStatus.LAUNCHING: "cyan",
    AgentStatus.RUNNING: "green",
    AgentStatus.ERROR: "red",
}

STATUS_LABELS = {
    AgentStatus.PENDING: "Pending",
    AgentStatus.CLONING: "Cloning bare repo",
    AgentStatus.CREATING_WORKTREE: "Creating worktree",
    AgentStatus.RESETTING: "Resetting branch",
    AgentStatus.SWITCHING_BRANCH: "Switching branch",
    AgentStatus.LAUNCHING: "Launching terminal",
    AgentStatus.RUNNING: "Running",
    AgentStatus.ERROR: "Error",
}


def setup_logging(verbose: bool = False) -> None:
    """Send log records through Rich; DEBUG when verbose, else WARNING and up."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def format_time_ago(then: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Format a timestamp as a short relative age.

    Examples:
        30 seconds ago -> "just now"
        90 minutes ago -> "1h ago"
        10 days ago -> "1w ago"
    """
    if then is None:
        return "unknown"

    diff = (now or datetime.now()) - then
    minutes = int(diff.total_seconds() // 60)
    hours = minutes // 60
    days = hours // 24

    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return f"{days // 7}w ago"


def exit_with_error(message: str) -> NoReturn:
    console.print(f"[red]Error: {escape(message)}[/red]")
    sys.exit(1)


__all__ = [
    "STATUS_COLORS",
    "STATUS_LABELS",
    "console",
    "exit_with_error",
    "format_time_ago",
    "setup_logging",
]
