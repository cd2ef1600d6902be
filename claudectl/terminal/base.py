"""Base terminal launcher interface."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Sequence

from claudectl.worktree import WorktreeInfo

log = logging.getLogger("claudectl.terminal")

# Exported into every agent tab so the tab can be found again later
AGENT_ENV_VAR = "CLAUDECTL_AGENT"


def tab_title(agent_name: str) -> str:
    return f"Claude [{agent_name}]"


class TerminalLauncher(ABC):
    """Opens and closes one terminal tab or session per agent."""

    name: str = ""

    @abstractmethod
    def is_available(self) -> bool:
        """Check whether this terminal can be controlled right now."""

    @abstractmethod
    def launch(self, agent_name: str, working_dir: Path, command: str) -> None:
        """Open a new tab for an agent and run command in it.

        Args:
            agent_name: Agent name, used for the tab title and environment
            working_dir: Agent's worktree
            command: Shell command to run

        Raises:
            TerminalError: If the tab could not be opened
        """

    def close_tabs(self, worktrees: Sequence[WorktreeInfo]) -> int:
        """Close the tabs belonging to the given agent worktrees.

        Best effort: any failure is logged and counts as nothing closed.

        Returns:
            Number of tabs closed
        """
        if not worktrees:
            return 0
        try:
            return self._close_tabs(worktrees)
        except Exception as e:
            log.warning("Could not close %s tabs: %s", self.name, e)
            return 0

    @abstractmethod
    def _close_tabs(self, worktrees: Sequence[WorktreeInfo]) -> int:
        pass
