"""Kitty launcher, driven through kitty's remote control (`kitten @`)."""

import logging
import subprocess
from pathlib import Path
from typing import Sequence

from claudectl.errors import TerminalError
from claudectl.terminal.base import AGENT_ENV_VAR, TerminalLauncher, tab_title
from claudectl.worktree import WorktreeInfo

log = logging.getLogger("claudectl.terminal.kitty")


class KittyLauncher(TerminalLauncher):
    """Opens agents in kitty tabs."""

    name = "kitty"

    def is_available(self) -> bool:
        try:
            subprocess.run(["kitten", "@", "ls"], check=True, capture_output=True)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def launch(self, agent_name: str, working_dir: Path, command: str) -> None:
        cmd = [
            "kitten",
            "@",
            "launch",
            "--type=tab",
            "--hold",
            f"--tab-title={tab_title(agent_name)}",
            f"--cwd={working_dir}",
            f"--env={AGENT_ENV_VAR}={agent_name}",
            "zsh",
            "-l",
            "-c",
            command,
        ]
        try:
            subprocess.run(cmd, check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise TerminalError(
                f"Failed to open kitty tab for {agent_name}: {(e.stderr or '').strip()}"
            ) from e
        except FileNotFoundError as e:
            raise TerminalError("kitten not found; is kitty installed?") from e

    def _close_tabs(self, worktrees: Sequence[WorktreeInfo]) -> int:
        closed = 0
        for wt in worktrees:
            try:
                subprocess.run(
                    ["kitten", "@", "close-tab", "--match", f"env:{AGENT_ENV_VAR}={wt.name}"],
                    check=True,
                    capture_output=True,
                )
                closed += 1
            except subprocess.CalledProcessError:
                # Tab already closed
                log.debug("No kitty tab for %s", wt.name)
        return closed
