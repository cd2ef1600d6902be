"""Tmux launcher. Each agent gets its own detached session."""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence

from claudectl.errors import TerminalError
from claudectl.terminal.base import AGENT_ENV_VAR, TerminalLauncher, tab_title
from claudectl.worktree import WorktreeInfo

log = logging.getLogger("claudectl.terminal.tmux")

SESSION_PREFIX = "claudectl"


def get_session_name(agent_name: str) -> str:
    """Get the tmux session name for an agent, like "claudectl-alice"."""
    return f"{SESSION_PREFIX}-{agent_name}"


def session_exists(session_name: str) -> bool:
    """Check if a tmux session exists.

    Args:
        session_name: Name of the session

    Returns:
        True if session exists
    """
    try:
        subprocess.run(
            ["tmux", "has-session", "-t", session_name],
            check=True,
            capture_output=True,
        )
        return True
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


def create_session(
    session_name: str,
    working_dir: Path,
    window_name: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
) -> None:
    """Create a new detached tmux session.

    Args:
        session_name: Name for the new session
        working_dir: Working directory for the session
        window_name: Optional name for the first window
        env: Environment variables to set in the session
    """
    cmd = ["tmux", "new-session", "-d", "-s", session_name, "-c", str(working_dir)]
    if window_name:
        cmd += ["-n", window_name]
    for key, value in (env or {}).items():
        cmd += ["-e", f"{key}={value}"]
    subprocess.run(cmd, check=True, capture_output=True, text=True)


def send_keys(session_name: str, keys: str) -> None:
    """Type keys into a session literally, then press Enter."""
    subprocess.run(
        ["tmux", "send-keys", "-t", session_name, "-l", keys],
        check=True,
        capture_output=True,
        text=True,
    )
    subprocess.run(
        ["tmux", "send-keys", "-t", session_name, "Enter"],
        check=True,
        capture_output=True,
        text=True,
    )


def kill_session(session_name: str) -> bool:
    """Kill a tmux session.

    Returns:
        True if a session was killed
    """
    try:
        subprocess.run(
            ["tmux", "kill-session", "-t", session_name],
            check=True,
            capture_output=True,
        )
        return True
    except subprocess.CalledProcessError:
        # Session doesn't exist or already killed
        return False


class TmuxLauncher(TerminalLauncher):
    """Runs agents in detached tmux sessions named claudectl-<agent>."""

    name = "tmux"

    def is_available(self) -> bool:
        try:
            subprocess.run(["tmux", "-V"], check=True, capture_output=True)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def launch(self, agent_name: str, working_dir: Path, command: str) -> None:
        session_name = get_session_name(agent_name)
        try:
            if session_exists(session_name):
                log.info("Replacing existing tmux session %s", session_name)
                kill_session(session_name)
            create_session(
                session_name,
                working_dir,
                window_name=tab_title(agent_name),
                env={AGENT_ENV_VAR: agent_name},
            )
            send_keys(session_name, command)
        except subprocess.CalledProcessError as e:
            raise TerminalError(
                f"Failed to start tmux session {session_name}: {(e.stderr or '').strip()}"
            ) from e
        except FileNotFoundError as e:
            raise TerminalError("tmux not found") from e

    def _close_tabs(self, worktrees: Sequence[WorktreeInfo]) -> int:
        return sum(1 for wt in worktrees if kill_session(get_session_name(wt.name)))
