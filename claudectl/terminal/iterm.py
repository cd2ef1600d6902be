"""iTerm2 launcher, driven through AppleScript."""

import shlex
import subprocess
from pathlib import Path
from typing import Sequence

from claudectl.errors import TerminalError
from claudectl.terminal.base import AGENT_ENV_VAR, TerminalLauncher, tab_title
from claudectl.worktree import WorktreeInfo

LAUNCH_SCRIPT = """
tell application "iTerm2"
  tell current window
    create tab with default profile
    tell current session
      write text "{shell_line}"
    end tell
  end tell
end tell
"""

CLOSE_SCRIPT = """
tell application "iTerm2"
  set closedCount to 0
  repeat with aWindow in windows
    repeat with aTab in tabs of aWindow
      repeat with aSession in sessions of aTab
        try
          tell aSession
            set sessionPath to (variable named "session.path")
            if {path_checks} then
              tell aTab to close
              set closedCount to closedCount + 1
            end if
          end tell
        end try
      end repeat
    end repeat
  end repeat
  return closedCount
end tell
"""


def _applescript_quote(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def build_launch_script(agent_name: str, working_dir: Path, command: str) -> str:
    """Build the AppleScript that opens a tab, titles it and runs command."""
    # \e]1;...\a sets the tab title
    shell_line = (
        f"printf '\\e]1;{tab_title(agent_name)}\\a'; "
        f"export {AGENT_ENV_VAR}={shlex.quote(agent_name)}; "
        f"cd {shlex.quote(str(working_dir))} && {command}"
    )
    return LAUNCH_SCRIPT.format(shell_line=_applescript_quote(shell_line))


def build_close_script(paths: Sequence[Path]) -> str:
    """Build the AppleScript that closes every tab whose session is under one of paths."""
    path_checks = " or ".join(
        f'sessionPath starts with "{_applescript_quote(str(p))}"' for p in paths
    )
    return CLOSE_SCRIPT.format(path_checks=path_checks)


class ITermLauncher(TerminalLauncher):
    """Opens agents in iTerm2 tabs."""

    name = "iterm"

    def is_available(self) -> bool:
        try:
            result = subprocess.run(
                [
                    "osascript",
                    "-e",
                    'tell application "System Events" to (name of processes) contains "iTerm2"',
                ],
                check=True,
                capture_output=True,
                text=True,
            )
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False
        return result.stdout.strip() == "true"

    def launch(self, agent_name: str, working_dir: Path, command: str) -> None:
        script = build_launch_script(agent_name, working_dir, command)
        try:
            subprocess.run(["osascript", "-e", script], check=True, capture_output=True, text=True)
        except subprocess.CalledProcessError as e:
            raise TerminalError(
                f"Failed to open iTerm2 tab for {agent_name}: {(e.stderr or '').strip()}"
            ) from e
        except FileNotFoundError as e:
            raise TerminalError("osascript not found; iTerm2 requires macOS") from e

    def _close_tabs(self, worktrees: Sequence[WorktreeInfo]) -> int:
        script = build_close_script([wt.path for wt in worktrees])
        result = subprocess.run(
            ["osascript", "-e", script], check=True, capture_output=True, text=True
        )
        try:
            return int(result.stdout.strip())
        except ValueError:
            return 0
