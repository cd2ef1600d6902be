"""Terminal detection and launchers."""

import os
from typing import Mapping, Optional

from claudectl.errors import EnvironmentCheckError
from claudectl.terminal.base import AGENT_ENV_VAR, TerminalLauncher, tab_title
from claudectl.terminal.iterm import ITermLauncher
from claudectl.terminal.kitty import KittyLauncher
from claudectl.terminal.tmux import TmuxLauncher

LAUNCHERS: dict[str, type[TerminalLauncher]] = {
    "kitty": KittyLauncher,
    "iterm": ITermLauncher,
    "tmux": TmuxLauncher,
}

TERMINAL_NAMES = tuple(LAUNCHERS)

DISPLAY_NAMES = {
    "kitty": "Kitty",
    "iterm": "iTerm2",
    "tmux": "tmux",
}


def detect_terminal(env: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Detect which supported terminal we're running inside.

    Args:
        env: Environment to inspect (default: os.environ)

    Returns:
        "kitty", "iterm", "tmux", or None
    """
    if env is None:
        env = os.environ

    if env.get("KITTY_WINDOW_ID") or env.get("TERM") == "xterm-kitty":
        return "kitty"
    if env.get("TERM_PROGRAM") == "iTerm.app":
        return "iterm"
    if env.get("TMUX"):
        return "tmux"
    return None


def get_terminal_name(name: str) -> str:
    """Get a human-readable terminal name."""
    return DISPLAY_NAMES.get(name, name)


def get_launcher(name: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> TerminalLauncher:
    """Get the launcher for a terminal, detecting it if name is not given.

    Raises:
        EnvironmentCheckError: If the terminal is unknown or can't be detected
    """
    if name is None:
        name = detect_terminal(env)
        if name is None:
            raise EnvironmentCheckError(
                "Could not detect terminal. Run inside kitty, iTerm2 or tmux, "
                "or pass --terminal."
            )

    launcher_cls = LAUNCHERS.get(name)
    if launcher_cls is None:
        raise EnvironmentCheckError(
            f"Unsupported terminal '{name}'. Choose one of: {', '.join(TERMINAL_NAMES)}"
        )
    return launcher_cls()


__all__ = [
    "AGENT_ENV_VAR",
    "TERMINAL_NAMES",
    "TerminalLauncher",
    "detect_terminal",
    "get_launcher",
    "get_terminal_name",
    "tab_title",
]
