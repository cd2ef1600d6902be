"""claudectl: spawn and manage parallel Claude agents in git worktrees."""

__version__ = "0.1.0"
