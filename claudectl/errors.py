"""Exception types shared across claudectl."""

from typing import Optional, Sequence


class ClaudectlError(Exception):
    """Base class for all claudectl errors."""


class ValidationError(ClaudectlError):
    """Raised for bad user input (count out of range, unknown agent name)."""


class PoolExhaustedError(ValidationError):
    """Raised when the name pool cannot satisfy an allocation."""

    def __init__(self, needed: int, available: int) -> None:
        self.needed = needed
        self.available = available
        super().__init__(
            f"Not enough agent names left: need {needed}, only {available} unused"
        )


class EnvironmentCheckError(ClaudectlError):
    """Raised when the environment can't support the command.

    Covers running outside a git repository, a missing remote, or a terminal
    that can't be detected.
    """


class WorktreeError(ClaudectlError):
    """Raised for worktree operations that can't proceed."""


class GitOperationError(WorktreeError):
    """Raised when a git subprocess exits non-zero."""

    def __init__(self, args: Sequence[str], stderr: Optional[str] = None) -> None:
        self.command = list(args)
        self.stderr = (stderr or "").strip()
        message = f"git {' '.join(self.command)} failed"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class TerminalError(ClaudectlError):
    """Raised when a terminal tab can't be launched."""
