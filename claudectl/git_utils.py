"""Git helpers for the user's current checkout.

These only read from the repository the command is run in. Everything that
touches claudectl's own bare clones lives in claudectl.worktree.
"""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from claudectl.errors import EnvironmentCheckError
from claudectl.repo_hash import RepoIdentity, get_repo_identity

log = logging.getLogger("claudectl.git_utils")


@dataclass(frozen=True)
class RepoContext:
    """The repository a command was invoked from."""

    identity: RepoIdentity
    current_branch: Optional[str]
    root: Path

    @property
    def repo_hash(self) -> str:
        return self.identity.hash

    @property
    def remote_url(self) -> str:
        return self.identity.original_url


def is_git_repo(cwd: Optional[Path] = None) -> bool:
    """Check if a directory is inside a git work tree.

    Args:
        cwd: Directory to check (default: current directory)

    Returns:
        True if inside a git work tree
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--is-inside-work-tree"],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0 and result.stdout.strip() == "true"


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Get the top-level directory of the current checkout.

    Raises:
        EnvironmentCheckError: If not inside a git repository
    """
    result = subprocess.run(
        ["git", "rev-parse", "--show-toplevel"],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise EnvironmentCheckError("Not in a git repository")
    return Path(result.stdout.strip())


def get_remote_url(cwd: Optional[Path] = None, remote: str = "origin") -> str:
    """Get the URL of a remote.

    Args:
        cwd: Directory inside the repository
        remote: Remote name

    Returns:
        Remote URL

    Raises:
        EnvironmentCheckError: If the remote is not configured
    """
    result = subprocess.run(
        ["git", "remote", "get-url", remote],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    url = result.stdout.strip()
    if result.returncode != 0 or not url:
        raise EnvironmentCheckError(f"No '{remote}' remote configured for this repository")
    return url


def get_current_branch(cwd: Optional[Path] = None) -> Optional[str]:
    """Get the current branch name, or None when HEAD is detached."""
    result = subprocess.run(
        ["git", "rev-parse", "--abbrev-ref", "HEAD"],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    branch = result.stdout.strip()
    if result.returncode != 0 or not branch or branch == "HEAD":
        return None
    return branch


def get_repo_context(cwd: Optional[Path] = None, remote: str = "origin") -> RepoContext:
    """Resolve the repository a command is running in.

    Args:
        cwd: Directory to inspect (default: current directory)
        remote: Remote used to identify the repository

    Returns:
        RepoContext with the repository identity and current branch

    Raises:
        EnvironmentCheckError: If not in a git repository or the remote is missing
    """
    if not is_git_repo(cwd):
        raise EnvironmentCheckError("Not in a git repository")

    root = get_repo_root(cwd)
    identity = get_repo_identity(get_remote_url(cwd, remote))
    branch = get_current_branch(cwd)
    log.debug("Resolved repo %s (%s) on branch %s", identity.normalized_url, identity.hash, branch)
    return RepoContext(identity=identity, current_branch=branch, root=root)
