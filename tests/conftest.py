"""Pytest configuration and fixtures for claudectl tests.

Points CLAUDECTL_ROOT at a temporary directory for every test so nothing
touches the real ~/.claudectl.
"""

from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from click.testing import CliRunner

from claudectl.config import Config
from claudectl.errors import TerminalError
from claudectl.git_utils import RepoContext
from claudectl.repo_hash import get_repo_identity
from claudectl.terminal.base import TerminalLauncher
from claudectl.worktree import WorktreeInfo


@pytest.fixture(autouse=True)
def isolated_root(tmp_path: Path, monkeypatch) -> Path:
    """Use a throwaway claudectl root for every test."""
    root = tmp_path / "claudectl-root"
    monkeypatch.setenv("CLAUDECTL_ROOT", str(root))
    return root


@pytest.fixture
def config(isolated_root: Path) -> Config:
    return Config(root=isolated_root, agent_command="claude")


@pytest.fixture
def cli_runner():
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def repo_context(tmp_path: Path) -> RepoContext:
    """A repository context for git@github.com:user/repo.git on main."""
    return RepoContext(
        identity=get_repo_identity("git@github.com:user/repo.git"),
        current_branch="main",
        root=tmp_path / "checkout",
    )


class FakeLauncher(TerminalLauncher):
    """Records launches instead of opening tabs."""

    name = "kitty"

    def __init__(
        self, fail_for: Sequence[str] = (), close_result: int = 0, available: bool = True
    ) -> None:
        self.available = available
        self.fail_for = set(fail_for)
        self.close_result = close_result
        self.launched: List[tuple[str, Path, str]] = []
        self.closed: Optional[List[WorktreeInfo]] = None

    def is_available(self) -> bool:
        return self.available

    def launch(self, agent_name: str, working_dir: Path, command: str) -> None:
        if agent_name in self.fail_for:
            raise TerminalError(f"Failed to open tab for {agent_name}")
        self.launched.append((agent_name, working_dir, command))

    def _close_tabs(self, worktrees: Sequence[WorktreeInfo]) -> int:
        self.closed = list(worktrees)
        return self.close_result


@pytest.fixture
def fake_launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def make_launcher():
    """Factory for fake launchers with custom failures."""
    return FakeLauncher
