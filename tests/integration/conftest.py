"""Fixtures for tests that drive a real git binary."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

from claudectl.git_utils import RepoContext
from claudectl.repo_hash import get_repo_identity

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test User",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test User",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def pytest_collection_modifyitems(items):
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


def _git(*args: str, cwd: Path) -> str:
    """Run git for test setup and return stripped stdout."""
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        env={**os.environ, **GIT_ENV},
    )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def require_git() -> None:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")


@pytest.fixture(autouse=True)
def git_identity(monkeypatch) -> None:
    for key, value in GIT_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def upstream(tmp_path: Path) -> Path:
    """A plain repository with one commit on main, used as the remote."""
    path = tmp_path / "upstream"
    path.mkdir()
    _git("init", cwd=path)
    _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=path)
    (path / "README.md").write_text("# upstream\n")
    _git("add", "README.md", cwd=path)
    _git("commit", "-m", "Initial commit", cwd=path)
    return path


@pytest.fixture
def upstream_context(upstream: Path) -> RepoContext:
    return RepoContext(
        identity=get_repo_identity(str(upstream)),
        current_branch="main",
        root=upstream,
    )


@pytest.fixture
def git():
    """Run a git command for test setup or inspection."""
    return _git
