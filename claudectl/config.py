"""Configuration management for claudectl."""

import os
import shutil
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field

CONFIG_FILE_NAME = "config.yaml"
ROOT_ENV_VAR = "CLAUDECTL_ROOT"

# Where the Claude CLI usually lives, checked in order before falling back to PATH
AGENT_COMMAND_LOCATIONS = (
    Path.home() / ".claude" / "local" / "claude",
    Path("/usr/local/bin/claude"),
)


def default_root() -> Path:
    """Get the default claudectl root directory.

    Honors $CLAUDECTL_ROOT, otherwise ~/.claudectl.
    """
    override = os.environ.get(ROOT_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claudectl"


class Config(BaseModel):
    """claudectl configuration."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    root: Path = Field(default_factory=default_root)
    default_count: int = Field(default=3, ge=1)
    max_agents: int = Field(default=10, ge=1)
    terminal: Optional[str] = None
    notify: bool = True
    agent_command: Optional[str] = None
    remote: str = "origin"

    @property
    def repos_dir(self) -> Path:
        return self.root / "repos"

    @property
    def queues_dir(self) -> Path:
        return self.root / "queues"

    @property
    def ipc_root(self) -> Path:
        return self.root / "ipc"

    def get_repo_dir(self, repo_hash: str) -> Path:
        """Get the directory holding everything for one repository.

        Args:
            repo_hash: Repository hash

        Returns:
            Path like <root>/repos/<hash>
        """
        return self.repos_dir / repo_hash

    def get_bare_repo_path(self, repo_hash: str) -> Path:
        """Get the shared bare clone path for a repository."""
        return self.get_repo_dir(repo_hash) / "bare"

    def get_worktrees_dir(self, repo_hash: str) -> Path:
        """Get the directory containing all agent worktrees for a repository."""
        return self.get_repo_dir(repo_hash) / "worktrees"

    def get_worktree_path(self, repo_hash: str, agent_name: str) -> Path:
        """Get the worktree path for a specific agent.

        Args:
            repo_hash: Repository hash
            agent_name: Agent name (e.g. "alice")

        Returns:
            Path like <root>/repos/<hash>/worktrees/<name>
        """
        return self.get_worktrees_dir(repo_hash) / agent_name

    def get_queue_path(self, repo_hash: str) -> Path:
        return self.queues_dir / f"{repo_hash}.json"

    def get_ipc_dir(self, repo_hash: str) -> Path:
        return self.ipc_root / repo_hash

    def ensure_root_dirs(self) -> None:
        """Create the root, repos, queues and ipc directories."""
        for directory in (self.root, self.repos_dir, self.queues_dir, self.ipc_root):
            directory.mkdir(parents=True, exist_ok=True)

    def ensure_repo_dirs(self, repo_hash: str) -> None:
        """Create the per-repository directories."""
        for directory in (self.get_repo_dir(repo_hash), self.get_worktrees_dir(repo_hash)):
            directory.mkdir(parents=True, exist_ok=True)

    def resolve_agent_command(self) -> str:
        """Get the command to run in each agent's terminal tab.

        Uses agent_command from config if set, otherwise looks for the
        Claude CLI in its usual install locations and on PATH.

        Returns:
            Command string
        """
        if self.agent_command:
            return self.agent_command

        for location in AGENT_COMMAND_LOCATIONS:
            if location.exists():
                return str(location)

        return shutil.which("claude") or "claude"


def load_config(root: Optional[Path] = None) -> Config:
    """Load configuration from <root>/config.yaml.

    Args:
        root: claudectl root directory (default: $CLAUDECTL_ROOT or ~/.claudectl)

    Returns:
        Loaded configuration (or defaults if the file is missing or empty)
    """
    if root is None:
        root = default_root()

    config_file = root / CONFIG_FILE_NAME
    if not config_file.exists():
        return Config(root=root)

    with open(config_file, "r") as f:
        data = yaml.safe_load(f)

    if not data:
        return Config(root=root)

    data.setdefault("root", root)
    return Config(**data)
