"""Read-only listing of agents, per repository."""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Optional

from claudectl.config import Config
from claudectl.git_utils import get_repo_context
from claudectl.workflows.common import RepoResolver, resolve_target_hashes
from claudectl.worktree import WorktreeStore

log = logging.getLogger("claudectl.workflows.listing")


@dataclass(frozen=True)
class ListedAgent:
    name: str
    branch: str
    path: Path
    commit: str
    modified: Optional[datetime] = None


@dataclass(frozen=True)
class RepoAgents:
    repo_hash: str
    repo_name: str
    agents: tuple[ListedAgent, ...]


@dataclass(frozen=True)
class ListReport:
    repos: tuple[RepoAgents, ...] = ()

    @property
    def total(self) -> int:
        return sum(len(r.agents) for r in self.repos)


def _modified(path: Path) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime)
    except OSError:
        log.debug("Can't stat %s", path)
        return None


def list_agents(
    config: Config,
    store: Optional[WorktreeStore] = None,
    *,
    all_repos: bool = False,
    repo_resolver: Optional[RepoResolver] = None,
) -> ListReport:
    """Collect the agents of the current repository, or of every repository.

    Repositories without a bare clone or without worktrees are left out.
    Agents are ordered most recently modified first.

    Raises:
        EnvironmentCheckError: If not all_repos and not inside a repository
    """
    store = store or WorktreeStore(config)
    resolver = repo_resolver or partial(get_repo_context, remote=config.remote)

    repos = []
    for repo_hash in resolve_target_hashes(store, resolver, all_repos):
        if not store.bare_repo_exists(repo_hash):
            continue
        worktrees = store.list_worktrees(repo_hash)
        if not worktrees:
            continue

        agents = [
            ListedAgent(
                name=wt.name,
                branch=wt.branch,
                path=wt.path,
                commit=wt.commit,
                modified=_modified(wt.path),
            )
            for wt in worktrees
        ]
        agents.sort(key=lambda a: a.modified or datetime.min, reverse=True)
        repos.append(
            RepoAgents(
                repo_hash=repo_hash,
                repo_name=store.get_repo_name(repo_hash),
                agents=tuple(agents),
            )
        )

    return ListReport(repos=tuple(repos))
