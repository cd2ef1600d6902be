"""Events and helpers shared by the lifecycle workflows."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, TypeVar, Union

from claudectl.errors import ClaudectlError
from claudectl.git_utils import RepoContext
from claudectl.worktree import WorktreeInfo, WorktreeStore

log = logging.getLogger("claudectl.workflows")

CANCELLED_MESSAGE = "Cancelled"
TERMINAL_PHASES = frozenset({"done", "error"})

S = TypeVar("S")

ConfirmFn = Callable[[S], bool]
ChangeFn = Callable[[S], None]
RepoResolver = Callable[[], RepoContext]


@dataclass(frozen=True)
class Confirmed:
    """The user agreed to go ahead."""


@dataclass(frozen=True)
class Cancelled:
    """The user declined the confirmation prompt."""


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class AgentRef:
    """An agent worktree together with the repository it belongs to."""

    repo_hash: str
    worktree: WorktreeInfo

    @property
    def name(self) -> str:
        return self.worktree.name


@dataclass(frozen=True)
class RemovalFailure:
    repo_hash: str
    name: str
    message: str


@dataclass(frozen=True)
class ItemRemoved:
    ref: AgentRef


@dataclass(frozen=True)
class ItemFailed:
    ref: AgentRef
    message: str


@dataclass(frozen=True)
class Finished:
    removed_repos: tuple[str, ...] = ()


def check_trigger(has_targets: bool, force: bool) -> str:
    """Pick the trigger that leaves the checking phase."""
    if not has_targets:
        return "nothing"
    return "forced" if force else "checked"


def resolve_target_hashes(
    store: WorktreeStore,
    repo_resolver: RepoResolver,
    all_repos: bool = False,
) -> List[str]:
    """Get the repositories a command applies to.

    Raises:
        EnvironmentCheckError: If not all_repos and not inside a repository
    """
    if all_repos:
        return store.list_repo_hashes()
    return [repo_resolver().repo_hash]


def collect_targets(store: WorktreeStore, repo_hashes: List[str]) -> tuple[AgentRef, ...]:
    return tuple(
        AgentRef(repo_hash=repo_hash, worktree=wt)
        for repo_hash in repo_hashes
        for wt in store.list_worktrees(repo_hash)
    )


def remove_agent(store: WorktreeStore, ref: AgentRef) -> Optional[str]:
    """Remove one agent's worktree.

    Returns:
        None on success, otherwise the error message
    """
    try:
        store.remove_worktree(ref.repo_hash, ref.name)
    except (ClaudectlError, OSError) as e:
        log.warning("Failed to remove %s in %s: %s", ref.name, ref.repo_hash, e)
        return str(e)
    return None


def removal_event(store: WorktreeStore, ref: AgentRef) -> Union[ItemRemoved, ItemFailed]:
    message = remove_agent(store, ref)
    if message is None:
        return ItemRemoved(ref)
    return ItemFailed(ref, message)
