"""Spawn workflow: allocate agents, prepare their worktrees and open a tab for each.

Phases run init -> preparing -> spawning -> done, or end in error. Agents
are processed one at a time against the shared bare repository.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Callable, Optional, Union

from claudectl.branch import branch_name_for_agent
from claudectl.config import Config
from claudectl.errors import ClaudectlError, EnvironmentCheckError, ValidationError
from claudectl.git_utils import RepoContext, get_repo_context
from claudectl.names import NamePool
from claudectl.notifications import NotificationSender
from claudectl.state_machine import (
    AGENT_GRAPH,
    SPAWN_GRAPH,
    InvalidTransitionError,
    advance_phase,
    next_phase,
)
from claudectl.terminal import TerminalLauncher, get_launcher, get_terminal_name
from claudectl.workflows.common import ChangeFn, RepoResolver
from claudectl.worktree import WorktreeStore

log = logging.getLogger("claudectl.workflows.spawn")


class AgentStatus(str, Enum):
    PENDING = "pending"
    CLONING = "cloning"
    RESETTING = "resetting"
    SWITCHING_BRANCH = "switching-branch"
    CREATING_WORKTREE = "creating-worktree"
    LAUNCHING = "launching"
    RUNNING = "running"
    ERROR = "error"


FINISHED_STATUSES = frozenset({AgentStatus.RUNNING, AgentStatus.ERROR})


@dataclass(frozen=True)
class SpawnRequest:
    """What the user asked for."""

    count: int = 3
    terminal: Optional[str] = None
    branch: Optional[str] = None
    task: Optional[str] = None
    agent_name: Optional[str] = None
    clean: bool = False
    notify: bool = True
    dry_run: bool = False


@dataclass(frozen=True)
class AgentRunState:
    name: str
    branch: str
    worktree_path: Path
    is_reused: bool = False
    status: AgentStatus = AgentStatus.PENDING
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.status in FINISHED_STATUSES


@dataclass(frozen=True)
class SpawnState:
    request: SpawnRequest
    phase: str = "init"
    repo: Optional[RepoContext] = None
    terminal_name: Optional[str] = None
    base_branch: Optional[str] = None
    agents: tuple[AgentRunState, ...] = ()
    error: Optional[str] = None

    @property
    def running_count(self) -> int:
        return sum(1 for a in self.agents if a.status == AgentStatus.RUNNING)

    @property
    def failed_count(self) -> int:
        return sum(1 for a in self.agents if a.status == AgentStatus.ERROR)

    @property
    def reused_agents(self) -> tuple[AgentRunState, ...]:
        return tuple(a for a in self.agents if a.is_reused)


@dataclass(frozen=True)
class Validated:
    repo: RepoContext
    terminal_name: str
    agents: tuple[AgentRunState, ...]
    base_branch: Optional[str] = None


@dataclass(frozen=True)
class Prepared:
    base_branch: str


@dataclass(frozen=True)
class AgentStatusChanged:
    index: int
    status: AgentStatus
    error: Optional[str] = None


@dataclass(frozen=True)
class SpawnFinished:
    pass


@dataclass(frozen=True)
class SpawnFailed:
    message: str


SpawnEvent = Union[Validated, Prepared, AgentStatusChanged, SpawnFinished, SpawnFailed]


def transition(state: SpawnState, event: SpawnEvent) -> SpawnState:
    """Apply an event to a spawn state.

    Raises:
        InvalidTransitionError: If the event isn't valid in the current phase
    """
    if isinstance(event, Validated):
        trigger = "dry_run" if state.request.dry_run else "validated"
        return replace(
            state,
            phase=next_phase(SPAWN_GRAPH, state.phase, trigger),
            repo=event.repo,
            terminal_name=event.terminal_name,
            agents=event.agents,
            base_branch=event.base_branch,
        )

    if isinstance(event, Prepared):
        return replace(
            state,
            phase=next_phase(SPAWN_GRAPH, state.phase, "prepared"),
            base_branch=event.base_branch,
        )

    if isinstance(event, AgentStatusChanged):
        if state.phase not in ("preparing", "spawning"):
            raise InvalidTransitionError(
                state.phase,
                event.status.value,
                f"Agent status can't change during '{state.phase}'",
            )
        agent = state.agents[event.index]
        advance_phase(AGENT_GRAPH, agent.status.value, event.status.value)
        agents = list(state.agents)
        agents[event.index] = replace(agent, status=event.status, error=event.error)
        return replace(state, agents=tuple(agents))

    if isinstance(event, SpawnFinished):
        pending = [a.name for a in state.agents if not a.finished]
        if pending:
            raise InvalidTransitionError(
                state.phase,
                "done",
                f"Agents still in progress: {', '.join(pending)}",
            )
        return replace(state, phase=next_phase(SPAWN_GRAPH, state.phase, "finished"))

    if isinstance(event, SpawnFailed):
        phase = next_phase(SPAWN_GRAPH, state.phase, "fail")
        agents = tuple(
            a if a.finished else replace(a, status=AgentStatus.ERROR, error=event.message)
            for a in state.agents
        )
        return replace(state, phase=phase, agents=agents, error=event.message)

    raise TypeError(f"Unknown spawn event: {event!r}")


class SpawnWorkflow:
    """Runs a spawn request to completion.

    Args:
        request: What to spawn
        config: claudectl configuration
        store: Worktree store (default: one built from config)
        repo_resolver: Returns the current repository (default: get_repo_context)
        launcher_factory: Builds a launcher from a terminal name or None to detect
        notifier: Completion notifier
        pool: Agent name pool
        on_change: Called with every new state
    """

    def __init__(
        self,
        request: SpawnRequest,
        config: Config,
        store: Optional[WorktreeStore] = None,
        *,
        repo_resolver: Optional[RepoResolver] = None,
        launcher_factory: Callable[[Optional[str]], TerminalLauncher] = get_launcher,
        notifier: Optional[NotificationSender] = None,
        pool: Optional[NamePool] = None,
        on_change: Optional[ChangeFn] = None,
    ) -> None:
        self.request = request
        self.config = config
        self.store = store or WorktreeStore(config)
        self.repo_resolver = repo_resolver or partial(get_repo_context, remote=config.remote)
        self.launcher_factory = launcher_factory
        self.notifier = notifier or NotificationSender()
        self.pool = pool or NamePool()
        self.on_change = on_change
        self._launcher: Optional[TerminalLauncher] = None

    def run(self) -> SpawnState:
        state = SpawnState(request=self.request)
        self._emit(state)

        try:
            validated = self._validate()
        except ClaudectlError as e:
            return self._apply(state, SpawnFailed(str(e)))

        state = self._apply(state, validated)
        if state.phase == "done":
            return state

        state = self._prepare(state)
        if state.phase == "error":
            return state

        command = self.config.resolve_agent_command()
        for index in range(len(state.agents)):
            state = self._spawn_agent(state, index, command)

        state = self._apply(state, SpawnFinished())

        if self.request.notify:
            self.notifier.notify_spawn_complete(state.running_count)

        return state

    def _validate(self) -> Validated:
        """Check the request and resolve names and branches without touching disk."""
        request = self.request

        if not 1 <= request.count <= self.config.max_agents:
            raise ValidationError(f"Count must be between 1 and {self.config.max_agents}")

        if request.agent_name is not None and not self.pool.is_valid(request.agent_name):
            raise ValidationError(
                f"Invalid agent name '{request.agent_name}'. "
                f"Valid names: {', '.join(self.pool.names)}"
            )

        repo = self.repo_resolver()
        self._launcher = self.launcher_factory(request.terminal or self.config.terminal)
        if not self._launcher.is_available():
            raise EnvironmentCheckError(f"{get_terminal_name(self._launcher.name)} is not available")

        repo_hash = repo.repo_hash
        existing = self.store.get_existing_agent_names(repo_hash)

        if request.agent_name is not None:
            names = [request.agent_name]
        elif request.clean:
            names = self.pool.allocate_new(request.count, existing)
        else:
            names = self.pool.select_names(request.count, existing)

        agents = tuple(
            AgentRunState(
                name=name,
                branch=branch_name_for_agent(name, request.task),
                worktree_path=self.config.get_worktree_path(repo_hash, name),
                is_reused=self.store.worktree_exists(repo_hash, name),
            )
            for name in names
        )

        return Validated(
            repo=repo,
            terminal_name=self._launcher.name,
            agents=agents,
            base_branch=request.branch or repo.current_branch,
        )

    def _prepare(self, state: SpawnState) -> SpawnState:
        assert state.repo is not None
        repo_hash = state.repo.repo_hash

        try:
            self.config.ensure_root_dirs()
            if not self.store.bare_repo_exists(repo_hash) and state.agents:
                state = self._apply(state, AgentStatusChanged(0, AgentStatus.CLONING))
            bare_path = self.store.ensure_bare_repo(state.repo.remote_url, repo_hash)
            base_branch = state.base_branch or self.store.get_default_branch(bare_path)
        except (ClaudectlError, OSError) as e:
            log.error("Failed to prepare %s: %s", repo_hash, e)
            return self._apply(state, SpawnFailed(str(e)))

        return self._apply(state, Prepared(base_branch=base_branch))

    def _spawn_agent(self, state: SpawnState, index: int, command: str) -> SpawnState:
        """Bring up one agent. A failure only affects this agent."""
        assert state.repo is not None and self._launcher is not None
        agent = state.agents[index]
        repo_hash = state.repo.repo_hash
        base_branch = state.base_branch

        try:
            if agent.is_reused and self.request.agent_name is not None:
                if self.request.clean:
                    state = self._set_status(state, index, AgentStatus.RESETTING)
                    self.store.reset_worktree(repo_hash, agent.name, agent.branch, base_branch)
                else:
                    state = self._set_status(state, index, AgentStatus.SWITCHING_BRANCH)
                    self.store.switch_worktree_branch(
                        repo_hash, agent.name, agent.branch, base_branch or agent.branch
                    )
            else:
                if agent.is_reused:
                    state = self._set_status(state, index, AgentStatus.RESETTING)
                    self.store.remove_worktree(repo_hash, agent.name)
                state = self._set_status(state, index, AgentStatus.CREATING_WORKTREE)
                self.store.create_worktree(repo_hash, agent.name, agent.branch, base_branch)

            state = self._set_status(state, index, AgentStatus.LAUNCHING)
            self._launcher.launch(agent.name, agent.worktree_path, command)
            state = self._set_status(state, index, AgentStatus.RUNNING)
        except (ClaudectlError, OSError) as e:
            log.warning("Agent %s failed: %s", agent.name, e)
            state = self._apply(state, AgentStatusChanged(index, AgentStatus.ERROR, str(e)))

        return state

    def _set_status(self, state: SpawnState, index: int, status: AgentStatus) -> SpawnState:
        return self._apply(state, AgentStatusChanged(index, status))

    def _apply(self, state: SpawnState, event: SpawnEvent) -> SpawnState:
        new_state = transition(state, event)
        self._emit(new_state)
        return new_state

    def _emit(self, state: SpawnState) -> None:
        if self.on_change is not None:
            self.on_change(state)
