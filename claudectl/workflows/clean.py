"""Clean workflow: close every agent's tab, then remove its worktree.

Phases run checking -> confirming -> closing-tabs -> cleaning -> done.
"""

import logging
from dataclasses import dataclass, replace
from functools import partial
from typing import Callable, Optional, Union

from claudectl.config import Config
from claudectl.errors import ClaudectlError
from claudectl.git_utils import get_repo_context
from claudectl.state_machine import CLEAN_GRAPH, InvalidTransitionError, next_phase
from claudectl.terminal import TerminalLauncher, get_launcher
from claudectl.workflows.common import (
    CANCELLED_MESSAGE,
    AgentRef,
    Cancelled,
    ChangeFn,
    ConfirmFn,
    Confirmed,
    Failed,
    Finished,
    ItemFailed,
    ItemRemoved,
    RemovalFailure,
    RepoResolver,
    check_trigger,
    collect_targets,
    removal_event,
)
from claudectl.worktree import WorktreeStore

log = logging.getLogger("claudectl.workflows.clean")


@dataclass(frozen=True)
class CleanRequest:
    terminal: Optional[str] = None
    force: bool = False


@dataclass(frozen=True)
class CleanState:
    request: CleanRequest
    phase: str = "checking"
    repo_hash: Optional[str] = None
    terminal_name: Optional[str] = None
    targets: tuple[AgentRef, ...] = ()
    tabs_closed: int = 0
    removed: int = 0
    failures: tuple[RemovalFailure, ...] = ()
    error: Optional[str] = None
    cancelled: bool = False


@dataclass(frozen=True)
class Checked:
    repo_hash: str
    terminal_name: str
    targets: tuple[AgentRef, ...]


@dataclass(frozen=True)
class TabsClosed:
    count: int


CleanEvent = Union[
    Checked, Confirmed, Cancelled, TabsClosed, ItemRemoved, ItemFailed, Finished, Failed
]


def transition(state: CleanState, event: CleanEvent) -> CleanState:
    if isinstance(event, Checked):
        trigger = check_trigger(bool(event.targets), state.request.force)
        return replace(
            state,
            phase=next_phase(CLEAN_GRAPH, state.phase, trigger),
            repo_hash=event.repo_hash,
            terminal_name=event.terminal_name,
            targets=event.targets,
        )
    if isinstance(event, Confirmed):
        return replace(state, phase=next_phase(CLEAN_GRAPH, state.phase, "confirm"))
    if isinstance(event, Cancelled):
        return replace(
            state,
            phase=next_phase(CLEAN_GRAPH, state.phase, "cancel"),
            error=CANCELLED_MESSAGE,
            cancelled=True,
        )
    if isinstance(event, TabsClosed):
        return replace(
            state,
            phase=next_phase(CLEAN_GRAPH, state.phase, "tabs_closed"),
            tabs_closed=event.count,
        )
    if isinstance(event, (ItemRemoved, ItemFailed)):
        if state.phase != "cleaning":
            raise InvalidTransitionError(
                state.phase, "cleaning", f"Can't remove worktrees during '{state.phase}'"
            )
        if isinstance(event, ItemRemoved):
            return replace(state, removed=state.removed + 1)
        failure = RemovalFailure(event.ref.repo_hash, event.ref.name, event.message)
        return replace(state, failures=state.failures + (failure,))
    if isinstance(event, Finished):
        return replace(state, phase=next_phase(CLEAN_GRAPH, state.phase, "finished"))
    if isinstance(event, Failed):
        return replace(
            state,
            phase=next_phase(CLEAN_GRAPH, state.phase, "fail"),
            error=event.message,
        )
    raise TypeError(f"Unknown clean event: {event!r}")


class CleanWorkflow:
    """Closes the current repository's agent tabs and removes their worktrees."""

    def __init__(
        self,
        request: CleanRequest,
        config: Config,
        store: Optional[WorktreeStore] = None,
        *,
        repo_resolver: Optional[RepoResolver] = None,
        launcher_factory: Callable[[Optional[str]], TerminalLauncher] = get_launcher,
        confirm: Optional[ConfirmFn] = None,
        on_change: Optional[ChangeFn] = None,
    ) -> None:
        self.request = request
        self.config = config
        self.store = store or WorktreeStore(config)
        self.repo_resolver = repo_resolver or partial(get_repo_context, remote=config.remote)
        self.launcher_factory = launcher_factory
        self.confirm = confirm
        self.on_change = on_change

    def run(self) -> CleanState:
        state = CleanState(request=self.request)
        self._emit(state)

        try:
            repo_hash = self.repo_resolver().repo_hash
            launcher = self.launcher_factory(self.request.terminal or self.config.terminal)
            targets = collect_targets(self.store, [repo_hash])
        except ClaudectlError as e:
            return self._apply(state, Failed(str(e)))

        state = self._apply(
            state,
            Checked(repo_hash=repo_hash, terminal_name=launcher.name, targets=targets),
        )
        if state.phase == "done":
            return state

        if state.phase == "confirming":
            approved = self.confirm is not None and self.confirm(state)
            state = self._apply(state, Confirmed() if approved else Cancelled())
            if state.phase == "error":
                return state

        closed = launcher.close_tabs([ref.worktree for ref in state.targets])
        state = self._apply(state, TabsClosed(closed))

        for ref in state.targets:
            state = self._apply(state, removal_event(self.store, ref))

        return self._apply(state, Finished())

    def _apply(self, state: CleanState, event: CleanEvent) -> CleanState:
        new_state = transition(state, event)
        self._emit(new_state)
        return new_state

    def _emit(self, state: CleanState) -> None:
        if self.on_change is not None:
            self.on_change(state)
