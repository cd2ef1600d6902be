"""Prune workflow: remove every agent worktree of one or all repositories.

Each worktree is removed independently; a failure is recorded and the
batch carries on.
"""

import logging
from dataclasses import dataclass, replace
from functools import partial
from typing import List, Optional, Union

from claudectl.config import Config
from claudectl.errors import ClaudectlError
from claudectl.git_utils import get_repo_context
from claudectl.state_machine import PRUNE_GRAPH, InvalidTransitionError, next_phase
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
    resolve_target_hashes,
)
from claudectl.worktree import WorktreeStore

log = logging.getLogger("claudectl.workflows.prune")


@dataclass(frozen=True)
class PruneRequest:
    all_repos: bool = False
    force: bool = False


@dataclass(frozen=True)
class PruneState:
    request: PruneRequest
    phase: str = "checking"
    targets: tuple[AgentRef, ...] = ()
    removed: int = 0
    failures: tuple[RemovalFailure, ...] = ()
    removed_repos: tuple[str, ...] = ()
    error: Optional[str] = None
    cancelled: bool = False


@dataclass(frozen=True)
class Checked:
    targets: tuple[AgentRef, ...]


PruneEvent = Union[Checked, Confirmed, Cancelled, ItemRemoved, ItemFailed, Finished, Failed]


def transition(state: PruneState, event: PruneEvent) -> PruneState:
    if isinstance(event, Checked):
        trigger = check_trigger(bool(event.targets), state.request.force)
        return replace(
            state,
            phase=next_phase(PRUNE_GRAPH, state.phase, trigger),
            targets=event.targets,
        )
    if isinstance(event, Confirmed):
        return replace(state, phase=next_phase(PRUNE_GRAPH, state.phase, "confirm"))
    if isinstance(event, Cancelled):
        return replace(
            state,
            phase=next_phase(PRUNE_GRAPH, state.phase, "cancel"),
            error=CANCELLED_MESSAGE,
            cancelled=True,
        )
    if isinstance(event, (ItemRemoved, ItemFailed)):
        if state.phase != "deleting":
            raise InvalidTransitionError(
                state.phase, "deleting", f"Can't remove worktrees during '{state.phase}'"
            )
        if isinstance(event, ItemRemoved):
            return replace(state, removed=state.removed + 1)
        failure = RemovalFailure(event.ref.repo_hash, event.ref.name, event.message)
        return replace(state, failures=state.failures + (failure,))
    if isinstance(event, Finished):
        return replace(
            state,
            phase=next_phase(PRUNE_GRAPH, state.phase, "finished"),
            removed_repos=event.removed_repos,
        )
    if isinstance(event, Failed):
        return replace(
            state,
            phase=next_phase(PRUNE_GRAPH, state.phase, "fail"),
            error=event.message,
        )
    raise TypeError(f"Unknown prune event: {event!r}")


class PruneWorkflow:
    """Removes all agent worktrees in the current repository, or in every one."""

    def __init__(
        self,
        request: PruneRequest,
        config: Config,
        store: Optional[WorktreeStore] = None,
        *,
        repo_resolver: Optional[RepoResolver] = None,
        confirm: Optional[ConfirmFn] = None,
        on_change: Optional[ChangeFn] = None,
    ) -> None:
        self.request = request
        self.config = config
        self.store = store or WorktreeStore(config)
        self.repo_resolver = repo_resolver or partial(get_repo_context, remote=config.remote)
        self.confirm = confirm
        self.on_change = on_change

    def run(self) -> PruneState:
        state = PruneState(request=self.request)
        self._emit(state)

        try:
            hashes = resolve_target_hashes(self.store, self.repo_resolver, self.request.all_repos)
            targets = collect_targets(self.store, hashes)
        except ClaudectlError as e:
            return self._apply(state, Failed(str(e)))

        state = self._apply(state, Checked(targets))
        if state.phase == "done":
            return state

        if state.phase == "confirming":
            approved = self.confirm is not None and self.confirm(state)
            state = self._apply(state, Confirmed() if approved else Cancelled())
            if state.phase == "error":
                return state

        for ref in state.targets:
            state = self._apply(state, removal_event(self.store, ref))

        removed_repos: List[str] = []
        if self.request.all_repos:
            try:
                removed_repos = self.store.remove_empty_repos()
            except OSError as e:
                log.warning("Failed to remove empty repo directories: %s", e)

        return self._apply(state, Finished(removed_repos=tuple(removed_repos)))

    def _apply(self, state: PruneState, event: PruneEvent) -> PruneState:
        new_state = transition(state, event)
        self._emit(new_state)
        return new_state

    def _emit(self, state: PruneState) -> None:
        if self.on_change is not None:
            self.on_change(state)
