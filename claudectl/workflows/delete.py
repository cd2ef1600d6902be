"""Delete workflow: remove a single agent's worktree.

Phases run checking -> confirming -> deleting -> done, or end in error.
"""

import logging
from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path
from typing import Optional, Union

from claudectl.config import Config
from claudectl.errors import ClaudectlError, ValidationError
from claudectl.git_utils import get_repo_context
from claudectl.names import NamePool
from claudectl.state_machine import DELETE_GRAPH, next_phase
from claudectl.workflows.common import (
    CANCELLED_MESSAGE,
    Cancelled,
    ChangeFn,
    ConfirmFn,
    Confirmed,
    Failed,
    RepoResolver,
)
from claudectl.worktree import WorktreeStore

log = logging.getLogger("claudectl.workflows.delete")


@dataclass(frozen=True)
class DeleteRequest:
    agent_name: str
    force: bool = False


@dataclass(frozen=True)
class DeleteState:
    request: DeleteRequest
    phase: str = "checking"
    repo_hash: Optional[str] = None
    worktree_path: Optional[Path] = None
    error: Optional[str] = None
    cancelled: bool = False


@dataclass(frozen=True)
class Checked:
    repo_hash: str
    worktree_path: Path


@dataclass(frozen=True)
class Deleted:
    pass


DeleteEvent = Union[Checked, Confirmed, Cancelled, Deleted, Failed]


def transition(state: DeleteState, event: DeleteEvent) -> DeleteState:
    if isinstance(event, Checked):
        trigger = "forced" if state.request.force else "checked"
        return replace(
            state,
            phase=next_phase(DELETE_GRAPH, state.phase, trigger),
            repo_hash=event.repo_hash,
            worktree_path=event.worktree_path,
        )
    if isinstance(event, Confirmed):
        return replace(state, phase=next_phase(DELETE_GRAPH, state.phase, "confirm"))
    if isinstance(event, Cancelled):
        return replace(
            state,
            phase=next_phase(DELETE_GRAPH, state.phase, "cancel"),
            error=CANCELLED_MESSAGE,
            cancelled=True,
        )
    if isinstance(event, Deleted):
        return replace(state, phase=next_phase(DELETE_GRAPH, state.phase, "finished"))
    if isinstance(event, Failed):
        return replace(
            state,
            phase=next_phase(DELETE_GRAPH, state.phase, "fail"),
            error=event.message,
        )
    raise TypeError(f"Unknown delete event: {event!r}")


class DeleteWorkflow:
    """Deletes one agent from the current repository.

    Without force, confirm(state) is asked first; no confirm callback
    means the deletion is declined.
    """

    def __init__(
        self,
        request: DeleteRequest,
        config: Config,
        store: Optional[WorktreeStore] = None,
        *,
        repo_resolver: Optional[RepoResolver] = None,
        confirm: Optional[ConfirmFn] = None,
        pool: Optional[NamePool] = None,
        on_change: Optional[ChangeFn] = None,
    ) -> None:
        self.request = request
        self.config = config
        self.store = store or WorktreeStore(config)
        self.repo_resolver = repo_resolver or partial(get_repo_context, remote=config.remote)
        self.confirm = confirm
        self.pool = pool or NamePool()
        self.on_change = on_change

    def run(self) -> DeleteState:
        state = DeleteState(request=self.request)
        self._emit(state)

        try:
            state = self._apply(state, self._check())
        except ClaudectlError as e:
            return self._apply(state, Failed(str(e)))

        if state.phase == "confirming":
            approved = self.confirm is not None and self.confirm(state)
            state = self._apply(state, Confirmed() if approved else Cancelled())
            if state.phase == "error":
                return state

        assert state.repo_hash is not None
        try:
            self.store.remove_worktree(state.repo_hash, self.request.agent_name)
        except (ClaudectlError, OSError) as e:
            log.warning("Failed to delete %s: %s", self.request.agent_name, e)
            return self._apply(state, Failed(str(e)))

        return self._apply(state, Deleted())

    def _check(self) -> Checked:
        name = self.request.agent_name
        if not self.pool.is_valid(name):
            raise ValidationError(
                f"Invalid agent name '{name}'. Valid names: {', '.join(self.pool.names)}"
            )

        repo_hash = self.repo_resolver().repo_hash
        if not self.store.worktree_exists(repo_hash, name):
            raise ValidationError(f"Agent '{name}' not found in this repository")

        return Checked(
            repo_hash=repo_hash,
            worktree_path=self.config.get_worktree_path(repo_hash, name),
        )

    def _apply(self, state: DeleteState, event: DeleteEvent) -> DeleteState:
        new_state = transition(state, event)
        self._emit(new_state)
        return new_state

    def _emit(self, state: DeleteState) -> None:
        if self.on_change is not None:
            self.on_change(state)
