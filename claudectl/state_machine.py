"""Phase graphs for the lifecycle workflows.

Each workflow (spawn, delete, prune, clean) and each spawned agent moves
through a small set of phases. The allowed moves are declared here as data
and enforced with the transitions library, so a workflow can never jump to a
phase its graph doesn't allow.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from transitions import Machine, MachineError

log = logging.getLogger("claudectl.state_machine")


class InvalidTransitionError(Exception):
    """Raised when an invalid phase transition is attempted."""

    def __init__(self, source: str, dest: str, message: Optional[str] = None) -> None:
        self.source = source
        self.dest = dest
        if message:
            super().__init__(message)
        else:
            super().__init__(f"Invalid transition from '{source}' to '{dest}'")


@dataclass(frozen=True)
class PhaseGraph:
    """States and trigger-labelled transitions of one workflow."""

    name: str
    states: tuple[str, ...]
    transitions: tuple[dict[str, str], ...]
    terminal: frozenset[str] = field(default_factory=frozenset)


def _edges(trigger: str, sources: tuple[str, ...], dest: str) -> tuple[dict[str, str], ...]:
    return tuple({"trigger": trigger, "source": source, "dest": dest} for source in sources)


SPAWN_GRAPH = PhaseGraph(
    name="spawn",
    states=("init", "preparing", "spawning", "done", "error"),
    transitions=(
        {"trigger": "validated", "source": "init", "dest": "preparing"},
        {"trigger": "dry_run", "source": "init", "dest": "done"},
        {"trigger": "prepared", "source": "preparing", "dest": "spawning"},
        {"trigger": "finished", "source": "spawning", "dest": "done"},
        *_edges("fail", ("init", "preparing", "spawning"), "error"),
    ),
    terminal=frozenset({"done", "error"}),
)

DELETE_GRAPH = PhaseGraph(
    name="delete",
    states=("checking", "confirming", "deleting", "done", "error"),
    transitions=(
        {"trigger": "checked", "source": "checking", "dest": "confirming"},
        {"trigger": "forced", "source": "checking", "dest": "deleting"},
        {"trigger": "confirm", "source": "confirming", "dest": "deleting"},
        {"trigger": "cancel", "source": "confirming", "dest": "error"},
        {"trigger": "finished", "source": "deleting", "dest": "done"},
        *_edges("fail", ("checking", "confirming", "deleting"), "error"),
    ),
    terminal=frozenset({"done", "error"}),
)

PRUNE_GRAPH = PhaseGraph(
    name="prune",
    states=DELETE_GRAPH.states,
    transitions=(
        *DELETE_GRAPH.transitions,
        {"trigger": "nothing", "source": "checking", "dest": "done"},
    ),
    terminal=frozenset({"done", "error"}),
)

CLEAN_GRAPH = PhaseGraph(
    name="clean",
    states=("checking", "confirming", "closing-tabs", "cleaning", "done", "error"),
    transitions=(
        {"trigger": "checked", "source": "checking", "dest": "confirming"},
        {"trigger": "forced", "source": "checking", "dest": "closing-tabs"},
        {"trigger": "nothing", "source": "checking", "dest": "done"},
        {"trigger": "confirm", "source": "confirming", "dest": "closing-tabs"},
        {"trigger": "cancel", "source": "confirming", "dest": "error"},
        {"trigger": "tabs_closed", "source": "closing-tabs", "dest": "cleaning"},
        {"trigger": "finished", "source": "cleaning", "dest": "done"},
        *_edges("fail", ("checking", "confirming", "closing-tabs", "cleaning"), "error"),
    ),
    terminal=frozenset({"done", "error"}),
)

# Per-agent status during a spawn. Triggers are named after their destination.
AGENT_GRAPH = PhaseGraph(
    name="agent",
    states=(
        "pending",
        "cloning",
        "resetting",
        "switching-branch",
        "creating-worktree",
        "launching",
        "running",
        "error",
    ),
    transitions=(
        {"trigger": "cloning", "source": "pending", "dest": "cloning"},
        *_edges("resetting", ("pending", "cloning"), "resetting"),
        *_edges("switching_branch", ("pending", "cloning"), "switching-branch"),
        *_edges(
            "creating_worktree",
            ("pending", "cloning", "resetting"),
            "creating-worktree",
        ),
        *_edges(
            "launching",
            ("resetting", "switching-branch", "creating-worktree"),
            "launching",
        ),
        {"trigger": "running", "source": "launching", "dest": "running"},
        *_edges(
            "error",
            (
                "pending",
                "cloning",
                "resetting",
                "switching-branch",
                "creating-worktree",
                "launching",
            ),
            "error",
        ),
    ),
    terminal=frozenset({"running", "error"}),
)


class WorkflowStateMachine:
    """Validating state machine over a PhaseGraph.

    Example usage:
        >>> sm = WorkflowStateMachine(SPAWN_GRAPH, "init")
        >>> sm.fire("validated")
        'preparing'
        >>> sm.can_transition_to("done")
        False
    """

    def __init__(self, graph: PhaseGraph, initial_state: Optional[str] = None) -> None:
        """Initialize the state machine.

        Args:
            graph: Phase graph to enforce
            initial_state: Starting phase (default: the graph's first state)
        """
        self.graph = graph
        self._state = initial_state or graph.states[0]

        if self._state not in graph.states:
            raise ValueError(
                f"Invalid state: '{self._state}'. Valid states: {list(graph.states)}"
            )

        self.machine = Machine(
            model=self,
            states=list(graph.states),
            transitions=[dict(t) for t in graph.transitions],
            initial=self._state,
            auto_transitions=False,
            send_event=False,
        )

    @property
    def current_state(self) -> str:
        return str(getattr(self, "state", self._state))

    def fire(self, trigger_name: str) -> str:
        """Fire a trigger and return the new phase.

        Raises:
            InvalidTransitionError: If the trigger isn't allowed from the current phase
        """
        source = self.current_state
        try:
            self.trigger(trigger_name)  # type: ignore[attr-defined]
        except (MachineError, AttributeError) as e:
            raise InvalidTransitionError(
                source,
                trigger_name,
                f"Invalid {self.graph.name} transition: '{trigger_name}' from '{source}'",
            ) from e
        log.debug("%s: %s -> %s (%s)", self.graph.name, source, self.current_state, trigger_name)
        return self.current_state

    def can_transition_to(self, target_state: str) -> bool:
        """Check if any transition leads from the current phase to target_state."""
        return self._trigger_for(target_state) is not None

    def validate_transition(self, target_state: str) -> None:
        """Raise InvalidTransitionError unless target_state is reachable in one step."""
        if target_state not in self.graph.states:
            raise InvalidTransitionError(
                self.current_state,
                target_state,
                f"Invalid target state: '{target_state}'. Valid states: {list(self.graph.states)}",
            )
        if not self.can_transition_to(target_state):
            raise InvalidTransitionError(self.current_state, target_state)

    def advance_to(self, target_state: str) -> str:
        """Move directly to target_state using whichever trigger leads there."""
        self.validate_transition(target_state)
        trigger_name = self._trigger_for(target_state)
        assert trigger_name is not None
        return self.fire(trigger_name)

    def _trigger_for(self, target_state: str) -> Optional[str]:
        for t in self.graph.transitions:
            if t["source"] == self.current_state and t["dest"] == target_state:
                return t["trigger"]
        return None


def next_phase(graph: PhaseGraph, current: str, trigger_name: str) -> str:
    """Compute the phase a trigger leads to from current.

    Raises:
        InvalidTransitionError: If the graph has no such transition
    """
    return WorkflowStateMachine(graph, current).fire(trigger_name)


def advance_phase(graph: PhaseGraph, current: str, target: str) -> str:
    """Validate a direct move from current to target and return target."""
    return WorkflowStateMachine(graph, current).advance_to(target)
