"""Tests for claudectl.state_machine module."""

import pytest

from claudectl.state_machine import (
    AGENT_GRAPH,
    CLEAN_GRAPH,
    PRUNE_GRAPH,
    SPAWN_GRAPH,
    InvalidTransitionError,
    WorkflowStateMachine,
    advance_phase,
    next_phase,
)


class TestWorkflowStateMachine:
    """Tests for the WorkflowStateMachine class."""

    def test_initial_state_default(self) -> None:
        """Default initial state is the graph's first state."""
        assert WorkflowStateMachine(SPAWN_GRAPH).current_state == "init"

    def test_initial_state_custom(self) -> None:
        sm = WorkflowStateMachine(SPAWN_GRAPH, "spawning")
        assert sm.current_state == "spawning"

    def test_invalid_initial_state_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid state"):
            WorkflowStateMachine(SPAWN_GRAPH, "nowhere")

    def test_fire_moves_state(self) -> None:
        sm = WorkflowStateMachine(SPAWN_GRAPH)
        assert sm.fire("validated") == "preparing"
        assert sm.fire("prepared") == "spawning"
        assert sm.fire("finished") == "done"
        assert sm.current_state in SPAWN_GRAPH.terminal

    def test_fire_invalid_trigger_raises(self) -> None:
        sm = WorkflowStateMachine(SPAWN_GRAPH)
        with pytest.raises(InvalidTransitionError) as exc_info:
            sm.fire("finished")
        assert exc_info.value.source == "init"
        assert sm.current_state == "init"

    def test_fire_unknown_trigger_raises(self) -> None:
        with pytest.raises(InvalidTransitionError):
            WorkflowStateMachine(SPAWN_GRAPH).fire("explode")

    def test_terminal_states_have_no_exits(self) -> None:
        with pytest.raises(InvalidTransitionError):
            next_phase(SPAWN_GRAPH, "done", "fail")

    def test_can_transition_to(self) -> None:
        sm = WorkflowStateMachine(SPAWN_GRAPH)
        assert sm.can_transition_to("preparing") is True
        assert sm.can_transition_to("spawning") is False

    def test_validate_transition_unknown_target(self) -> None:
        sm = WorkflowStateMachine(SPAWN_GRAPH)
        with pytest.raises(InvalidTransitionError, match="Invalid target state"):
            sm.validate_transition("nowhere")


class TestGraphs:
    def test_fail_reachable_from_every_active_phase(self) -> None:
        for phase in ("init", "preparing", "spawning"):
            assert next_phase(SPAWN_GRAPH, phase, "fail") == "error"

    def test_prune_nothing_skips_to_done(self) -> None:
        assert next_phase(PRUNE_GRAPH, "checking", "nothing") == "done"

    def test_clean_path(self) -> None:
        phase = "checking"
        for trigger, expected in [
            ("checked", "confirming"),
            ("confirm", "closing-tabs"),
            ("tabs_closed", "cleaning"),
            ("finished", "done"),
        ]:
            phase = next_phase(CLEAN_GRAPH, phase, trigger)
            assert phase == expected

    def test_cancel_goes_to_error(self) -> None:
        assert next_phase(CLEAN_GRAPH, "confirming", "cancel") == "error"


class TestAgentGraph:
    """Per-agent status moves."""

    @pytest.mark.parametrize(
        "path",
        [
            ["pending", "creating-worktree", "launching", "running"],
            ["pending", "cloning", "creating-worktree", "launching", "running"],
            ["pending", "resetting", "creating-worktree", "launching", "running"],
            ["pending", "switching-branch", "launching", "running"],
            ["pending", "resetting", "launching", "running"],
        ],
    )
    def test_valid_paths(self, path: list) -> None:
        current = path[0]
        for target in path[1:]:
            current = advance_phase(AGENT_GRAPH, current, target)
        assert current == "running"

    def test_error_from_any_active_status(self) -> None:
        for status in ("pending", "cloning", "resetting", "creating-worktree", "launching"):
            assert advance_phase(AGENT_GRAPH, status, "error") == "error"

    def test_cannot_skip_launching(self) -> None:
        with pytest.raises(InvalidTransitionError):
            advance_phase(AGENT_GRAPH, "creating-worktree", "running")

    def test_running_is_final(self) -> None:
        with pytest.raises(InvalidTransitionError):
            advance_phase(AGENT_GRAPH, "running", "error")
