"""Lifecycle workflows: spawn, list, delete, prune and clean.

Each workflow keeps its progress in an immutable state object, changes it
only through a pure ``transition(state, event)`` function, and is driven by
a small class that performs the git and terminal work.
"""

from claudectl.workflows.clean import CleanRequest, CleanState, CleanWorkflow
from claudectl.workflows.delete import DeleteRequest, DeleteState, DeleteWorkflow
from claudectl.workflows.listing import ListReport, list_agents
from claudectl.workflows.prune import PruneRequest, PruneState, PruneWorkflow
from claudectl.workflows.spawn import (
    AgentStatus,
    SpawnRequest,
    SpawnState,
    SpawnWorkflow,
)

__all__ = [
    "AgentStatus",
    "CleanRequest",
    "CleanState",
    "CleanWorkflow",
    "DeleteRequest",
    "DeleteState",
    "DeleteWorkflow",
    "ListReport",
    "PruneRequest",
    "PruneState",
    "PruneWorkflow",
    "SpawnRequest",
    "SpawnState",
    "SpawnWorkflow",
    "list_agents",
]
