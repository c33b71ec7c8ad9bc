"""
Waypoint - graph workflows that can stop half-way and pick up again.

Build a graph out of nodes, run it with ``invoke()``, and when a node
interrupts, keep the returned cursor (or let a RunStore keep it) to resume
the run later, possibly in another process.
"""

from waypoint.errors import (
    CursorError,
    GraphWiringError,
    IteratorStateError,
    RunNotFoundError,
    SchemaMismatchError,
    StateMergeError,
    WaypointError,
)
from waypoint.graph import (
    END,
    START,
    UNSET,
    ExitReason,
    FunctionNode,
    Graph,
    GraphResult,
    InterruptNode,
    Iterator,
    MergeStrategy,
    Node,
    NodeKind,
    NodeSequence,
    RunConfig,
    StateMachine,
    StateSchema,
    StateTransformNode,
    StepEvent,
    StoredRunConfig,
    make_node,
)
from waypoint.storage import FileRunStore, MemoryRunStore, RunStore, SQLiteRunStore

__version__ = "0.1.0"

__all__ = [
    "END",
    "START",
    "UNSET",
    "CursorError",
    "ExitReason",
    "FileRunStore",
    "FunctionNode",
    "Graph",
    "GraphResult",
    "GraphWiringError",
    "InterruptNode",
    "Iterator",
    "IteratorStateError",
    "MemoryRunStore",
    "MergeStrategy",
    "Node",
    "NodeKind",
    "NodeSequence",
    "RunConfig",
    "RunNotFoundError",
    "RunStore",
    "SQLiteRunStore",
    "SchemaMismatchError",
    "StateMachine",
    "StateMergeError",
    "StateSchema",
    "StateTransformNode",
    "StepEvent",
    "StoredRunConfig",
    "WaypointError",
    "make_node",
]
