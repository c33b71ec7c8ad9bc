"""Graph module - state machines, sequences, iterators and their runtime."""

from waypoint.graph.context import ContextLayer, RunStatus, RuntimeContext
from waypoint.graph.cursor import decode_cursor, encode_cursor, layer_ids
from waypoint.graph.graph import (
    END,
    START,
    ExitReason,
    Graph,
    GraphResult,
    RunConfig,
    StoredRunConfig,
)
from waypoint.graph.iterator import Iterator
from waypoint.graph.merge import UNSET, clone_state, merge_state
from waypoint.graph.node import FunctionNode, InterruptNode, Node, NodeKind, make_node
from waypoint.graph.node_sequence import NodeSequence
from waypoint.graph.observer import StepEvent, StepObserver
from waypoint.graph.schema import Cloneable, FieldKind, FieldSpec, MergeStrategy, StateSchema
from waypoint.graph.state_machine import StateMachine
from waypoint.graph.state_transform import StateTransformNode

__all__ = [
    # Graphs
    "Graph",
    "StateMachine",
    "NodeSequence",
    "Iterator",
    "START",
    "END",
    # Nodes
    "Node",
    "NodeKind",
    "FunctionNode",
    "InterruptNode",
    "StateTransformNode",
    "make_node",
    # Invocation
    "RunConfig",
    "StoredRunConfig",
    "GraphResult",
    "ExitReason",
    "StepEvent",
    "StepObserver",
    # Runtime
    "RuntimeContext",
    "ContextLayer",
    "RunStatus",
    "encode_cursor",
    "decode_cursor",
    "layer_ids",
    # State
    "StateSchema",
    "FieldSpec",
    "FieldKind",
    "MergeStrategy",
    "Cloneable",
    "merge_state",
    "clone_state",
    "UNSET",
]
