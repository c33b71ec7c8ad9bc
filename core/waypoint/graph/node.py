"""
Node types.

Every node exposes ``async run(state, context) -> partial update`` and a
``kind`` discriminant the executor dispatches on:

- FunctionNode: wraps a user callable (sync or async)
- InterruptNode: pauses the run the first time it is reached
- StateTransformNode: runs a node against a differently-shaped state
  (see ``state_transform.py``)
- Graph: a whole graph used as a node (see ``graph.py``)
"""

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any

from waypoint.graph.context import ContextLayer

logger = logging.getLogger(__name__)

NodeFunc = Callable[..., Mapping[str, Any] | None | Awaitable[Mapping[str, Any] | None]]


class NodeKind(StrEnum):
    FUNCTION = "function"
    INTERRUPT = "interrupt"
    STATE_TRANSFORM = "state_transform"
    GRAPH = "graph"


class Node(ABC):
    """Base class for anything a graph can step through."""

    kind: NodeKind

    @abstractmethod
    async def run(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        """
        Execute the node.

        Args:
            state: A private copy of the current state; safe to mutate
            context: The layer of the graph running this node

        Returns:
            Partial state update (empty dict for "no change")
        """


def accepts_context(func: Callable[..., Any]) -> bool:
    """Whether a callable takes a second (context) positional argument."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return True
    positional = 0
    for param in signature.parameters.values():
        if param.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 2


async def call_with_context(func: Callable[..., Any], pass_context: bool, state: Any, context: Any) -> Any:
    """Call ``func(state[, context])`` and await the result if needed."""
    result = func(state, context) if pass_context else func(state)
    if inspect.isawaitable(result):
        result = await result
    return result


class FunctionNode(Node):
    """
    Node backed by a plain function.

    The function receives the state (and the context layer, if it accepts a
    second argument) and returns a partial update. Returning None means
    "no change".
    """

    kind = NodeKind.FUNCTION

    def __init__(self, func: NodeFunc, name: str | None = None):
        if not callable(func):
            raise TypeError(f"FunctionNode expects a callable, got {func!r}")
        self.func = func
        self.name = name or getattr(func, "__name__", type(func).__name__)
        self._pass_context = accepts_context(func)

    async def run(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        result = await call_with_context(self.func, self._pass_context, state, context)
        if result is None:
            return {}
        if not isinstance(result, Mapping):
            raise TypeError(f"Node function {self.name} returned {type(result).__name__}, expected a dict")
        return dict(result)

    def __repr__(self) -> str:
        return f"FunctionNode({self.name})"


def make_node(func: NodeFunc, name: str | None = None) -> FunctionNode:
    """Wrap a callable as a FunctionNode."""
    return FunctionNode(func, name=name)


def as_node(node: "Node | NodeFunc") -> Node:
    if isinstance(node, Node):
        return node
    return make_node(node)


class InterruptNode(Node):
    """
    Pause point.

    On a fresh pass it marks the run interrupted; the executor stops and
    the caller gets an interrupt result with a cursor pointing here. When
    the run is resumed from that cursor, the node only clears the resume
    flag and execution carries on to its successor.
    """

    kind = NodeKind.INTERRUPT

    def __init__(self, message: str | None = None):
        self.message = message

    async def run(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        runtime = context.runtime
        if runtime.resuming:
            runtime.mark_resumed()
            logger.info(
                f"Resuming past interrupt at {context.current_node}",
                extra={"event": "resume", "layer": context.id, "node": context.current_node},
            )
        else:
            runtime.mark_interrupted(self.message)
            logger.info(
                f"Interrupted at {context.current_node}: {self.message or ''}",
                extra={"event": "interrupt", "layer": context.id, "node": context.current_node},
            )
        return {}

    def __repr__(self) -> str:
        return f"InterruptNode({self.message!r})"


__all__ = [
    "FunctionNode",
    "InterruptNode",
    "Node",
    "NodeFunc",
    "NodeKind",
    "as_node",
    "make_node",
]
