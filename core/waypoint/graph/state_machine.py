"""General-purpose graph built by hand from nodes and edges."""

from typing import Any

from waypoint.errors import GraphWiringError
from waypoint.graph.cursor import CURSOR_SEPARATOR
from waypoint.graph.graph import END, RESERVED_NODE_NAMES, START, Condition, Graph
from waypoint.graph.node import Node, NodeFunc, as_node


def check_node_name(name: str, existing: dict[str, Any]) -> None:
    """
    Raises:
        GraphWiringError: If the name is empty, reserved, already taken, or
            contains the cursor separator
    """
    if not isinstance(name, str) or not name:
        raise GraphWiringError(f"Invalid node name: {name!r}")
    if name in RESERVED_NODE_NAMES:
        raise GraphWiringError(f"Node {name} is reserved")
    if CURSOR_SEPARATOR in name:
        raise GraphWiringError(f"Node name {name!r} may not contain {CURSOR_SEPARATOR!r}")
    if name in existing:
        raise GraphWiringError(f"Node {name} already exists")


class StateMachine(Graph):
    """
    Graph whose nodes see the graph state unchanged.

    Example:
        machine = StateMachine(CounterState)
        machine.add_node("increment", make_node(lambda s: {"count": s["count"] + 1}))
        machine.add_edge(START, "increment")
        machine.add_edge("increment", END)
        result = await machine.invoke({"count": 0})
    """

    def add_node(self, name: str, node: Node | NodeFunc) -> "StateMachine":
        check_node_name(name, self.nodes)
        self.nodes[name] = as_node(node)
        self._validated = False
        return self

    def add_edge(self, source: str, target: str) -> "StateMachine":
        self._check_endpoints(source, [target])
        self._set_edge(source, target)
        return self

    def add_conditional_edge(self, source: str, targets: list[str], condition: Condition) -> "StateMachine":
        """
        Route from ``source`` to whichever of ``targets`` ``condition`` returns.

        The condition receives the state (and optionally the context layer)
        and may be sync or async.
        """
        self._check_endpoints(source, targets)
        self._set_conditional_edge(source, targets, condition)
        return self

    def _check_endpoints(self, source: str, targets: list[str]) -> None:
        if source == END:
            raise GraphWiringError("END cannot have outgoing edges")
        if START in targets:
            raise GraphWiringError("START cannot be an edge target")
