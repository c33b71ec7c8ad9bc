"""Linear pipeline graph: START -> node-0 -> node-1 -> ... -> END."""

from waypoint.graph.graph import END, START, Graph
from waypoint.graph.node import Node, NodeFunc, as_node

SEQUENCE_NODE_PREFIX = "node-"


class NodeSequence(Graph):
    """
    Graph that runs its nodes in the order they were added.

    Nodes are named ``node-0``, ``node-1``, ... so cursors into a sequence
    look like ``"node-1"``. Each ``next()`` call rewires the previous tail
    to the new node and the new node to END.
    """

    def next(self, node: Node | NodeFunc) -> "NodeSequence":
        name = f"{SEQUENCE_NODE_PREFIX}{len(self.nodes)}"
        previous = f"{SEQUENCE_NODE_PREFIX}{len(self.nodes) - 1}" if self.nodes else START

        self.nodes[name] = as_node(node)
        self._set_edge(previous, name)
        self._set_edge(name, END)
        return self
