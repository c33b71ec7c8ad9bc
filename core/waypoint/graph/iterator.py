"""
Iterator: run one node once per element of an array field.

Wiring:

    START ──(array non-empty)──> iterator-loop ──(more items)──> increment-index ──> iterator-loop
      └──(empty)──> END                └──(last item)──> END

The current index is kept as the ``current_node`` of an extra context
layer that sits just above the loop graph's own layer, so an interrupt
inside the looped node produces cursors such as ``"1.iterator-loop.node-0"``
and resuming restarts at the right element.

The looped node sees the graph state plus two synthetic fields,
``{prefix}Index`` and ``{prefix}Item``. Whatever it returns for
``{prefix}Item`` is written back into the array at that index.
"""

import logging
from typing import Any, get_origin

from pydantic import BaseModel

from waypoint.errors import GraphWiringError, IteratorStateError
from waypoint.graph.context import ContextLayer, RuntimeContext
from waypoint.graph.graph import END, START, Graph
from waypoint.graph.node import FunctionNode, Node, NodeFunc, as_node
from waypoint.graph.schema import FieldKind, StateSchema

logger = logging.getLogger(__name__)

ITERATOR_LOOP_NODE = "iterator-loop"
INCREMENT_INDEX_NODE = "increment-index"

INDEX_LAYER_KEY = "index_layer"
ITEMS_KEY = "items"


class Iterator(Graph):
    """Maps a node over ``state[array_key]``."""

    def __init__(
        self,
        schema: "type[BaseModel] | StateSchema",
        prefix: str,
        array_key: str,
        looped_node: Node | NodeFunc | None = None,
    ):
        super().__init__(schema)
        spec = self.schema.field(array_key)
        if spec is None or spec.kind is not FieldKind.ARRAY:
            raise GraphWiringError(f"Iterator field {array_key} must be declared as a list on {self.schema.name}")
        container = get_origin(spec.annotation) or spec.annotation
        if not (isinstance(container, type) and issubclass(container, list)):
            raise GraphWiringError(f"Iterator field {array_key} must be a list, not {spec.annotation!r}")

        self.prefix = prefix
        self.array_key = array_key
        self.index_key = f"{prefix}Index"
        self.item_key = f"{prefix}Item"
        self._item_annotation = spec.item.annotation if spec.item is not None else Any
        self._node_schema: StateSchema | None = None

        self.nodes[INCREMENT_INDEX_NODE] = FunctionNode(self._increment_index, name=INCREMENT_INDEX_NODE)
        self._set_conditional_edge(START, [ITERATOR_LOOP_NODE, END], self._has_items)
        self._set_conditional_edge(ITERATOR_LOOP_NODE, [INCREMENT_INDEX_NODE, END], self._has_more)
        self._set_edge(INCREMENT_INDEX_NODE, ITERATOR_LOOP_NODE)

        if looped_node is not None:
            self.set_looped_node(looped_node)

    def set_looped_node(self, node: Node | NodeFunc) -> "Iterator":
        self.nodes[ITERATOR_LOOP_NODE] = as_node(node)
        self._validated = False
        return self

    def node_schema(self) -> StateSchema:
        """Schema the looped node sees: the graph schema plus index and item."""
        if self._node_schema is None:
            self._node_schema = self.schema.extend(
                name=f"{self.schema.name}{self.prefix.capitalize()}Iteration",
                **{self.index_key: int, self.item_key: self._item_annotation},
            )
        return self._node_schema

    def validate(self) -> None:
        if ITERATOR_LOOP_NODE not in self.nodes:
            raise GraphWiringError(f"Iterator over {self.array_key} has no looped node")
        super().validate()

    # === STATE MAPPING ===

    def state_to_node_state(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        items = self._array(state)
        index = self._index(context)
        if not 0 <= index < len(items):
            raise IteratorStateError(
                f"Item {index} not found in {self.array_key} (length {len(items)})"
            )
        return {**state, self.index_key: index, self.item_key: items[index]}

    def node_state_to_state(self, node_state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        update = dict(node_state)
        update.pop(self.index_key, None)
        if self.item_key in update:
            items = context.custom[ITEMS_KEY]
            items[self._index(context)] = update.pop(self.item_key)
            update[self.array_key] = list(items)
        return update

    def condition_view(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        # routing only looks at the array length, which must work past the last index
        return state

    # === EXECUTION ===

    async def run(self, state: dict[str, Any], context: "ContextLayer | RuntimeContext") -> dict[str, Any]:
        self._ensure_valid()
        index_layer = context.next_layer()
        if index_layer.current_node is None:
            index_layer.current_node = "0"

        layer = index_layer.next_layer()
        if layer.current_node is None:
            layer.current_node = START
        layer.custom[INDEX_LAYER_KEY] = index_layer
        layer.custom[ITEMS_KEY] = list(self._array(state))

        result = await self._run_internal(state, layer)
        layer.done()
        index_layer.done()
        return result

    def _array(self, state: dict[str, Any]) -> list[Any]:
        if self.array_key not in state:
            raise IteratorStateError(f"Array {self.array_key} not found in state")
        items = state[self.array_key]
        if not isinstance(items, list):
            raise IteratorStateError(f"Field {self.array_key} is not a list: {type(items).__name__}")
        return items

    def _index(self, context: ContextLayer) -> int:
        index_layer: ContextLayer = context.custom[INDEX_LAYER_KEY]
        try:
            return int(index_layer.current_node)
        except (TypeError, ValueError) as e:
            raise IteratorStateError(f"Invalid iterator index {index_layer.current_node!r}") from e

    def _has_items(self, state: dict[str, Any]) -> str:
        return ITERATOR_LOOP_NODE if self._array(state) else END

    def _has_more(self, state: dict[str, Any], context: ContextLayer) -> str:
        return INCREMENT_INDEX_NODE if self._index(context) + 1 < len(self._array(state)) else END

    def _increment_index(self, state: dict[str, Any], context: ContextLayer) -> None:
        index_layer: ContextLayer = context.custom[INDEX_LAYER_KEY]
        index_layer.current_node = str(self._index(context) + 1)
        logger.debug(f"Iterator over {self.array_key} advanced to {index_layer.current_node}")
