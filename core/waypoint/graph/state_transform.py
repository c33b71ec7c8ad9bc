"""
StateTransformNode: run a node (usually a nested graph) against a state of
a different shape than its parent's.

    input(parent_state, ctx)  -> child state   (validated against the child schema)
    node.run(child state)     -> child result  (merged into the child state)
    output(child_state, ctx)  -> parent update

If the wrapped node interrupts, the whole child state is stashed in the
parent update under ``__wrapped_state_<layer id>.<node name>`` so it is
checkpointed with the parent. On resume the stash is read back instead of
calling ``input`` again, and it is cleared once the node completes.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel

from waypoint.graph.context import ContextLayer
from waypoint.graph.merge import UNSET, clone_state, merge_state
from waypoint.graph.node import Node, NodeFunc, NodeKind, accepts_context, as_node, call_with_context
from waypoint.graph.schema import StateSchema

logger = logging.getLogger(__name__)

WRAPPED_STATE_PREFIX = "__wrapped_state_"
PARENT_STATE_KEY = "__parent_state"

Transform = Callable[..., Mapping[str, Any]]


class StateTransformNode(Node):
    """
    Adapter between a parent state and a child schema.

    Args:
        schema: Child state model
        input: Maps the parent state to the child state
        node: Node or graph to run on the child state
        output: Maps the final child state back to a parent partial update

    The child state carries a read-only ``__parent_state`` reference while
    the wrapped node runs. It is never stashed or returned.
    """

    kind = NodeKind.STATE_TRANSFORM

    def __init__(
        self,
        schema: "type[BaseModel] | StateSchema",
        input: Transform,
        node: Node | NodeFunc,
        output: Transform,
    ):
        self.schema = StateSchema.of(schema)
        self.input = input
        self.node = as_node(node)
        self.output = output
        self._input_takes_context = accepts_context(input)
        self._output_takes_context = accepts_context(output)

    def stash_key(self, context: ContextLayer) -> str:
        return f"{WRAPPED_STATE_PREFIX}{context.id}.{context.current_node}"

    async def run(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        key = self.stash_key(context)
        runtime = context.runtime

        if runtime.resuming and isinstance(state.get(key), Mapping):
            child_state = dict(state[key])
            logger.debug(f"Restored wrapped state from {key}", extra={"layer": context.id})
        else:
            transformed = await call_with_context(self.input, self._input_takes_context, state, context)
            child_state = self.schema.validate(transformed, label="Transformed input")
        child_state[PARENT_STATE_KEY] = state

        result = await self.node.run(clone_state(child_state), context)
        if self.node.kind is NodeKind.GRAPH:
            child_state = dict(result)
        elif result:
            child_state = merge_state(child_state, result, self.schema)

        if runtime.interrupted:
            stash = {k: v for k, v in child_state.items() if k != PARENT_STATE_KEY}
            return {key: stash}

        update = dict(await call_with_context(self.output, self._output_takes_context, child_state, context))
        update[key] = UNSET
        return update

    def __repr__(self) -> str:
        return f"StateTransformNode({self.schema.name}, {self.node!r})"
