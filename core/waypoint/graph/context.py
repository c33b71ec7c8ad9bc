"""
Runtime context: a stack of layers, one per nesting level of a running graph.

Each graph run pushes a layer (``next_layer``) and pops it again when it
finishes (``ContextLayer.done``), unless the run was interrupted. An
interrupted run leaves the whole stack in place so it can be serialized
into a cursor. Resuming does the reverse: ``unwrap_cursor`` pre-populates
the stack so each ``next_layer`` call picks up where the run stopped.
"""

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from waypoint.errors import CursorError
from waypoint.graph.cursor import CURSOR_SEPARATOR, ROOT_LAYER_ID, decode_cursor, encode_cursor

if TYPE_CHECKING:
    from waypoint.graph.observer import StepObserver
    from waypoint.storage.base import StoredRun

logger = logging.getLogger(__name__)


class RunStatus(StrEnum):
    FRESH = "fresh"
    RUNNING = "running"
    INTERRUPTED = "interrupted"
    COMPLETED = "completed"


class ContextLayer:
    """
    One frame of the runtime stack.

    Attributes:
        runtime: Owning RuntimeContext
        depth: Position of this layer in the stack
        current_node: Node the layer's graph is at (None until first used)
        custom: Scratch space for graph variants (the iterator keeps its
            index layer and tracked array here)
    """

    def __init__(self, runtime: "RuntimeContext", depth: int, current_node: str | None = None):
        self.runtime = runtime
        self.depth = depth
        self.current_node = current_node
        self.custom: dict[str, Any] = {}

    @property
    def id(self) -> str:
        """Stable id: ROOT for the outermost layer, else parent id + parent node."""
        if self.depth == 0:
            return ROOT_LAYER_ID
        parent = self.parent
        return f"{parent.id}{CURSOR_SEPARATOR}{parent.current_node}"

    @property
    def parent(self) -> "ContextLayer | None":
        if self.depth == 0:
            return None
        return self.runtime.layers[self.depth - 1]

    def next_layer(self) -> "ContextLayer":
        return self.runtime.next_layer()

    def done(self) -> None:
        """Pop this layer, unless the run was interrupted."""
        if not self.runtime.interrupted:
            self.runtime.remove_top_layer()

    def __repr__(self) -> str:
        return f"ContextLayer(id={self.id!r}, current_node={self.current_node!r})"


class RuntimeContext:
    """
    Execution stack for one invocation.

    Tracks the interrupt/resume flags alongside the layers. A context is
    fresh until the first layer is pushed, running while layers are live,
    and ends up either interrupted or completed.
    """

    def __init__(
        self,
        run_id: str,
        stored_run: "StoredRun | None" = None,
        observer: "StepObserver | None" = None,
    ):
        self.run_id = run_id
        self.stored_run = stored_run
        self.observer = observer
        self._layers: list[ContextLayer] = []
        self._pointer = -1
        self._started = False
        self._interrupted = False
        self._exit_message: str | None = None
        self._resuming = False

    # === STACK ===

    @property
    def layers(self) -> list[ContextLayer]:
        return self._layers

    @property
    def depth(self) -> int:
        return self._pointer + 1

    def next_layer(self) -> ContextLayer:
        """Advance to the next depth, reusing a layer restored from a cursor."""
        self._started = True
        self._pointer += 1
        if self._pointer < len(self._layers):
            return self._layers[self._pointer]
        layer = ContextLayer(self, self._pointer)
        self._layers.append(layer)
        return layer

    def remove_top_layer(self) -> None:
        if not self._layers:
            raise RuntimeError("Cannot remove a layer from an empty runtime context")
        self._layers.pop()
        self._pointer = len(self._layers) - 1

    # === INTERRUPT / RESUME ===

    @property
    def interrupted(self) -> bool:
        return self._interrupted

    @property
    def exit_message(self) -> str | None:
        return self._exit_message

    @property
    def resuming(self) -> bool:
        return self._resuming

    def mark_interrupted(self, reason: str | None = None) -> None:
        self._interrupted = True
        self._exit_message = reason or ""

    def mark_resumed(self) -> None:
        self._resuming = False

    @property
    def status(self) -> RunStatus:
        if self._interrupted:
            return RunStatus.INTERRUPTED
        if not self._started:
            return RunStatus.FRESH
        if self._layers:
            return RunStatus.RUNNING
        return RunStatus.COMPLETED

    # === CURSOR ===

    def wrap_cursor(self) -> str:
        """Serialize the stack into a cursor string."""
        nodes = [layer.current_node for layer in self._layers]
        if any(node is None for node in nodes):
            raise CursorError("Cannot build a cursor: a layer has no current node")
        return encode_cursor(nodes)

    def unwrap_cursor(self, cursor: str) -> None:
        """
        Rebuild the stack from a cursor and enter resume mode.

        Raises:
            CursorError: If the cursor is malformed or the context is not fresh
        """
        if self._started or self._layers:
            raise CursorError("A cursor can only be unwrapped into a fresh runtime context")
        for depth, node in enumerate(decode_cursor(cursor)):
            self._layers.append(ContextLayer(self, depth, node))
        self._resuming = True
        logger.debug(f"Unwrapped cursor {cursor} into {len(self._layers)} layers", extra={"cursor": cursor})

    def __repr__(self) -> str:
        return f"RuntimeContext(run_id={self.run_id!r}, status={self.status}, depth={self.depth})"
