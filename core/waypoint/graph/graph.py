"""
Graph executor.

A Graph holds named nodes plus, per node, either one unconditional edge or
one conditional edge (a router over a fixed set of candidate targets).
Execution walks from START to END one step at a time:

    START -> transition -> step(node) -> merge -> transition -> ... -> END

and stops early when a node interrupts the run. The position in every
nested graph is kept in the RuntimeContext, so an interrupted run can be
serialized into a cursor and resumed later, either by the caller
(``RunConfig.resume_from``) or through a RunStore (``StoredRunConfig``).

Subclasses decide how the graph's state maps onto what its nodes see
(``state_to_node_state`` / ``node_state_to_state``); see StateMachine,
NodeSequence and Iterator.
"""

import logging
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict

from waypoint.errors import GraphWiringError
from waypoint.graph.context import ContextLayer, RuntimeContext
from waypoint.graph.merge import clone_state, merge_state
from waypoint.graph.node import Node, NodeKind, accepts_context, call_with_context
from waypoint.graph.observer import StepEvent, StepObserver, notify_observer
from waypoint.graph.schema import StateSchema
from waypoint.observability.logging import trace_scope
from waypoint.schemas.checkpoint import END_CURSOR
from waypoint.storage.base import RunStore

logger = logging.getLogger(__name__)

START = "start"
END = END_CURSOR
RESERVED_NODE_NAMES = frozenset({START, END})

Condition = Callable[..., Any]


class ExitReason(StrEnum):
    END = "end"
    INTERRUPT = "interrupt"


class GraphResult(BaseModel):
    """Outcome of ``Graph.invoke``."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    run_id: str
    state: dict[str, Any]
    exit_reason: ExitReason
    exit_message: str | None = None
    cursor: str | None = None

    @property
    def interrupted(self) -> bool:
        return self.exit_reason == ExitReason.INTERRUPT


@dataclass
class RunConfig:
    """Ephemeral run: the caller keeps the cursor and passes it back to resume."""

    resume_from: str | None = None
    run_id: str | None = None
    observer: StepObserver | None = None


@dataclass
class StoredRunConfig:
    """Persisted run: cursor and state live in a RunStore keyed by run id."""

    store: RunStore
    run_id: str | None = None
    delete_after_end: bool = False
    observer: StepObserver | None = None


@dataclass(frozen=True)
class ConditionalEdge:
    """Router from one node to one of a fixed set of candidate targets."""

    targets: tuple[str, ...]
    condition: Condition
    pass_context: bool = True

    async def choose(self, state: dict[str, Any], context: ContextLayer) -> str:
        return await call_with_context(self.condition, self.pass_context, state, context)


class Graph(Node):
    """
    Base graph: node table, edges, and the step/transition loop.

    A Graph is itself a Node, so graphs nest. When a nested graph runs it
    pushes its own context layer and returns its complete final state.
    """

    kind = NodeKind.GRAPH

    def __init__(self, schema: "type[BaseModel] | StateSchema"):
        self.schema = StateSchema.of(schema)
        self.nodes: dict[str, Node] = {}
        self.edges: dict[str, str] = {}
        self.conditional_edges: dict[str, ConditionalEdge] = {}
        self._validated = False

    # === STATE MAPPING (overridden by variants) ===

    def state_to_node_state(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        return state

    def node_state_to_state(self, node_state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        return node_state

    def condition_view(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        """State handed to conditional edge functions."""
        return self.state_to_node_state(state, context)

    def merge_state(self, base: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
        return merge_state(base, changes, self.schema)

    # === WIRING ===

    def _set_edge(self, source: str, target: str) -> None:
        self.edges[source] = target
        self._validated = False

    def _set_conditional_edge(self, source: str, targets: list[str] | tuple[str, ...], condition: Condition) -> None:
        if not targets:
            raise GraphWiringError(f"Conditional edge from {source} needs at least one target")
        self.conditional_edges[source] = ConditionalEdge(
            targets=tuple(targets),
            condition=condition,
            pass_context=accepts_context(condition),
        )
        self._validated = False

    def validate(self) -> None:
        """
        Check the graph can run: START must lead somewhere and END must be
        reachable as some edge's target.

        Raises:
            GraphWiringError: If either condition fails
        """
        if START not in self.edges and START not in self.conditional_edges:
            raise GraphWiringError("START node must have an outgoing edge")

        targets = set(self.edges.values())
        for edge in self.conditional_edges.values():
            targets.update(edge.targets)
        if END not in targets:
            raise GraphWiringError("END node must have an incoming edge")

        self._validated = True

    def _ensure_valid(self) -> None:
        if not self._validated:
            self.validate()

    # === EXECUTION ===

    async def run(self, state: dict[str, Any], context: "ContextLayer | RuntimeContext") -> dict[str, Any]:
        """
        Run the graph in a new context layer.

        Returns the graph's complete state. The layer is popped again unless
        the run was interrupted, in which case it stays for the cursor.
        """
        self._ensure_valid()
        layer = context.next_layer()
        if layer.current_node is None:
            layer.current_node = START
        result = await self._run_internal(state, layer)
        layer.done()
        return result

    async def _run_internal(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        state = clone_state(state)
        while True:
            current = context.current_node
            if current == END:
                break
            if current == START:
                await self._transition(state, context)
                continue

            state = await self._step(state, context)
            if context.runtime.interrupted:
                break
            await self._transition(state, context)
        return state

    async def _step(self, state: dict[str, Any], context: ContextLayer) -> dict[str, Any]:
        name = context.current_node
        node = self.nodes.get(name)
        if node is None:
            raise GraphWiringError(f"Node {name} not found")

        runtime = context.runtime
        started = time.perf_counter()
        node_state = clone_state(self.state_to_node_state(state, context))
        result = await node.run(node_state, context)

        if not result:
            merged = state
        else:
            update = self.node_state_to_state(result, context)
            if node.kind is NodeKind.GRAPH:
                # nested graphs hand back their whole final state, deletions included
                merged = update
            else:
                merged = self.merge_state(state, update)

        latency_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.debug(
            f"Step {name} ({node.kind}) finished in {latency_ms}ms",
            extra={
                "event": "step",
                "node": name,
                "node_kind": str(node.kind),
                "layer": context.id,
                "latency_ms": latency_ms,
            },
        )

        if runtime.observer is not None:
            await notify_observer(
                runtime.observer,
                StepEvent(
                    run_id=runtime.run_id,
                    node_name=name,
                    node_kind=str(node.kind),
                    layer_id=context.id,
                    before=clone_state(state),
                    after=clone_state(merged),
                    interrupted=runtime.interrupted,
                    latency_ms=latency_ms,
                ),
            )
        return merged

    async def _transition(self, state: dict[str, Any], context: ContextLayer) -> None:
        current = context.current_node

        target = self.edges.get(current)
        if target is not None:
            context.current_node = target
            return

        edge = self.conditional_edges.get(current)
        if edge is None:
            raise GraphWiringError(f"No edge or conditional edge found after node {current}")

        choice = await edge.choose(self.condition_view(state, context), context)
        if choice not in edge.targets:
            raise GraphWiringError(
                f"No edge found after node {current} for condition result {choice!r} "
                f"(expected one of {list(edge.targets)})"
            )
        context.current_node = choice

    # === ENTRY POINT ===

    async def invoke(
        self,
        input: Mapping[str, Any] | BaseModel,
        config: RunConfig | StoredRunConfig | None = None,
    ) -> GraphResult:
        """
        Run the graph from the top.

        Args:
            input: Initial state (validated against the schema)
            config: RunConfig for an ephemeral run, StoredRunConfig to load
                and save through a RunStore

        Returns:
            GraphResult with exit reason END or INTERRUPT

        Raises:
            GraphWiringError: If the graph is wired incorrectly
            SchemaMismatchError: If the input does not match the schema
            CursorError: If the resume cursor is malformed
        """
        config = config or RunConfig()
        run_id = config.run_id or uuid.uuid4().hex
        self.validate()

        with trace_scope(run_id=run_id):
            if isinstance(config, StoredRunConfig):
                return await self._invoke_stored(input, config, run_id)
            return await self._invoke_ephemeral(input, config, run_id)

    async def _invoke_ephemeral(self, input: Any, config: RunConfig, run_id: str) -> GraphResult:
        runtime = RuntimeContext(run_id, observer=config.observer)
        if config.resume_from:
            runtime.unwrap_cursor(config.resume_from)
            logger.info(f"🔄 Resuming from: {config.resume_from}", extra={"cursor": config.resume_from})
        else:
            logger.info(f"🚀 Starting run {run_id}")

        state = self.schema.validate(input)
        final_state = await self.run(state, runtime)
        return self._build_result(runtime, final_state)

    async def _invoke_stored(self, input: Any, config: StoredRunConfig, run_id: str) -> GraphResult:
        stored_run = config.store.get_stored_run(run_id)
        runtime = RuntimeContext(run_id, stored_run=stored_run, observer=config.observer)

        if isinstance(input, BaseModel):
            input = input.model_dump(exclude_unset=True)
        start_state = dict(input)
        finished = False
        if await stored_run.exists():
            checkpoint = await stored_run.load()
            # caller's keys win over the checkpoint; merge strategies are not applied
            start_state = merge_state(checkpoint.state, input, self.schema, apply_strategies=False)
            finished = checkpoint.finished
            if finished:
                logger.info(f"✓ Run {run_id} already reached END", extra={"cursor": checkpoint.cursor})
            else:
                runtime.unwrap_cursor(checkpoint.cursor)
                logger.info(f"📥 Loaded run {run_id} at {checkpoint.cursor}", extra={"cursor": checkpoint.cursor})
        else:
            logger.info(f"🚀 Starting stored run {run_id}")

        state = self.schema.validate(start_state)
        final_state = state if finished else await self.run(state, runtime)

        result = self._build_result(runtime, final_state)
        if result.interrupted:
            await stored_run.save(result.cursor, final_state)
        elif config.delete_after_end:
            await stored_run.delete()
            logger.info(f"🗑 Deleted finished run {run_id}")
        else:
            await stored_run.save(END, final_state)
        return result

    def _build_result(self, runtime: RuntimeContext, final_state: dict[str, Any]) -> GraphResult:
        if runtime.interrupted:
            cursor = runtime.wrap_cursor()
            logger.info(f"⏸ Run {runtime.run_id} interrupted at {cursor}", extra={"cursor": cursor})
            return GraphResult(
                run_id=runtime.run_id,
                state=final_state,
                exit_reason=ExitReason.INTERRUPT,
                exit_message=runtime.exit_message,
                cursor=cursor,
            )
        logger.info(f"✓ Run {runtime.run_id} reached END")
        return GraphResult(run_id=runtime.run_id, state=final_state, exit_reason=ExitReason.END)


__all__ = [
    "END",
    "RESERVED_NODE_NAMES",
    "START",
    "ConditionalEdge",
    "ExitReason",
    "Graph",
    "GraphResult",
    "RunConfig",
    "StoredRunConfig",
]
