"""Tests for the runtime context stack and the cursor codec."""

import pytest

from waypoint.errors import CursorError
from waypoint.graph.context import RunStatus, RuntimeContext
from waypoint.graph.cursor import decode_cursor, encode_cursor, layer_ids


class TestCursorCodec:
    def test_encode_decode(self):
        assert encode_cursor(["subgraph", "interrupt"]) == "subgraph.interrupt"
        assert decode_cursor("0.iterator-loop.node-1") == ["0", "iterator-loop", "node-1"]

    def test_single_segment(self):
        assert decode_cursor("interrupt") == ["interrupt"]

    @pytest.mark.parametrize("cursor", ["", "a..b", ".a", "a."])
    def test_decode_rejects_empty_segments(self, cursor):
        with pytest.raises(CursorError):
            decode_cursor(cursor)

    def test_encode_rejects_separator_in_segment(self):
        with pytest.raises(CursorError):
            encode_cursor(["a.b"])

    def test_layer_ids(self):
        assert layer_ids(["0", "iterator-loop", "node-1"]) == ["ROOT", "ROOT.0", "ROOT.0.iterator-loop"]


class TestRuntimeContext:
    def test_next_layer_pushes(self):
        runtime = RuntimeContext("run-1")
        root = runtime.next_layer()
        child = root.next_layer()

        assert runtime.depth == 2
        assert root.depth == 0
        assert child.depth == 1
        assert child.parent is root

    def test_layer_ids_follow_parent_node(self):
        runtime = RuntimeContext("run-1")
        root = runtime.next_layer()
        root.current_node = "subgraph"
        child = runtime.next_layer()

        assert root.id == "ROOT"
        assert child.id == "ROOT.subgraph"

    def test_done_pops_layer(self):
        runtime = RuntimeContext("run-1")
        root = runtime.next_layer()
        child = runtime.next_layer()
        child.done()

        assert runtime.depth == 1
        assert runtime.layers == [root]

    def test_done_keeps_layers_when_interrupted(self):
        runtime = RuntimeContext("run-1")
        runtime.next_layer().current_node = "a"
        child = runtime.next_layer()
        child.current_node = "b"
        runtime.mark_interrupted("waiting for approval")
        child.done()

        assert len(runtime.layers) == 2
        assert runtime.exit_message == "waiting for approval"
        assert runtime.wrap_cursor() == "a.b"

    def test_wrap_unwrap_round_trip(self):
        original = RuntimeContext("run-1")
        for node in ["0", "iterator-loop", "node-1"]:
            original.next_layer().current_node = node
        cursor = original.wrap_cursor()

        restored = RuntimeContext("run-1")
        restored.unwrap_cursor(cursor)

        assert restored.resuming
        assert [layer.current_node for layer in restored.layers] == ["0", "iterator-loop", "node-1"]
        assert [layer.id for layer in restored.layers] == [layer.id for layer in original.layers]
        assert restored.wrap_cursor() == cursor

    def test_unwrapped_layers_are_reused_by_next_layer(self):
        runtime = RuntimeContext("run-1")
        runtime.unwrap_cursor("subgraph.interrupt")

        root = runtime.next_layer()
        child = runtime.next_layer()
        assert root.current_node == "subgraph"
        assert child.current_node == "interrupt"

        fresh = runtime.next_layer()
        assert fresh.current_node is None

    def test_unwrap_does_not_restore_custom(self):
        runtime = RuntimeContext("run-1")
        runtime.unwrap_cursor("a.b")
        assert all(layer.custom == {} for layer in runtime.layers)

    def test_unwrap_requires_fresh_context(self):
        runtime = RuntimeContext("run-1")
        runtime.next_layer()
        with pytest.raises(CursorError):
            runtime.unwrap_cursor("a")

    def test_mark_resumed_clears_flag(self):
        runtime = RuntimeContext("run-1")
        runtime.unwrap_cursor("interrupt")
        runtime.mark_resumed()
        assert not runtime.resuming

    def test_wrap_requires_current_nodes(self):
        runtime = RuntimeContext("run-1")
        runtime.next_layer()
        with pytest.raises(CursorError):
            runtime.wrap_cursor()

    def test_status_transitions(self):
        runtime = RuntimeContext("run-1")
        assert runtime.status is RunStatus.FRESH

        layer = runtime.next_layer()
        assert runtime.status is RunStatus.RUNNING

        layer.done()
        assert runtime.status is RunStatus.COMPLETED

    def test_interrupt_without_reason_has_empty_message(self):
        runtime = RuntimeContext("run-1")
        runtime.mark_interrupted()
        assert runtime.exit_message == ""

    def test_status_interrupted(self):
        runtime = RuntimeContext("run-1")
        runtime.next_layer()
        runtime.mark_interrupted()
        assert runtime.status is RunStatus.INTERRUPTED
