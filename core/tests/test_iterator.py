"""Tests for the Iterator graph: mapping over an array, interrupt mid-loop, resume."""

import pytest
from pydantic import BaseModel

from waypoint.errors import GraphWiringError, IteratorStateError
from waypoint.graph import (
    FieldKind,
    InterruptNode,
    Iterator,
    NodeSequence,
    RunConfig,
    RuntimeContext,
    make_node,
)


class ListState(BaseModel):
    inputs: list[int]
    label: str = ""


def times_two(state):
    return {"loopItem": state["loopItem"] * 2}


def plus_one(state):
    return {"loopItem": state["loopItem"] + 1}


def build_interrupting_iterator() -> Iterator:
    iterator = Iterator(ListState, "loop", "inputs")
    sequence = NodeSequence(iterator.node_schema())
    sequence.next(times_two).next(InterruptNode()).next(plus_one)
    iterator.set_looped_node(sequence)
    return iterator


class TestIteratorWiring:
    def test_requires_array_field(self):
        with pytest.raises(GraphWiringError):
            Iterator(ListState, "loop", "label")

    def test_requires_declared_field(self):
        with pytest.raises(GraphWiringError):
            Iterator(ListState, "loop", "missing")

    def test_requires_looped_node(self):
        with pytest.raises(GraphWiringError, match="looped node"):
            Iterator(ListState, "loop", "inputs").validate()

    def test_rejects_tuple_field(self):
        class TupleState(BaseModel):
            inputs: tuple[int, ...] = ()

        with pytest.raises(GraphWiringError, match="must be a list"):
            Iterator(TupleState, "loop", "inputs")

    def test_node_schema_adds_index_and_item(self):
        schema = Iterator(ListState, "loop", "inputs").node_schema()

        assert schema.field("loopIndex").kind is FieldKind.PRIMITIVE
        assert schema.field("loopItem").annotation is int
        assert schema.field("inputs").kind is FieldKind.ARRAY


@pytest.mark.asyncio
async def test_maps_node_over_array():
    iterator = Iterator(ListState, "loop", "inputs", make_node(times_two))
    result = await iterator.invoke({"inputs": [1, 2, 3]})

    assert not result.interrupted
    assert result.state["inputs"] == [2, 4, 6]


@pytest.mark.asyncio
async def test_looped_node_sees_index_and_item():
    seen = []

    def record(state):
        seen.append((state["loopIndex"], state["loopItem"]))

    iterator = Iterator(ListState, "loop", "inputs", make_node(record))
    result = await iterator.invoke({"inputs": [5, 6]})

    assert seen == [(0, 5), (1, 6)]
    assert result.state == {"inputs": [5, 6], "label": ""}


@pytest.mark.asyncio
async def test_synthetic_fields_do_not_leak_into_state():
    iterator = Iterator(ListState, "loop", "inputs", make_node(times_two))
    result = await iterator.invoke({"inputs": [1]})

    assert "loopIndex" not in result.state
    assert "loopItem" not in result.state


@pytest.mark.asyncio
async def test_looped_node_can_update_other_fields():
    def tag(state):
        return {"label": state["label"] + str(state["loopItem"])}

    iterator = Iterator(ListState, "loop", "inputs", make_node(tag))
    result = await iterator.invoke({"inputs": [1, 2, 3]})

    assert result.state == {"inputs": [1, 2, 3], "label": "123"}


@pytest.mark.asyncio
async def test_empty_array_goes_straight_to_end():
    calls = []
    iterator = Iterator(ListState, "loop", "inputs", make_node(lambda s: calls.append(s)))
    result = await iterator.invoke({"inputs": []})

    assert calls == []
    assert result.state["inputs"] == []
    assert not result.interrupted


@pytest.mark.asyncio
async def test_missing_array_raises():
    iterator = Iterator(ListState, "loop", "inputs", make_node(times_two))
    with pytest.raises(IteratorStateError, match="inputs"):
        await iterator.run({"label": "x"}, RuntimeContext("run-1"))


@pytest.mark.asyncio
async def test_non_list_array_raises():
    iterator = Iterator(ListState, "loop", "inputs", make_node(times_two))
    with pytest.raises(IteratorStateError, match="not a list"):
        await iterator.run({"inputs": "abc"}, RuntimeContext("run-1"))


@pytest.mark.asyncio
async def test_interrupt_mid_loop():
    result = await build_interrupting_iterator().invoke({"inputs": [1, 2]})

    assert result.interrupted
    assert result.state["inputs"] == [2, 2]
    assert result.cursor == "0.iterator-loop.node-1"
    assert result.exit_message == ""


@pytest.mark.asyncio
async def test_resume_mid_loop_moves_to_next_item():
    iterator = build_interrupting_iterator()
    result = await iterator.invoke({"inputs": [1, 2]}, RunConfig(resume_from="0.iterator-loop.node-1"))

    assert result.interrupted
    assert result.state["inputs"] == [2, 4]
    assert result.cursor == "1.iterator-loop.node-1"


@pytest.mark.asyncio
async def test_resume_chain_to_completion():
    iterator = build_interrupting_iterator()

    first = await iterator.invoke({"inputs": [1, 2]})
    second = await iterator.invoke(first.state, RunConfig(resume_from=first.cursor))
    third = await iterator.invoke(second.state, RunConfig(resume_from=second.cursor))

    # item 0: 1 * 2 + 1, item 1: 2 * 2 + 1
    assert second.state["inputs"] == [3, 4]
    assert not third.interrupted
    assert third.state["inputs"] == [3, 5]


@pytest.mark.asyncio
async def test_iterator_nested_in_sequence():
    class Outer(BaseModel):
        inputs: list[int]
        done: bool = False

    iterator = Iterator(Outer, "loop", "inputs", make_node(times_two))
    sequence = NodeSequence(Outer).next(iterator).next(lambda s: {"done": True})

    result = await sequence.invoke({"inputs": [3, 4]})
    assert result.state == {"inputs": [6, 8], "done": True}
