"""Tests for StateSchema compilation and validation."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

import pytest
from pydantic import BaseModel

from waypoint.errors import SchemaMismatchError
from waypoint.graph.schema import FieldKind, MergeStrategy, StateSchema, describe_annotation


class Color(Enum):
    RED = "red"


class Address(BaseModel):
    city: str = ""


class Person(BaseModel):
    name: str
    age: int = 0
    tags: list[str] = []
    address: Address | None = None
    meta: dict[str, Any] = {}
    seen: Annotated[int, MergeStrategy(max)] = 0


def _add(old, new):
    return old + new


class TestDescribeAnnotation:
    @pytest.mark.parametrize(
        "annotation,kind",
        [
            (str, FieldKind.PRIMITIVE),
            (int | None, FieldKind.PRIMITIVE),
            (Literal["a", "b"], FieldKind.PRIMITIVE),
            (Color, FieldKind.PRIMITIVE),
            (int | str, FieldKind.PRIMITIVE),
            (list[int], FieldKind.ARRAY),
            (tuple[int, ...], FieldKind.ARRAY),
            (dict[str, int], FieldKind.MAPPING),
            (Address, FieldKind.OBJECT),
            (Address | None, FieldKind.OBJECT),
            (Any, FieldKind.UNKNOWN),
            (Address | int, FieldKind.UNKNOWN),
            (datetime, FieldKind.OPAQUE),
        ],
    )
    def test_kinds(self, annotation, kind):
        assert describe_annotation(annotation).kind is kind

    def test_array_item_type(self):
        spec = describe_annotation(list[Address])
        assert spec.item.kind is FieldKind.OBJECT
        assert spec.item.annotation is Address

    def test_mapping_item_type(self):
        spec = describe_annotation(dict[str, list[int]])
        assert spec.item.kind is FieldKind.ARRAY

    def test_annotated_merge_strategy(self):
        strategy = MergeStrategy(_add)
        spec = describe_annotation(Annotated[int, strategy])
        assert spec.kind is FieldKind.PRIMITIVE
        assert spec.merge is strategy

    def test_optional_annotated_merge_strategy(self):
        strategy = MergeStrategy(_add)
        spec = describe_annotation(Annotated[int, strategy] | None)
        assert spec.merge is strategy

    def test_object_children(self):
        spec = describe_annotation(Address)
        assert spec.children.field("city").kind is FieldKind.PRIMITIVE


class TestStateSchema:
    def test_of_is_cached(self):
        assert StateSchema.of(Person) is StateSchema.of(Person)

    def test_of_accepts_schema(self):
        schema = StateSchema.of(Person)
        assert StateSchema.of(schema) is schema

    def test_of_rejects_non_models(self):
        with pytest.raises(TypeError):
            StateSchema.of(dict)

    def test_fields_from_model(self):
        schema = StateSchema.of(Person)
        assert schema.field("tags").kind is FieldKind.ARRAY
        assert schema.field("address").kind is FieldKind.OBJECT
        assert schema.field("meta").kind is FieldKind.MAPPING
        assert schema.field("seen").merge is not None
        assert schema.field("missing") is None

    def test_merge_strategy_from_field_metadata(self):
        schema = StateSchema.of(Person)
        assert schema.field("seen").merge(3, 7) == 7

    def test_validate_fills_defaults(self):
        validated = StateSchema.of(Person).validate({"name": "ada"})
        assert validated == {
            "name": "ada",
            "age": 0,
            "tags": [],
            "address": None,
            "meta": {},
            "seen": 0,
        }

    def test_validate_keeps_undeclared_keys(self):
        validated = StateSchema.of(Person).validate({"name": "ada", "__wrapped_state_ROOT.x": {"a": 1}})
        assert validated["__wrapped_state_ROOT.x"] == {"a": 1}

    def test_validate_coerces_nested_model_to_dict(self):
        validated = StateSchema.of(Person).validate({"name": "ada", "address": Address(city="Paris")})
        assert validated["address"] == {"city": "Paris"}

    def test_validate_accepts_model_instance(self):
        validated = StateSchema.of(Person).validate(Person(name="ada", age=3))
        assert validated["age"] == 3

    def test_validate_mismatch(self):
        with pytest.raises(SchemaMismatchError, match="Input does not match schema") as exc_info:
            StateSchema.of(Person).validate({"age": "not a number"})
        assert len(exc_info.value.errors) == 2

    def test_validate_custom_label(self):
        with pytest.raises(SchemaMismatchError, match="Transformed input does not match schema"):
            StateSchema.of(Person).validate({}, label="Transformed input")

    def test_extend_adds_required_fields(self):
        extended = StateSchema.of(Person).extend(loopIndex=int, loopItem=str)

        assert extended.field("loopIndex").kind is FieldKind.PRIMITIVE
        assert extended.field("tags").kind is FieldKind.ARRAY
        with pytest.raises(SchemaMismatchError):
            extended.validate({"name": "ada"})
        assert extended.validate({"name": "ada", "loopIndex": 0, "loopItem": "x"})["loopItem"] == "x"
