"""
State schemas.

A graph's state is a plain dict described by a pydantic model. The model is
used for two things:

- Validation: invoke() and StateTransformNode check incoming state with
  ``model_validate`` before any node runs.
- Merge introspection: the declared field types decide how a partial update
  is folded into the state (see ``merge.merge_state``).

Per-field merge rules are attached with ``typing.Annotated``::

    class CounterState(BaseModel):
        count: Annotated[int, MergeStrategy(lambda old, new: old + new)] = 0
        log: list[str] = []

Keys that are present in the state but not declared on the model are kept
as-is by validation and replaced wholesale on merge.
"""

import types
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum, StrEnum
from typing import Annotated, Any, Literal, Protocol, Self, Union, get_args, get_origin, runtime_checkable

from pydantic import BaseModel, ValidationError, create_model

from waypoint.errors import SchemaMismatchError

PRIMITIVE_TYPES = (str, int, float, bool, bytes, type(None))


class FieldKind(StrEnum):
    """Shape of a declared field, as far as merging is concerned."""

    PRIMITIVE = "primitive"
    ARRAY = "array"
    OBJECT = "object"
    MAPPING = "mapping"
    OPAQUE = "opaque"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class MergeStrategy:
    """Custom merge rule for one field: ``merge(old, new) -> value``.

    Only consulted when the field already holds a non-None value.
    """

    merge: Callable[[Any, Any], Any]

    def __call__(self, old: Any, new: Any) -> Any:
        return self.merge(old, new)


@runtime_checkable
class Cloneable(Protocol):
    """Opaque state values that know how to copy themselves."""

    def clone(self) -> Self: ...


@dataclass(frozen=True)
class FieldSpec:
    """Merge-relevant description of a single field."""

    kind: FieldKind
    annotation: Any = Any
    merge: MergeStrategy | None = None
    model: type[BaseModel] | None = None
    item: "FieldSpec | None" = None

    @property
    def children(self) -> "StateSchema | None":
        """Schema of a nested model field, resolved lazily so models may recurse."""
        if self.model is None:
            return None
        return StateSchema.of(self.model)


UNKNOWN_FIELD = FieldSpec(kind=FieldKind.UNKNOWN)


def describe_annotation(annotation: Any, metadata: Sequence[Any] = ()) -> FieldSpec:
    """
    Build a FieldSpec from a type annotation.

    Args:
        annotation: The field's type, possibly wrapped in Annotated/Optional
        metadata: Extra Annotated metadata pydantic already split off

    Returns:
        FieldSpec describing the field
    """
    merge = next((m for m in metadata if isinstance(m, MergeStrategy)), None)
    spec = _describe(annotation)
    if merge is not None and spec.merge is None:
        spec = replace(spec, merge=merge)
    return spec


def _describe(annotation: Any) -> FieldSpec:
    origin = get_origin(annotation)
    args = get_args(annotation)

    if origin is Annotated:
        return describe_annotation(args[0], args[1:])

    if origin is Union or origin is types.UnionType:
        # Optional[X] behaves like X; real unions cannot be introspected
        members = [a for a in args if a is not type(None)]
        if len(members) == 1:
            return _describe(members[0])
        if all(_is_primitive(m) for m in members):
            return FieldSpec(kind=FieldKind.PRIMITIVE, annotation=annotation)
        return FieldSpec(kind=FieldKind.UNKNOWN, annotation=annotation)

    if annotation is Any or annotation is object:
        return FieldSpec(kind=FieldKind.UNKNOWN, annotation=annotation)

    if origin is Literal or _is_primitive(annotation):
        return FieldSpec(kind=FieldKind.PRIMITIVE, annotation=annotation)

    container = origin or annotation
    if isinstance(container, type):
        if issubclass(container, Mapping):
            item = _describe(args[1]) if len(args) == 2 else UNKNOWN_FIELD
            return FieldSpec(kind=FieldKind.MAPPING, annotation=annotation, item=item)
        if issubclass(container, (list, tuple, set, frozenset)) or container is Sequence:
            if container is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                item = UNKNOWN_FIELD
            else:
                item = _describe(args[0]) if args else UNKNOWN_FIELD
            return FieldSpec(kind=FieldKind.ARRAY, annotation=annotation, item=item)
        if origin is None and issubclass(annotation, BaseModel):
            return FieldSpec(kind=FieldKind.OBJECT, annotation=annotation, model=annotation)

    return FieldSpec(kind=FieldKind.OPAQUE, annotation=annotation)


def _is_primitive(annotation: Any) -> bool:
    if not isinstance(annotation, type):
        return False
    return issubclass(annotation, PRIMITIVE_TYPES) or issubclass(annotation, Enum)


class StateSchema:
    """
    Compiled view of a pydantic state model.

    Instances are cached per model class; use ``StateSchema.of()`` rather
    than the constructor.
    """

    _cache: dict[type[BaseModel], "StateSchema"] = {}

    def __init__(self, model: type[BaseModel]):
        self.model = model
        self.fields: dict[str, FieldSpec] = {
            name: describe_annotation(info.annotation, info.metadata)
            for name, info in model.model_fields.items()
        }

    @classmethod
    def of(cls, schema: "type[BaseModel] | StateSchema") -> "StateSchema":
        if isinstance(schema, StateSchema):
            return schema
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            compiled = cls._cache.get(schema)
            if compiled is None:
                compiled = cls(schema)
                cls._cache[schema] = compiled
            return compiled
        raise TypeError(f"State schema must be a pydantic model class, got {schema!r}")

    @property
    def name(self) -> str:
        return self.model.__name__

    def field(self, name: str) -> FieldSpec | None:
        """Return the spec of a declared field, or None for undeclared keys."""
        return self.fields.get(name)

    def validate(self, data: Mapping[str, Any] | BaseModel, *, label: str = "Input") -> dict[str, Any]:
        """
        Validate a state dict against the model.

        Declared fields come back coerced and with defaults filled in.
        Undeclared keys are carried through untouched.

        Args:
            data: State to validate (a dict or an instance of the model)
            label: Prefix for the error message

        Returns:
            Validated state as a plain dict

        Raises:
            SchemaMismatchError: If the data does not satisfy the model
        """
        if isinstance(data, BaseModel):
            data = data.model_dump()
        try:
            instance = self.model.model_validate(dict(data))
        except ValidationError as e:
            raise SchemaMismatchError(f"{label} does not match schema: {e}", errors=e.errors()) from e

        validated = dict(data)
        validated.update(instance.model_dump(include=set(self.fields)))
        return validated

    def extend(self, name: str | None = None, **annotations: Any) -> "StateSchema":
        """Derive a schema with extra required fields (used for iterator node state)."""
        extended = create_model(
            name or f"{self.model.__name__}Extended",
            __base__=self.model,
            **{key: (annotation, ...) for key, annotation in annotations.items()},
        )
        return StateSchema.of(extended)

    def __repr__(self) -> str:
        return f"StateSchema({self.name})"


__all__ = [
    "Cloneable",
    "FieldKind",
    "FieldSpec",
    "MergeStrategy",
    "StateSchema",
    "describe_annotation",
]
