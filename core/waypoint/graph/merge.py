"""
Schema-aware state merging and cloning.

merge_state() folds a node's partial update into the current state:

- A key missing from the state (or holding None) simply takes the new value.
- A field with a MergeStrategy delegates to it.
- Nested models and mappings merge recursively.
- Everything else is replaced, including lists and opaque objects.
- The UNSET sentinel removes a key.

Inputs are never mutated. The state is cloned up front and the clone is
merged in place.
"""

import copy
from collections.abc import Mapping
from typing import Any

from waypoint.errors import StateMergeError
from waypoint.graph.schema import Cloneable, FieldKind, FieldSpec, StateSchema

_ATOMS = (str, int, float, bool, bytes, type(None))


class _Unset:
    """Sentinel: an update value that deletes the key from the state."""

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Unset":
        return self

    def __deepcopy__(self, memo: dict) -> "_Unset":
        return self


UNSET = _Unset()


def clone_state(value: Any) -> Any:
    """
    Deep-copy a state value.

    Dicts, lists and tuples are rebuilt, objects exposing ``clone()`` copy
    themselves and anything else goes through ``copy.deepcopy``.
    """
    if isinstance(value, _ATOMS):
        return value
    if isinstance(value, dict):
        return {key: clone_state(item) for key, item in value.items()}
    if isinstance(value, list):
        return [clone_state(item) for item in value]
    if isinstance(value, tuple):
        return tuple(clone_state(item) for item in value)
    if isinstance(value, Cloneable):
        return value.clone()
    return copy.deepcopy(value)


def merge_state(
    base: Mapping[str, Any],
    changes: Mapping[str, Any],
    schema: "type | StateSchema | None" = None,
    *,
    apply_strategies: bool = True,
) -> dict[str, Any]:
    """
    Merge a partial update into a state.

    Args:
        base: Current state (not modified)
        changes: Partial update produced by a node
        schema: State schema used to pick the merge rule per field
        apply_strategies: When False, fields with a MergeStrategy are replaced
            instead (used to lay caller input over a loaded checkpoint)

    Returns:
        New merged state

    Raises:
        StateMergeError: If a nested update targets a field whose shape
            cannot be introspected (Any, unions, plain objects)
    """
    compiled = StateSchema.of(schema) if schema is not None else None
    merged = clone_state(dict(base))
    _merge_into(merged, changes, compiled, "", apply_strategies)
    return merged


def _merge_into(
    target: dict[str, Any],
    changes: Mapping[str, Any],
    schema: StateSchema | None,
    prefix: str,
    apply_strategies: bool,
) -> None:
    for key, value in changes.items():
        if value is UNSET:
            target.pop(key, None)
            continue

        current = target.get(key)
        if current is None:
            target[key] = value
            continue

        spec = schema.field(key) if schema is not None else None
        target[key] = _merge_value(f"{prefix}{key}", current, value, spec, apply_strategies)


def _merge_value(path: str, current: Any, value: Any, spec: FieldSpec | None, apply_strategies: bool) -> Any:
    if apply_strategies and spec is not None and spec.merge is not None:
        return spec.merge(current, value)

    if spec is None or not isinstance(value, dict) or not isinstance(current, dict):
        return value

    if spec.kind is FieldKind.OBJECT:
        _merge_into(current, value, spec.children, f"{path}.", apply_strategies)
        return current

    if spec.kind is FieldKind.MAPPING:
        _merge_mapping(path, current, value, spec.item, apply_strategies)
        return current

    raise StateMergeError(
        f"Cannot merge nested update into '{path}': field shape is {spec.kind} and cannot be introspected"
    )


def _merge_mapping(
    path: str,
    current: dict[str, Any],
    changes: dict[str, Any],
    item: FieldSpec | None,
    apply_strategies: bool,
) -> None:
    for key, value in changes.items():
        if value is UNSET:
            current.pop(key, None)
            continue
        existing = current.get(key)
        if existing is None:
            current[key] = value
        else:
            current[key] = _merge_value(f"{path}.{key}", existing, value, item, apply_strategies)


__all__ = ["UNSET", "clone_state", "merge_state"]
