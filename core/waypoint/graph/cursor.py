"""
Cursor codec.

A cursor is the dot-joined list of "current node" names, one per layer of
the runtime context stack, outermost first::

    "subgraph.interrupt"          # root graph at "subgraph", nested graph at "interrupt"
    "0.iterator-loop.node-1"      # iterator index 0, loop body, sequence node-1

Node names therefore may not contain the separator.
"""

from waypoint.errors import CursorError

CURSOR_SEPARATOR = "."
ROOT_LAYER_ID = "ROOT"


def encode_cursor(nodes: list[str]) -> str:
    """Join per-layer node names into a cursor string."""
    if not nodes:
        raise CursorError("Cannot encode an empty cursor")
    for name in nodes:
        if not name or CURSOR_SEPARATOR in name:
            raise CursorError(f"Invalid cursor segment: {name!r}")
    return CURSOR_SEPARATOR.join(nodes)


def decode_cursor(cursor: str) -> list[str]:
    """
    Split a cursor into per-layer node names.

    Raises:
        CursorError: If the cursor is empty or has empty segments
    """
    if not isinstance(cursor, str) or not cursor:
        raise CursorError(f"Invalid cursor: {cursor!r}")
    segments = cursor.split(CURSOR_SEPARATOR)
    if any(segment == "" for segment in segments):
        raise CursorError(f"Invalid cursor (empty segment): {cursor!r}")
    return segments


def layer_ids(nodes: list[str]) -> list[str]:
    """Layer ids for a decoded cursor: ROOT, then parent id + parent node."""
    ids: list[str] = []
    for depth in range(len(nodes)):
        if depth == 0:
            ids.append(ROOT_LAYER_ID)
        else:
            ids.append(f"{ids[depth - 1]}{CURSOR_SEPARATOR}{nodes[depth - 1]}")
    return ids
