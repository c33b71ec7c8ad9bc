"""
Error taxonomy for graph runs.

Wiring and schema problems are fatal and raised as soon as they are
detected. Interrupts are never errors: they come back as a GraphResult.
Anything a node raises propagates out of invoke() untouched.
"""


class WaypointError(Exception):
    """Base class for all waypoint errors."""


# ----- Wiring -----


class GraphWiringError(WaypointError):
    """A graph is wired incorrectly (missing edge, bad node name, ...)."""


# ----- State -----


class SchemaMismatchError(WaypointError):
    """State does not match its schema."""

    def __init__(self, message: str, errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class StateMergeError(WaypointError):
    """A partial update could not be merged into the state."""


class IteratorStateError(WaypointError):
    """The array an Iterator loops over is missing or out of range."""


# ----- Cursor / storage -----


class CursorError(WaypointError):
    """A cursor string cannot be decoded."""


class RunNotFoundError(WaypointError, KeyError):
    """No checkpoint is stored for the requested run id."""

    def __init__(self, run_id: str):
        super().__init__(f"Run {run_id} not found")
        self.run_id = run_id

    def __str__(self) -> str:
        return self.args[0]
