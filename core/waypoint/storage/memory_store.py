"""In-process run store, mostly for tests and ephemeral workers."""

from typing import Any

from waypoint.errors import RunNotFoundError
from waypoint.schemas.checkpoint import RunCheckpoint, RunSummary
from waypoint.storage.base import RunStore, validate_run_id


class MemoryRunStore(RunStore):
    """
    Keeps checkpoints as serialized JSON in a dict.

    Serializing on save gives the same isolation (and the same limits on
    what state can hold) as the SQLite and file stores.
    """

    def __init__(self):
        self._runs: dict[str, str] = {}

    async def save(self, run_id: str, cursor: str, state: dict[str, Any]) -> None:
        validate_run_id(run_id)
        self._runs[run_id] = RunCheckpoint(run_id=run_id, cursor=cursor, state=state).model_dump_json()

    async def exists(self, run_id: str) -> bool:
        return run_id in self._runs

    async def load(self, run_id: str) -> RunCheckpoint:
        if run_id not in self._runs:
            raise RunNotFoundError(run_id)
        return RunCheckpoint.model_validate_json(self._runs[run_id])

    async def delete(self, run_id: str) -> None:
        self._runs.pop(run_id, None)

    async def list_runs(self) -> list[RunSummary]:
        checkpoints = [RunCheckpoint.model_validate_json(raw) for raw in self._runs.values()]
        return sorted(
            (RunSummary.from_checkpoint(c) for c in checkpoints),
            key=lambda s: s.updated_at,
            reverse=True,
        )

    async def dispose(self) -> None:
        self._runs.clear()
