"""
File-based run store.

Directory structure:
    {base_path}/
      {run_id}.json     # RunCheckpoint, written atomically

Uses Pydantic's built-in serialization.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

from waypoint.errors import RunNotFoundError
from waypoint.schemas.checkpoint import RunCheckpoint, RunSummary
from waypoint.storage.base import RunStore, validate_run_id
from waypoint.utils.io import atomic_write

logger = logging.getLogger(__name__)


class FileRunStore(RunStore):
    """One JSON file per run."""

    def __init__(self, base_path: str | Path):
        self.base_path = Path(base_path)

    def _path(self, run_id: str) -> Path:
        validate_run_id(run_id)
        return self.base_path / f"{run_id}.json"

    async def save(self, run_id: str, cursor: str, state: dict[str, Any]) -> None:
        checkpoint = RunCheckpoint(run_id=run_id, cursor=cursor, state=state)
        path = self._path(run_id)

        def _write() -> None:
            self.base_path.mkdir(parents=True, exist_ok=True)
            with atomic_write(path) as f:
                f.write(checkpoint.model_dump_json(indent=2))

        await asyncio.to_thread(_write)
        logger.debug(f"Saved run {run_id} at {cursor}", extra={"cursor": cursor})

    async def exists(self, run_id: str) -> bool:
        path = self._path(run_id)
        return await asyncio.to_thread(path.exists)

    async def load(self, run_id: str) -> RunCheckpoint:
        path = self._path(run_id)

        def _read() -> RunCheckpoint:
            if not path.exists():
                raise RunNotFoundError(run_id)
            return RunCheckpoint.model_validate_json(path.read_text(encoding="utf-8"))

        return await asyncio.to_thread(_read)

    async def delete(self, run_id: str) -> None:
        path = self._path(run_id)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.debug(f"Deleted run {run_id}")

    async def list_runs(self) -> list[RunSummary]:
        def _list() -> list[RunSummary]:
            if not self.base_path.exists():
                return []
            summaries = []
            for path in self.base_path.glob("*.json"):
                try:
                    checkpoint = RunCheckpoint.model_validate_json(path.read_text(encoding="utf-8"))
                except ValueError as e:
                    logger.warning(f"Skipping unreadable checkpoint {path.name}: {e}")
                    continue
                summaries.append(RunSummary.from_checkpoint(checkpoint))
            return sorted(summaries, key=lambda s: s.updated_at, reverse=True)

        return await asyncio.to_thread(_list)
