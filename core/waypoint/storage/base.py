"""
Run store contract.

A RunStore is a key-value checkpoint store: key = run id, value = cursor
plus state. Graph.invoke only ever talks to it through a StoredRun handle.
"""

import re
from abc import ABC, abstractmethod
from typing import Any

from waypoint.schemas.checkpoint import RunCheckpoint, RunSummary

RUN_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-:]+$")


def validate_run_id(run_id: str) -> None:
    """
    Raises:
        ValueError: If the run id is empty or contains characters that are
            unsafe as a file name or storage key
    """
    if not isinstance(run_id, str) or not run_id.strip():
        raise ValueError("Run id cannot be empty")
    if not RUN_ID_PATTERN.match(run_id):
        raise ValueError(f"Invalid run id {run_id!r}: use letters, digits, '-', '_' or ':'")


class RunStore(ABC):
    """Abstract checkpoint store."""

    @abstractmethod
    async def save(self, run_id: str, cursor: str, state: dict[str, Any]) -> None:
        """Create or overwrite the checkpoint for ``run_id``."""

    @abstractmethod
    async def exists(self, run_id: str) -> bool: ...

    @abstractmethod
    async def load(self, run_id: str) -> RunCheckpoint:
        """
        Raises:
            RunNotFoundError: If nothing is stored for ``run_id``
        """

    @abstractmethod
    async def delete(self, run_id: str) -> None:
        """Remove the checkpoint. Deleting an unknown run is a no-op."""

    @abstractmethod
    async def list_runs(self) -> list[RunSummary]: ...

    async def dispose(self) -> None:
        """Release resources held by the store."""

    def get_stored_run(self, run_id: str) -> "StoredRun":
        validate_run_id(run_id)
        return StoredRun(self, run_id)

    async def __aenter__(self) -> "RunStore":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.dispose()


class StoredRun:
    """Handle binding one run id to a store."""

    def __init__(self, store: RunStore, run_id: str):
        self.store = store
        self.run_id = run_id

    async def save(self, cursor: str, state: dict[str, Any]) -> None:
        await self.store.save(self.run_id, cursor, state)

    async def exists(self) -> bool:
        return await self.store.exists(self.run_id)

    async def load(self) -> RunCheckpoint:
        return await self.store.load(self.run_id)

    async def delete(self) -> None:
        await self.store.delete(self.run_id)

    def __repr__(self) -> str:
        return f"StoredRun({self.run_id!r})"
