"""Checkpoint stores for persisted runs."""

from waypoint.storage.base import RunStore, StoredRun, validate_run_id
from waypoint.storage.file_store import FileRunStore
from waypoint.storage.memory_store import MemoryRunStore
from waypoint.storage.sqlite_store import SQLiteRunStore

__all__ = [
    "FileRunStore",
    "MemoryRunStore",
    "RunStore",
    "SQLiteRunStore",
    "StoredRun",
    "validate_run_id",
]
