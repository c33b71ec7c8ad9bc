"""
SQLite-backed run store.

One row per run, keyed by run id, with the cursor as text and the state as
JSON. Saves are upserts. Blocking sqlite calls run in a worker thread.
"""

import asyncio
import json
import logging
import re
import sqlite3
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from waypoint.config import DEFAULT_STORE_TABLE
from waypoint.errors import RunNotFoundError
from waypoint.schemas.checkpoint import RunCheckpoint, RunSummary
from waypoint.storage.base import RunStore, validate_run_id

logger = logging.getLogger(__name__)

IN_MEMORY = ":memory:"
TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_state_adapter = TypeAdapter(dict[str, Any])


class SQLiteRunStore(RunStore):
    """
    Run store backed by a single SQLite table.

    Schema:
        run_id TEXT PRIMARY KEY, cursor TEXT, state TEXT (JSON), updated_at TEXT

    Args:
        db_path: Database file, or ":memory:" for a throwaway store
        table_name: Table to use (created if missing)
    """

    def __init__(self, db_path: str | Path = IN_MEMORY, table_name: str = DEFAULT_STORE_TABLE):
        if not TABLE_NAME_PATTERN.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        self.db_path = str(db_path)
        self.table_name = table_name
        self._lock = asyncio.Lock()

        if self.db_path != IN_MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = self._connect()
        self._initialize_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_schema(self) -> None:
        """Create the runs table if absent."""
        with self._connection() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {self.table_name} (
                    run_id TEXT PRIMARY KEY,
                    cursor TEXT NOT NULL,
                    state TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("SQLiteRunStore has been disposed")
        return self._conn

    async def _execute(self, func, *args):
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    # === RunStore ===

    async def save(self, run_id: str, cursor: str, state: dict[str, Any]) -> None:
        validate_run_id(run_id)
        checkpoint = RunCheckpoint(run_id=run_id, cursor=cursor, state=state)
        payload = _state_adapter.dump_json(state).decode("utf-8")

        def _write() -> None:
            with self._connection() as conn:
                conn.execute(
                    f"""
                    INSERT INTO {self.table_name} (run_id, cursor, state, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(run_id) DO UPDATE SET
                        cursor = excluded.cursor,
                        state = excluded.state,
                        updated_at = excluded.updated_at
                    """,
                    (run_id, cursor, payload, checkpoint.updated_at),
                )

        await self._execute(_write)
        logger.debug(f"Saved run {run_id} at {cursor}", extra={"cursor": cursor})

    async def exists(self, run_id: str) -> bool:
        return await self._fetch(run_id) is not None

    async def load(self, run_id: str) -> RunCheckpoint:
        row = await self._fetch(run_id)
        if row is None:
            raise RunNotFoundError(run_id)
        return RunCheckpoint(
            run_id=row["run_id"],
            cursor=row["cursor"],
            state=json.loads(row["state"]),
            updated_at=row["updated_at"],
        )

    async def delete(self, run_id: str) -> None:
        def _delete() -> None:
            with self._connection() as conn:
                conn.execute(f"DELETE FROM {self.table_name} WHERE run_id = ?", (run_id,))

        await self._execute(_delete)
        logger.debug(f"Deleted run {run_id}")

    async def list_runs(self) -> list[RunSummary]:
        def _list() -> list[sqlite3.Row]:
            return (
                self._connection()
                .execute(f"SELECT run_id, cursor, updated_at FROM {self.table_name} ORDER BY updated_at DESC")
                .fetchall()
            )

        rows = await self._execute(_list)
        return [RunSummary(**dict(row)) for row in rows]

    async def dispose(self) -> None:
        async with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    async def _fetch(self, run_id: str) -> sqlite3.Row | None:
        def _read() -> sqlite3.Row | None:
            return (
                self._connection()
                .execute(f"SELECT * FROM {self.table_name} WHERE run_id = ?", (run_id,))
                .fetchone()
            )

        return await self._execute(_read)
