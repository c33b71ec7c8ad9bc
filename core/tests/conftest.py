"""Shared test fixtures for the waypoint test suite."""

from pathlib import Path

import pytest

from waypoint.observability import clear_trace_context
from waypoint.storage import FileRunStore, MemoryRunStore, SQLiteRunStore


@pytest.fixture(autouse=True)
def _reset_trace_context():
    clear_trace_context()
    yield
    clear_trace_context()


@pytest.fixture
def memory_store() -> MemoryRunStore:
    return MemoryRunStore()


@pytest.fixture
def file_store(tmp_path: Path) -> FileRunStore:
    return FileRunStore(tmp_path / "runs")


@pytest.fixture(params=["memory", "sqlite", "file"])
def any_store(request, tmp_path: Path):
    """Every RunStore implementation, for contract tests."""
    if request.param == "memory":
        return MemoryRunStore()
    if request.param == "sqlite":
        return SQLiteRunStore(db_path=tmp_path / "runs.db")
    return FileRunStore(tmp_path / "runs")
