"""
Run checkpoint schema - what a RunStore persists per run.

A checkpoint is the cursor projection of the runtime context plus the
state at that point. A cursor of ``"end"`` marks a finished run that was
kept instead of deleted.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

END_CURSOR = "end"


def _now() -> str:
    return datetime.now(UTC).isoformat()


class RunCheckpoint(BaseModel):
    """Cursor and state of one run."""

    run_id: str
    cursor: str
    state: dict[str, Any] = Field(default_factory=dict)
    updated_at: str = Field(default_factory=_now)  # ISO 8601

    model_config = {"extra": "allow"}

    @property
    def finished(self) -> bool:
        return self.cursor == END_CURSOR


class RunSummary(BaseModel):
    """Lightweight listing entry (no state)."""

    run_id: str
    cursor: str
    updated_at: str

    @property
    def finished(self) -> bool:
        return self.cursor == END_CURSOR

    @classmethod
    def from_checkpoint(cls, checkpoint: RunCheckpoint) -> "RunSummary":
        return cls(run_id=checkpoint.run_id, cursor=checkpoint.cursor, updated_at=checkpoint.updated_at)
