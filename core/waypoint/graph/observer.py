"""
Step observers.

An observer is any callable (sync or async) that receives a StepEvent after
each node step. Observers are read-only: they see copies of the state and
anything they raise is logged, never propagated into the run.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepEvent:
    """One executed node step."""

    run_id: str
    node_name: str
    node_kind: str
    layer_id: str
    before: dict[str, Any]
    after: dict[str, Any]
    interrupted: bool = False
    latency_ms: float = 0.0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


StepObserver = Callable[[StepEvent], Awaitable[None] | None]


async def notify_observer(observer: StepObserver | None, event: StepEvent) -> None:
    if observer is None:
        return
    try:
        result = observer(event)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Step observer error for node {event.node_name}: {e}")


__all__ = ["StepEvent", "StepObserver", "notify_observer"]
