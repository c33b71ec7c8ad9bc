"""
Observability module for run-scoped trace correlation and structured logging.

This module provides:
- Automatic trace context propagation via ContextVar (run_id, layer, node)
- Structured JSON logging for production
- Human-readable logging for development
"""

from waypoint.observability.logging import (
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
    trace_scope,
)

__all__ = [
    "configure_logging",
    "get_trace_context",
    "set_trace_context",
    "clear_trace_context",
    "trace_scope",
]
