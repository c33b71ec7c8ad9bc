"""Persisted data models."""

from waypoint.schemas.checkpoint import END_CURSOR, RunCheckpoint, RunSummary

__all__ = ["END_CURSOR", "RunCheckpoint", "RunSummary"]
