"""Shared waypoint configuration utilities.

Centralises reading of ~/.waypoint/configuration.json so that the CLI and
applications embedding the engine share one implementation. Environment
variables (WAYPOINT_*) take precedence over the file.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

WAYPOINT_HOME = Path.home() / ".waypoint"
WAYPOINT_CONFIG_FILE = WAYPOINT_HOME / "configuration.json"

DEFAULT_STORE_TABLE = "runs"


def get_config_path() -> Path:
    """Return the configuration file path, honouring WAYPOINT_CONFIG."""
    override = os.environ.get("WAYPOINT_CONFIG")
    return Path(override) if override else WAYPOINT_CONFIG_FILE


def get_waypoint_config() -> dict[str, Any]:
    """Load waypoint configuration from the configuration file."""
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def get_store_path() -> str:
    """Return the SQLite database used for stored runs."""
    explicit = os.environ.get("WAYPOINT_STORE_PATH")
    if explicit:
        return explicit
    store = get_waypoint_config().get("store", {})
    return store.get("path") or str(WAYPOINT_HOME / "runs.db")


def get_store_table() -> str:
    """Return the table name used for stored runs."""
    explicit = os.environ.get("WAYPOINT_STORE_TABLE")
    if explicit:
        return explicit
    return get_waypoint_config().get("store", {}).get("table", DEFAULT_STORE_TABLE)


def get_log_level() -> str:
    return os.environ.get("WAYPOINT_LOG_LEVEL") or get_waypoint_config().get("logging", {}).get(
        "level", "INFO"
    )


def get_log_format() -> str:
    return os.environ.get("WAYPOINT_LOG_FORMAT") or get_waypoint_config().get(
        "logging", {}
    ).get("format", "auto")


# ---------------------------------------------------------------------------
# WaypointConfig – resolved settings for one process
# ---------------------------------------------------------------------------


@dataclass
class WaypointConfig:
    """Settings loaded from ~/.waypoint/configuration.json and WAYPOINT_* env vars."""

    store_path: str = field(default_factory=get_store_path)
    store_table: str = field(default_factory=get_store_table)
    log_level: str = field(default_factory=get_log_level)
    log_format: str = field(default_factory=get_log_format)
