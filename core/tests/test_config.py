"""Tests for configuration resolution (env vars over config file over defaults)."""

import json

import pytest

from waypoint import config
from waypoint.config import WaypointConfig


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "configuration.json"
    monkeypatch.setenv("WAYPOINT_CONFIG", str(path))
    for name in ("WAYPOINT_STORE_PATH", "WAYPOINT_STORE_TABLE", "WAYPOINT_LOG_LEVEL", "WAYPOINT_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    return path


def test_missing_file_gives_defaults(config_file):
    assert config.get_waypoint_config() == {}
    assert config.get_store_path() == str(config.WAYPOINT_HOME / "runs.db")
    assert config.get_store_table() == "runs"
    assert config.get_log_level() == "INFO"
    assert config.get_log_format() == "auto"


def test_values_from_file(config_file, tmp_path):
    config_file.write_text(
        json.dumps(
            {
                "store": {"path": str(tmp_path / "custom.db"), "table": "checkpoints"},
                "logging": {"level": "DEBUG", "format": "json"},
            }
        )
    )

    settings = WaypointConfig()
    assert settings.store_path == str(tmp_path / "custom.db")
    assert settings.store_table == "checkpoints"
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "json"


def test_env_overrides_file(config_file, monkeypatch):
    config_file.write_text(json.dumps({"store": {"path": "/from/file.db"}}))
    monkeypatch.setenv("WAYPOINT_STORE_PATH", "/from/env.db")
    monkeypatch.setenv("WAYPOINT_LOG_LEVEL", "WARNING")

    assert config.get_store_path() == "/from/env.db"
    assert config.get_log_level() == "WARNING"


def test_invalid_json_is_ignored(config_file):
    config_file.write_text("{broken")
    assert config.get_waypoint_config() == {}


def test_non_object_json_is_ignored(config_file):
    config_file.write_text("[1, 2]")
    assert config.get_waypoint_config() == {}
