"""Tests for structured logging and trace context propagation."""

import json
import logging

import pytest

from waypoint.observability import (
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
    trace_scope,
)
from waypoint.observability.logging import HumanReadableFormatter, StructuredFormatter, strip_ansi_codes


def make_record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("waypoint.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestTraceContext:
    def test_set_and_get(self):
        set_trace_context(run_id="run-1")
        set_trace_context(layer="ROOT")
        assert get_trace_context() == {"run_id": "run-1", "layer": "ROOT"}

    def test_get_returns_copy(self):
        set_trace_context(run_id="run-1")
        get_trace_context()["run_id"] = "changed"
        assert get_trace_context()["run_id"] == "run-1"

    def test_clear(self):
        set_trace_context(run_id="run-1")
        clear_trace_context()
        assert get_trace_context() == {}

    def test_scope_restores_previous(self):
        set_trace_context(run_id="outer")
        with trace_scope(run_id="inner", layer="ROOT"):
            assert get_trace_context() == {"run_id": "inner", "layer": "ROOT"}
        assert get_trace_context() == {"run_id": "outer"}

    def test_scope_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with trace_scope(run_id="inner"):
                raise RuntimeError("boom")
        assert get_trace_context() == {}


class TestFormatters:
    def test_structured_formatter_includes_context_and_extras(self):
        record = make_record("step done", node="increment", layer="ROOT", latency_ms=1.5)
        with trace_scope(run_id="run-1"):
            entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "step done"
        assert entry["level"] == "info"
        assert entry["run_id"] == "run-1"
        assert entry["node"] == "increment"
        assert entry["layer"] == "ROOT"
        assert entry["latency_ms"] == 1.5

    def test_structured_formatter_strips_ansi(self):
        entry = json.loads(StructuredFormatter().format(make_record("\033[32mgreen\033[0m")))
        assert entry["message"] == "green"

    def test_human_formatter_prefix(self):
        record = make_record("interrupted", layer="ROOT.review", event="interrupt")
        with trace_scope(run_id="3f2a9c1d0000"):
            line = strip_ansi_codes(HumanReadableFormatter().format(record))

        assert "[run:3f2a9c1d | layer:ROOT.review]" in line
        assert line.endswith("interrupted [interrupt]")


class TestConfigureLogging:
    def test_json_format(self):
        configure_logging(level="DEBUG", format="json")
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_auto_uses_env(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging(format="auto")
        assert isinstance(logging.getLogger().handlers[0].formatter, StructuredFormatter)

    def test_auto_defaults_to_human(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        monkeypatch.setenv("ENV", "development")
        configure_logging(format="auto")
        assert isinstance(logging.getLogger().handlers[0].formatter, HumanReadableFormatter)
