"""Tests for logging configuration."""

import json
import logging

import pytest

from llmrelay.logging_config import JsonFormatter, configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_level_and_handlers(self, tmp_path):
        log_file = tmp_path / "relay.log"

        configure_logging(level="debug", format="text", file_path=str(log_file), force=True)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        assert isinstance(root.handlers[1], logging.FileHandler)
        root.handlers[1].close()

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("RELAY_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("RELAY_LOG_FORMAT", "json")

        configure_logging(force=True)

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError, match="VERBOSE"):
            configure_logging(level="verbose", force=True)

    def test_unknown_level_rejected_when_already_configured(self, monkeypatch):
        configure_logging(level="INFO", force=True)
        monkeypatch.setenv("RELAY_LOG_LEVEL", "VERBOSE")

        with pytest.raises(ValueError, match="VERBOSE"):
            configure_logging()


def test_json_formatter_includes_extra():
    record = logging.LogRecord("llmrelay.server", logging.INFO, __file__, 1, "hello %s", ("x",), None)
    record.trace_id = "00001_120000_abcd"

    data = json.loads(JsonFormatter().format(record))

    assert data["level"] == "INFO"
    assert data["logger"] == "llmrelay.server"
    assert data["message"] == "hello x"
    assert data["extra"] == {"trace_id": "00001_120000_abcd"}
