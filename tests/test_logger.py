"""Tests for logger.py -- setup_logging() and JsonFormatter.

Covers:
- CLI mode logging (stderr handler, optional file handler)
- MCP mode logging (file handler only)
- Debug level override and LOG_LEVEL handling
- JSON formatter output
- mcp SDK logger silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

import pytest

from repo_local_mcp.logger import (
    DEFAULT_MCP_LOG_FILE,
    JsonFormatter,
    setup_logging,
)

BASIC_CONFIG = "repo_local_mcp.logger.logging.basicConfig"


@pytest.fixture
def basic_config():
    """Patch basicConfig and close any file handlers it was given."""
    with patch(BASIC_CONFIG) as mock_basic:
        yield mock_basic
    for call in mock_basic.call_args_list:
        for handler in call.kwargs.get("handlers", []):
            handler.close()


@pytest.fixture(autouse=True)
def restore_mcp_logger():
    mcp_logger = logging.getLogger("mcp")
    level = mcp_logger.level
    yield
    mcp_logger.setLevel(level)


def _file_handlers(handlers):
    return [h for h in handlers if isinstance(h, logging.FileHandler)]


# ---------------------------------------------------------------------------
# setup_logging tests
# ---------------------------------------------------------------------------


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_cli_mode_logs_to_stderr(self, basic_config):
        setup_logging(mode="cli")

        basic_config.assert_called_once()
        handlers = basic_config.call_args.kwargs["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert handlers[0].stream is sys.stderr

    def test_cli_mode_with_log_file(self, basic_config, tmp_path):
        log_file = str(tmp_path / "cli.log")
        setup_logging(mode="cli", log_file=log_file)

        handlers = basic_config.call_args.kwargs["handlers"]
        assert len(handlers) == 2
        [file_handler] = _file_handlers(handlers)
        assert file_handler.baseFilename == log_file

    def test_mcp_mode_logs_to_file_only(self, basic_config, tmp_path):
        """MCP mode never adds a stream handler (stdout carries JSON-RPC)."""
        log_file = str(tmp_path / "mcp.log")
        setup_logging(mode="mcp", log_file=log_file)

        handlers = basic_config.call_args.kwargs["handlers"]
        assert len(handlers) == 1
        assert handlers[0].baseFilename == log_file

    def test_mcp_mode_env_log_file(self, basic_config, tmp_path, monkeypatch):
        log_file = str(tmp_path / "env.log")
        monkeypatch.setenv("LOG_FILE", log_file)
        setup_logging(mode="mcp")

        handlers = basic_config.call_args.kwargs["handlers"]
        assert handlers[0].baseFilename == log_file

    def test_mcp_mode_default_log_file(self, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        with patch(BASIC_CONFIG), patch(
            "repo_local_mcp.logger.logging.FileHandler"
        ) as mock_handler:
            setup_logging(mode="mcp")
        mock_handler.assert_called_once_with(DEFAULT_MCP_LOG_FILE, mode="a")

    def test_debug_overrides_level(self, basic_config, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert basic_config.call_args.kwargs["level"] == logging.DEBUG

    def test_env_log_level_honored(self, basic_config, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "error")
        setup_logging(mode="cli")
        assert basic_config.call_args.kwargs["level"] == logging.ERROR

    def test_mcp_default_level_is_warning(
        self, basic_config, tmp_path, monkeypatch
    ):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="mcp", log_file=str(tmp_path / "m.log"))
        assert basic_config.call_args.kwargs["level"] == logging.WARNING

    def test_cli_default_level_is_info(self, basic_config, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")
        assert basic_config.call_args.kwargs["level"] == logging.INFO

    def test_json_format_uses_json_formatter(self, basic_config, tmp_path):
        setup_logging(
            mode="mcp", log_file=str(tmp_path / "j.log"), debug_format="json"
        )
        handlers = basic_config.call_args.kwargs["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    def test_mcp_sdk_logger_silenced(self, basic_config):
        setup_logging(mode="cli")
        assert logging.getLogger("mcp").level == logging.WARNING

    def test_mcp_sdk_logger_left_alone_in_debug(self, basic_config):
        logging.getLogger("mcp").setLevel(logging.NOTSET)
        setup_logging(mode="cli", debug=True)
        assert logging.getLogger("mcp").level == logging.NOTSET


# ---------------------------------------------------------------------------
# JsonFormatter tests
# ---------------------------------------------------------------------------


def _record(msg="Hello %s", args=("world",), level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="repo_local_mcp.sync.engine",
        level=level,
        pathname="engine.py",
        lineno=1,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_output(self):
        data = json.loads(JsonFormatter(datefmt="%Y-%m-%d").format(_record()))

        assert "ts" in data
        assert data["level"] == "INFO"
        assert data["logger"] == "repo_local_mcp.sync.engine"
        assert data["msg"] == "Hello world"
        assert "exc" not in data

    def test_includes_exception(self):
        try:
            raise ValueError("clone failed")
        except ValueError:
            exc_info = sys.exc_info()

        output = JsonFormatter().format(
            _record("boom", (), logging.ERROR, exc_info)
        )
        data = json.loads(output)
        assert "ValueError" in data["exc"]
        assert "clone failed" in data["exc"]
        assert "\n" not in output
