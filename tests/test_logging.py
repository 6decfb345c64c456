"""Tests for console and structured logging."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from statpanel import logging as sp_logging
from statpanel.config import Config


@pytest.fixture
def configured(tmp_path: Path):
    """Configure structlog against a temporary state directory."""
    with patch("pathlib.Path.home", return_value=tmp_path):
        config = Config()
        sp_logging.configure(config, source="test")
        yield config
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)
    structlog.reset_defaults()


def _records(config: Config) -> list[dict]:
    for handler in logging.getLogger().handlers:
        handler.flush()
    lines = config.log_path.read_text().splitlines()
    return [json.loads(line) for line in lines if line]


def test_configure_creates_state_dir(configured: Config):
    assert configured.state_dir.is_dir()
    assert configured.log_path.exists()


def test_structlog_writes_json_lines(configured: Config):
    structlog.get_logger().info("connection_opening", url="ws://localhost:9000")

    records = _records(configured)
    assert records[-1]["event"] == "connection_opening"
    assert records[-1]["url"] == "ws://localhost:9000"
    assert records[-1]["level"] == "info"
    assert records[-1]["source"] == "test"
    assert "ts" in records[-1]


def test_stdlib_records_also_json(configured: Config):
    logging.getLogger("websockets.client").warning("handshake slow")

    records = _records(configured)
    assert records[-1]["event"] == "handshake slow"
    assert records[-1]["source"] == "test"


def test_level_filter(tmp_path: Path):
    with patch("pathlib.Path.home", return_value=tmp_path):
        config = Config()
        config.logging.level = "error"
        sp_logging.configure(config)
    try:
        assert logging.getLogger().level == logging.ERROR
    finally:
        root = logging.getLogger()
        for handler in list(root.handlers):
            handler.close()
            root.removeHandler(handler)
        structlog.reset_defaults()


def test_console_helpers(capsys):
    sp_logging.connected("ws://localhost:9000")
    sp_logging.connection_failed("ws://localhost:9000", "refused")
    sp_logging.endpoint_unavailable("lookup failed")

    out = capsys.readouterr().out
    assert "Connected to ws://localhost:9000" in out
    assert "failed: refused" in out
    assert "lookup failed" in out
    assert "[info]" in out
    assert "[err]" in out
