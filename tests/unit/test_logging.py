"""Unit tests for structured logging setup."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from board_client.logging import ROOT_LOGGER_NAME, JSONFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _restore_package_logger():
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="board_client.sync",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_renders_json_with_extra(self) -> None:
        line = JSONFormatter("board-client").format(_record("Board write failed", action="move_card"))
        data = json.loads(line)
        assert data["level"] == "WARNING"
        assert data["logger"] == "board_client.sync"
        assert data["message"] == "Board write failed"
        assert data["service"] == "board-client"
        assert data["extra"] == {"action": "move_card"}

    def test_omits_empty_extra(self) -> None:
        data = json.loads(JSONFormatter().format(_record("plain")))
        assert "extra" not in data
        assert "service" not in data


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging and get_logger."""

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging("LOUD", "board-client", None)

    def test_stream_only_without_directory(self) -> None:
        logger = setup_logging("debug", "board-client", None)
        assert logger.name == ROOT_LOGGER_NAME
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert not logger.propagate

    def test_file_handler_with_directory(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        logger = setup_logging("INFO", "board-client", str(log_dir))

        get_logger("board_client.store").info("hello", extra={"boards": 2})
        for handler in logger.handlers:
            handler.flush()

        files = list(log_dir.glob("*.log"))
        assert len(files) == 1
        data = json.loads(files[0].read_text().strip().splitlines()[-1])
        assert data["message"] == "hello"
        assert data["extra"] == {"boards": 2}

    def test_repeated_setup_replaces_handlers(self) -> None:
        setup_logging("INFO", "board-client", None)
        logger = setup_logging("INFO", "board-client", None)
        assert len(logger.handlers) == 1

    def test_get_logger_namespaces(self) -> None:
        assert get_logger("board_client.sync").name == "board_client.sync"
        assert get_logger("scripts").name == "board_client.scripts"
