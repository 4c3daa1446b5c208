"""Tests for the library logging helpers."""

import io
import logging

import pytest

from tasmee._logging import (
    configure_logging,
    disable_logging,
    enable_debug_logging,
    log_error,
    log_session_started,
)
from tasmee.cli import main


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("tasmee")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestConfigureLogging:
    def test_single_stream_handler(self) -> None:
        stream = io.StringIO()
        configure_logging(level=logging.INFO, stream=stream)
        logger = configure_logging(level=logging.INFO, stream=stream)
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_messages_reach_the_stream(self) -> None:
        stream = io.StringIO()
        configure_logging(level=logging.INFO, stream=stream, format_string="%(levelname)s %(message)s")
        log_session_started("s-1", "user-1", 112, 1)
        log_error("Failed to persist session", session_id="s-1")
        assert stream.getvalue().splitlines() == [
            "INFO Session s-1 started for user user-1 at 112:1",
            "ERROR Failed to persist session (session_id=s-1)",
        ]


class TestDebugAndDisable:
    def test_enable_debug_logging(self) -> None:
        enable_debug_logging()
        logger = logging.getLogger("tasmee")
        assert logger.level == logging.DEBUG
        (handler,) = logger.handlers
        assert isinstance(handler, logging.StreamHandler)
        assert handler.level == logging.DEBUG

    def test_disable_logging(self) -> None:
        enable_debug_logging()
        disable_logging()
        (handler,) = logging.getLogger("tasmee").handlers
        assert isinstance(handler, logging.NullHandler)

    def test_cli_verbose_flag(self) -> None:
        assert main(["--verbose", "verse", "112", "1"]) == 0
        assert logging.getLogger("tasmee").level == logging.DEBUG

        assert main(["verse", "112", "1"]) == 0
        assert logging.getLogger("tasmee").level == logging.WARNING
