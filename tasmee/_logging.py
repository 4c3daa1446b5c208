"""
Structured logging utilities for Tasmee library.

Provides a configured logger and helper functions for consistent logging.
"""

import logging
import sys
from typing import Optional


# Default format for Tasmee logs
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "tasmee") -> logging.Logger:
    """
    Get a logger instance for the given name.

    Args:
        name: Logger name (default: "tasmee")

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def configure_logging(
    level: int = logging.INFO,
    format_string: Optional[str] = None,
    date_format: Optional[str] = None,
    stream: Optional[object] = None,
) -> logging.Logger:
    """
    Configure logging for the Tasmee library.

    Args:
        level: Logging level (default: INFO)
        format_string: Log format string (default: DEFAULT_FORMAT)
        date_format: Date format string (default: DEFAULT_DATE_FORMAT)
        stream: Output stream (default: sys.stderr)

    Returns:
        Configured root logger for tasmee
    """
    logger = logging.getLogger("tasmee")
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)

    formatter = logging.Formatter(
        format_string or DEFAULT_FORMAT,
        datefmt=date_format or DEFAULT_DATE_FORMAT,
    )
    handler.setFormatter(formatter)

    logger.addHandler(handler)

    return logger


def enable_debug_logging() -> None:
    """Enable debug-level logging for the Tasmee library."""
    configure_logging(level=logging.DEBUG)


def disable_logging() -> None:
    """Disable all Tasmee logging."""
    logger = logging.getLogger("tasmee")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())


# Create default logger
_logger = get_logger()


def log_corpus_loaded(source: str, chapter_count: int, verse_count: int) -> None:
    """Log a successful corpus load."""
    _logger.info(f"Corpus loaded from {source}: {chapter_count} chapters, {verse_count} verses")


def log_session_started(session_id: str, user_id: str, chapter: int, verse: int) -> None:
    """Log session start event."""
    _logger.info(f"Session {session_id} started for user {user_id} at {chapter}:{verse}")


def log_session_stopped(session_id: str, accuracy: float, chunks: int) -> None:
    """Log session stop event."""
    _logger.info(
        f"Session {session_id} stopped after {chunks} chunks, accuracy={accuracy * 100:.1f}%"
    )


def log_chunk_processed(
    session_id: str,
    chunk_id: str,
    matched: bool,
    confidence: float,
    error_count: int,
    duration_ms: float,
) -> None:
    """Log a processed audio chunk."""
    _logger.debug(
        f"Chunk {chunk_id} (session {session_id}): matched={matched}, "
        f"confidence={confidence:.2f}, errors={error_count}, {duration_ms:.0f}ms"
    )


def log_warning(message: str, **context) -> None:
    """Log a warning with optional context."""
    if context:
        ctx_str = ", ".join(f"{k}={v}" for k, v in context.items())
        _logger.warning(f"{message} ({ctx_str})")
    else:
        _logger.warning(message)


def log_error(message: str, exc_info: bool = False, **context) -> None:
    """Log an error with optional context and exception info."""
    if context:
        ctx_str = ", ".join(f"{k}={v}" for k, v in context.items())
        _logger.error(f"{message} ({ctx_str})", exc_info=exc_info)
    else:
        _logger.error(message, exc_info=exc_info)
