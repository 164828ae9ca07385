"""
Logging Utilities for the FetchSub API

This module provides centralized logging configuration for the FastAPI
application. It ensures consistent log formatting with request ID tracing
across an extraction, from URL expansion down to each yt-dlp call.
"""
import logging
import uuid
from typing import Optional

LOGGER_NAME = "fetchsub"


def setup_logger(
    log_level: int = logging.INFO,
    logger_name: str = LOGGER_NAME
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        log_level: Logging level constant from logging module.
                  Defaults to logging.INFO (20).
        logger_name: Name for the logger instance. Defaults to "fetchsub".

    Returns:
        Configured Logger instance ready for use with get_request_logger().

    Example:
        >>> logger = setup_logger(log_level=logging.DEBUG)
        >>> req_logger = get_request_logger("req-123")
        >>> req_logger.info("Processing started")
        2026-01-12 10:30:45 | INFO | [req-123] Processing started
    """
    log_format = logging.Formatter(
        '%(asctime)s | %(levelname)s | [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # Prevent duplicate handlers if logger already configured
    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(log_format)
        logger.addHandler(console_handler)

    return logger


def new_request_id() -> str:
    """Short random ID used to tag every log line of one request."""
    return uuid.uuid4().hex[:8]


def get_request_logger(
    request_id: Optional[str] = None,
    base_logger: Optional[logging.Logger] = None
) -> logging.LoggerAdapter:
    """
    Create a logger adapter with the request ID for tracing.

    Args:
        request_id: Identifier of the request. A new one is generated if None.
        base_logger: Optional base logger to wrap. If None, the "fetchsub"
                    logger is configured and used.

    Returns:
        LoggerAdapter configured to inject request_id into all log messages.
    """
    if base_logger is None:
        base_logger = setup_logger()

    return logging.LoggerAdapter(base_logger, {"request_id": request_id or new_request_id()})
