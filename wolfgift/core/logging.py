"""
Centralized Logging Module for wolfgift

Provides unified logging configuration with:

Features:
    - Structured key/value logging (structlog)
    - JSON output for production environments
    - Console output for development
    - Context binding (purchase id, account) through contextvars
    - Records routed through the standard ``logging`` module

Usage:
    from wolfgift.core.logging import get_logger, configure_logging

    configure_logging(level=logging.INFO, json_format=False)

    logger = get_logger("wolfgift.commerce")
    logger.info("purchase_succeeded", account="main", cost=300)

Environment Variables:
    WOLFGIFT_LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    WOLFGIFT_LOG_FORMAT: Set format (console, json)
"""

import logging
import os
import sys
from typing import Any

import structlog

# =============================================================================
# Constants
# =============================================================================

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "console"
ROOT_LOGGER_NAME = "wolfgift"
TOKEN_PREVIEW_CHARS = 12

_configured = False


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.getenv("WOLFGIFT_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        return getattr(logging, level.upper(), DEFAULT_LOG_LEVEL)
    return level


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(
    level: int | str | None = None,
    json_format: bool | None = None,
    stream: Any = None,
) -> None:
    """
    Configure wolfgift logging globally.

    Should be called once at application startup. Log records are rendered
    by structlog and then handed to the standard ``wolfgift`` logger, so any
    handler attached there (including pytest's ``caplog``) sees them.

    Args:
        level: Log level (default: from WOLFGIFT_LOG_LEVEL, else INFO)
        json_format: Enable JSON rendering (default: from WOLFGIFT_LOG_FORMAT)
        stream: Output stream for the console handler (default: stdout)

    Example:
        >>> configure_logging(level=logging.DEBUG, json_format=False)
        >>> configure_logging(level="INFO", json_format=True)
    """
    global _configured

    log_level = _resolve_level(level)
    if json_format is None:
        json_format = os.getenv("WOLFGIFT_LOG_FORMAT", DEFAULT_LOG_FORMAT) == "json"

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            (
                structlog.processors.JSONRenderer()
                if json_format
                else structlog.dev.ConsoleRenderer(colors=False)
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    _configured = True


def get_logger(name: str) -> Any:
    """
    Get a structured logger.

    Configures logging with environment defaults on first use.

    Example:
        >>> logger = get_logger("wolfgift.auth.captcha")
        >>> logger.info("captcha_solved", attempts=4)
    """
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


def token_preview(token: str | None) -> str:
    """Short, log-safe prefix of a credential."""
    if not token:
        return "<empty>"
    return token[:TOKEN_PREVIEW_CHARS] + "..."


__all__ = [
    "configure_logging",
    "get_logger",
    "token_preview",
]
