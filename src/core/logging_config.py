"""Structured logging configuration.

This module initializes a structlog logger with a stable JSON format
so every store event carries machine-readable fields.
"""

from __future__ import annotations

import logging
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL

_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog bound logger with structured output.
    """
    _configure_once()
    return structlog.get_logger(name)


def _configure_once() -> None:
    """Configure structlog processors on first use."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(DEFAULT_LOG_LEVEL)),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def _level_number(level_name: str) -> int:
    """Map a level name onto the stdlib numeric level.

    Args:
        level_name: Case-insensitive level name such as ``info``.

    Returns:
        Numeric logging level.
    """
    return logging.getLevelName(level_name.upper())
