"""Logging for shieldpool.

Modules log through the standard library under the ``shieldpool`` logger
namespace; this package lets hosts attach structured or text output.
"""

from .core import (
    ROOT_LOGGER_NAME,
    ContextFilter,
    LogConfig,
    LogContext,
    LogLevel,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from .formatters import JSONFormatter, TextFormatter

__all__ = [
    "ROOT_LOGGER_NAME",
    "LogLevel",
    "LogContext",
    "LogConfig",
    "ContextFilter",
    "JSONFormatter",
    "TextFormatter",
    "setup_logging",
    "shutdown_logging",
    "get_logger",
]
