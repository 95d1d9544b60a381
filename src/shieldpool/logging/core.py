"""Core logging configuration for shieldpool.

Library modules log through ``logging.getLogger(__name__)``, so every logger
lives under the ``shieldpool`` namespace. Hosts call ``setup_logging`` once to
attach a handler with the formatter of their choice.
"""

import logging
import sys
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, TextIO, Tuple

ROOT_LOGGER_NAME = "shieldpool"


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def numeric(self) -> int:
        return getattr(logging, self.name)

    @classmethod
    def parse(cls, value: str) -> "LogLevel":
        try:
            return cls(value.lower())
        except ValueError:
            raise ValueError(f"Unknown log level {value!r}") from None


@dataclass
class LogContext:
    """Context attached to every record of a ledger logger."""

    node_id: Optional[str] = None
    component: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "node_id": self.node_id,
            "component": self.component,
            "metadata": self.metadata,
        }


@dataclass
class LogConfig:
    """Log configuration."""

    name: str = ROOT_LOGGER_NAME
    level: LogLevel = LogLevel.INFO
    format_type: str = "json"  # json or text
    propagate: bool = False
    context: LogContext = field(default_factory=LogContext)
    stream: Optional[TextIO] = None

    def validate(self) -> None:
        if self.format_type not in ("json", "text"):
            raise ValueError(f"Unknown log format {self.format_type!r}")


class ContextFilter(logging.Filter):
    """Attaches a LogContext to every record."""

    def __init__(self, context: LogContext):
        super().__init__()
        self.context = context

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = self.context.to_dict()
        return True


_lock = threading.RLock()
_handlers: List[Tuple[str, logging.Handler]] = []


def setup_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """
    Configure the shieldpool logger tree.

    Calling it again replaces the handler installed by the previous call.

    Args:
        config: Log configuration; defaults to JSON at INFO on stderr

    Returns:
        The configured top-level logger
    """
    from .formatters import JSONFormatter, TextFormatter

    config = config or LogConfig()
    config.validate()

    with _lock:
        logger = logging.getLogger(config.name)
        for name, handler in _handlers:
            logging.getLogger(name).removeHandler(handler)
        _handlers.clear()

        handler = logging.StreamHandler(config.stream or sys.stderr)
        if config.format_type == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(TextFormatter())
        handler.addFilter(ContextFilter(config.context))

        logger.addHandler(handler)
        logger.setLevel(config.level.numeric)
        logger.propagate = config.propagate
        _handlers.append((config.name, handler))
        return logger


def shutdown_logging() -> None:
    """Remove handlers installed by setup_logging and restore propagation."""
    with _lock:
        for name, handler in _handlers:
            logger = logging.getLogger(name)
            logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)
            logger.propagate = True
            handler.close()
        _handlers.clear()


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger inside the shieldpool namespace."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
