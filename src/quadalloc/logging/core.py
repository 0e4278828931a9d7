"""Logging setup for quadalloc.

Modules log through ``logging.getLogger(__name__)``; this module configures
the ``quadalloc`` logger hierarchy once, with JSON or text output to the
console and optionally a file.
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

from .formatters import JSONFormatter, TextFormatter

ROOT_LOGGER_NAME = "quadalloc"


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_stdlib(self) -> int:
        return getattr(logging, self.name)


class LogConfig:
    """Log configuration."""

    def __init__(
        self,
        name: str = ROOT_LOGGER_NAME,
        level: LogLevel = LogLevel.INFO,
        format_type: str = "json",
        handlers: List[str] = None,
        file_path: Optional[str] = None,
        propagate: bool = False,
    ):
        if format_type not in ("json", "text"):
            raise ValueError(f"Unknown log format: {format_type}")
        self.name = name
        self.level = level
        self.format_type = format_type
        self.handlers = handlers or ["console"]
        self.file_path = file_path
        self.propagate = propagate

        if "file" in self.handlers and not self.file_path:
            raise ValueError("File handler requires file_path")


_installed_handlers: List[Tuple[logging.Logger, logging.Handler]] = []


def _build_formatter(config: LogConfig) -> logging.Formatter:
    if config.format_type == "json":
        return JSONFormatter()
    return TextFormatter()


def setup_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """Setup logging with configuration; replaces previously installed handlers."""
    config = config or LogConfig()
    shutdown_logging()

    logger = logging.getLogger(config.name)
    logger.setLevel(config.level.to_stdlib())
    logger.propagate = config.propagate

    formatter = _build_formatter(config)
    for handler_name in config.handlers:
        if handler_name == "console":
            handler = logging.StreamHandler()
        elif handler_name == "file":
            handler = logging.FileHandler(config.file_path, encoding="utf-8")
        else:
            raise ValueError(f"Unknown log handler: {handler_name}")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        _installed_handlers.append((logger, handler))

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Get a logger inside the quadalloc hierarchy."""
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Remove and close handlers installed by setup_logging."""
    while _installed_handlers:
        logger, handler = _installed_handlers.pop()
        logger.removeHandler(handler)
        handler.close()
