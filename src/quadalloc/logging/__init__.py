"""quadalloc logging setup."""

from .core import LogConfig, LogLevel, get_logger, setup_logging, shutdown_logging
from .formatters import JSONFormatter, TextFormatter

__all__ = [
    "LogConfig",
    "LogLevel",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "JSONFormatter",
    "TextFormatter",
]
