"""
Observability for Strata

Structured logging with per-operation and per-config-file context, plus a
factory that keeps every component's logger on one configuration.
"""

from .logging import (
    StrataLogger, LogLevel, LogFormatter, LogHandler,
    JSONLogFormatter, HumanReadableFormatter, ConsoleLogHandler, FileLogHandler,
    get_logger, configure_default_logging, get_config_path, get_operation_id
)
from .factory import (
    LoggerFactory, configure_logging, get_strata_logger, is_logging_configured,
    reset_logging, get_framework_logger, get_infrastructure_logger
)

__all__ = [
    "StrataLogger",
    "LogLevel",
    "LogFormatter",
    "LogHandler",
    "JSONLogFormatter",
    "HumanReadableFormatter",
    "ConsoleLogHandler",
    "FileLogHandler",
    "get_logger",
    "configure_default_logging",
    "get_config_path",
    "get_operation_id",
    "LoggerFactory",
    "configure_logging",
    "get_strata_logger",
    "is_logging_configured",
    "reset_logging",
    "get_framework_logger",
    "get_infrastructure_logger",
]
