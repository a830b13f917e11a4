"""
Centralized Logger Factory for Strata

Creates and caches Strata loggers so that every component shares one logging
configuration, and lets that configuration be swapped at runtime.
"""

import threading
from typing import Dict, Optional, TYPE_CHECKING

from .logging import (
    StrataLogger, LogLevel, LogFormatter, get_logger,
    JSONLogFormatter, HumanReadableFormatter, ConsoleLogHandler, FileLogHandler
)

# Use TYPE_CHECKING to avoid circular imports
if TYPE_CHECKING:
    from strata.framework.configuration.models import LoggingConfiguration


class LoggerFactory:
    """
    Singleton factory for Strata loggers.

    Loggers are created lazily and reconfigured in place whenever
    ``configure`` is called, so module-level loggers obtained before the
    configuration was known still pick it up.
    """

    _instance: Optional['LoggerFactory'] = None
    _lock = threading.Lock()

    def __init__(self):
        self._loggers: Dict[str, StrataLogger] = {}
        self._config: Optional['LoggingConfiguration'] = None
        self._config_lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'LoggerFactory':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = LoggerFactory()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the singleton (tests)."""
        with cls._lock:
            cls._instance = None

    def configure(self, config: 'LoggingConfiguration') -> None:
        """Apply ``config`` to the root logger and every logger created so far."""
        with self._config_lock:
            self._config = config
            self._apply_config_to_logger(get_logger("strata"), config)
            for logger in self._loggers.values():
                self._apply_config_to_logger(logger, config)

    def get_logger(self, name: str, level: Optional[LogLevel] = None) -> StrataLogger:
        """
        Get or create a logger.

        Args:
            name: Dotted logger name, e.g. "strata.infrastructure.cache"
            level: Optional level override for this logger only

        Returns:
            StrataLogger: the shared logger instance for ``name``
        """
        with self._config_lock:
            logger = self._loggers.get(name)
            if logger is None:
                logger = get_logger(name)
                self._loggers[name] = logger
                if self._config is not None:
                    self._apply_config_to_logger(logger, self._config)
            if level is not None:
                logger.set_level(level)
            return logger

    def _apply_config_to_logger(self, logger: StrataLogger, config: 'LoggingConfiguration') -> None:
        logger.handlers.clear()
        logger.set_level(LogLevel(config.level.upper()))

        # Console honours the configured format; files are always JSON
        if config.output in ("console", "both"):
            console_formatter: LogFormatter = JSONLogFormatter() if config.format == "json" else HumanReadableFormatter()
            logger.add_handler(ConsoleLogHandler(console_formatter))

        if config.output in ("file", "both") and config.file_path:
            logger.add_handler(FileLogHandler(JSONLogFormatter(), config.file_path))

    def get_configuration(self) -> Optional['LoggingConfiguration']:
        with self._config_lock:
            return self._config

    def is_configured(self) -> bool:
        with self._config_lock:
            return self._config is not None

    def get_logger_names(self) -> list[str]:
        with self._config_lock:
            return list(self._loggers.keys())

    def reset(self) -> None:
        with self._config_lock:
            self._loggers.clear()
            self._config = None


def configure_logging(config: 'LoggingConfiguration') -> None:
    """Configure global logging using the factory."""
    LoggerFactory.get_instance().configure(config)


def get_strata_logger(name: str, level: Optional[LogLevel] = None) -> StrataLogger:
    return LoggerFactory.get_instance().get_logger(name, level)


def is_logging_configured() -> bool:
    return LoggerFactory.get_instance().is_configured()


def reset_logging() -> None:
    """Reset global logging state (useful for testing)."""
    LoggerFactory.get_instance().reset()


def get_framework_logger(component: str) -> StrataLogger:
    """Logger for configuration and CLI components."""
    return get_strata_logger(f"strata.framework.{component}")


def get_infrastructure_logger(component: str) -> StrataLogger:
    """Logger for cache, storage and other infrastructure components."""
    return get_strata_logger(f"strata.infrastructure.{component}")
