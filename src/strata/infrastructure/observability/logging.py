"""
Structured Logging System for Strata

Provides structured logging with per-operation context (the configuration
file currently being read or written) and configurable formatters and
handlers for console and file destinations.
"""

import json
import sys
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

# Context variables stamped onto every record emitted inside a context block
operation_id_var: ContextVar[Optional[str]] = ContextVar('operation_id', default=None)
config_path_var: ContextVar[Optional[str]] = ContextVar('config_path', default=None)


class LogLevel(Enum):
    """Log levels for the Strata logging system"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


_LEVEL_ORDER = {
    LogLevel.DEBUG: 0,
    LogLevel.INFO: 1,
    LogLevel.WARNING: 2,
    LogLevel.ERROR: 3,
    LogLevel.CRITICAL: 4,
}


class LogFormatter(ABC):
    """Abstract base class for log formatters"""

    @abstractmethod
    def format(self, record: Dict[str, Any]) -> str:
        """Format a log record into a string"""
        pass


class JSONLogFormatter(LogFormatter):
    """One JSON object per line"""

    def format(self, record: Dict[str, Any]) -> str:
        return json.dumps(record, default=str, ensure_ascii=False)


class HumanReadableFormatter(LogFormatter):
    """Column-aligned formatter for terminals"""

    def format(self, record: Dict[str, Any]) -> str:
        timestamp = record.get('timestamp', '')
        level = record.get('level', 'INFO')
        logger_name = record.get('logger', 'unknown')
        message = record.get('message', '')

        # 2024-01-01T10:00:00.123456+00:00 -> 2024-01-01 10:00:00
        if 'T' in timestamp:
            date_part, _, time_part = timestamp.partition('T')
            timestamp = f"{date_part} {time_part[:8]}"

        short_logger = logger_name.rsplit('.', 1)[-1]
        if len(short_logger) > 20:
            short_logger = short_logger[:17] + "..."

        base_msg = f"[{timestamp}] {level:<8} [{short_logger:<20}] {message}"

        config_path = record.get('config_path')
        if config_path:
            base_msg += f" ({config_path})"

        extra = record.get('extra')
        if extra:
            lines = []
            for k, v in extra.items():
                v_str = str(v)
                if len(v_str) > 100:
                    v_str = v_str[:97] + "..."
                lines.append(f"    {k}: {v_str}")
            base_msg += "\n" + "\n".join(lines)

        return base_msg


class LogHandler(ABC):
    """Abstract base class for log handlers"""

    def __init__(self, formatter: LogFormatter):
        self.formatter = formatter

    @abstractmethod
    def emit(self, record: Dict[str, Any]) -> None:
        """Emit a log record"""
        pass


class ConsoleLogHandler(LogHandler):
    """Writes records to a text stream (stderr by default)"""

    def __init__(self, formatter: LogFormatter, stream: Optional[TextIO] = None):
        super().__init__(formatter)
        self.stream = stream if stream is not None else sys.stderr
        self._lock = threading.Lock()

    def emit(self, record: Dict[str, Any]) -> None:
        formatted_message = self.formatter.format(record)
        with self._lock:
            self.stream.write(formatted_message + '\n')
            self.stream.flush()


class FileLogHandler(LogHandler):
    """Appends records to a file"""

    def __init__(self, formatter: LogFormatter, file_path: Union[str, Path]):
        super().__init__(formatter)
        self.file_path = Path(file_path)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def emit(self, record: Dict[str, Any]) -> None:
        formatted_message = self.formatter.format(record)
        with self._lock:
            with open(self.file_path, 'a', encoding='utf-8') as f:
                f.write(formatted_message + '\n')


class StrataLogger:
    """
    Structured logger for Strata.

    Records are plain dictionaries carrying a UTC timestamp, level, logger
    name, message, the active operation id and config path (when set through
    ``operation_context``/``config_context``) and an optional ``extra``
    mapping. Handler failures are reported on stderr and never propagate to
    the caller.
    """

    def __init__(self, name: str, level: LogLevel = LogLevel.INFO):
        self.name = name
        self.level = level
        self.handlers: list[LogHandler] = []

    def add_handler(self, handler: LogHandler) -> None:
        self.handlers.append(handler)

    def remove_handler(self, handler: LogHandler) -> None:
        if handler in self.handlers:
            self.handlers.remove(handler)

    def set_level(self, level: Union[LogLevel, str]) -> None:
        if isinstance(level, str):
            level = LogLevel[level.upper()]
        self.level = level

    def is_enabled_for(self, level: LogLevel) -> bool:
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[self.level]

    def _create_log_record(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        record = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level.value,
            'logger': self.name,
            'message': message,
            'operation_id': operation_id_var.get(),
            'config_path': config_path_var.get(),
        }
        if extra:
            record['extra'] = extra
        return {k: v for k, v in record.items() if v is not None}

    def _log(self, level: LogLevel, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        if not self.is_enabled_for(level):
            return

        record = self._create_log_record(level, message, extra)
        for handler in self.handlers:
            try:
                handler.emit(record)
            except Exception as e:
                sys.stderr.write(f"Logging handler failed: {e}\n")

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: Optional[BaseException] = None) -> None:
        """Log an error, attaching exception details when given."""
        self._log(LogLevel.ERROR, message, _with_exception(extra, exc_info))

    def critical(self, message: str, extra: Optional[Dict[str, Any]] = None, exc_info: Optional[BaseException] = None) -> None:
        self._log(LogLevel.CRITICAL, message, _with_exception(extra, exc_info))

    @contextmanager
    def operation_context(self, operation_id: Optional[str] = None):
        """Tag every record emitted in the block with one operation id."""
        if operation_id is None:
            operation_id = uuid.uuid4().hex[:12]
        token = operation_id_var.set(operation_id)
        try:
            yield operation_id
        finally:
            operation_id_var.reset(token)

    @contextmanager
    def config_context(self, config_path: Union[str, Path]):
        """Tag every record emitted in the block with the config file path."""
        token = config_path_var.set(str(config_path))
        try:
            yield str(config_path)
        finally:
            config_path_var.reset(token)


def _with_exception(extra: Optional[Dict[str, Any]], exc_info: Optional[BaseException]) -> Optional[Dict[str, Any]]:
    if exc_info is None:
        return extra
    extra = dict(extra or {})
    extra['exception'] = {
        'type': type(exc_info).__name__,
        'message': str(exc_info),
        'module': type(exc_info).__module__,
    }
    return extra


# Global logger registry
_loggers: Dict[str, StrataLogger] = {}
_registry_lock = threading.Lock()


def get_logger(name: str, level: LogLevel = LogLevel.INFO) -> StrataLogger:
    """Get or create a logger; new loggers inherit the root 'strata' handlers."""
    with _registry_lock:
        if name not in _loggers:
            logger = StrataLogger(name, level)
            root_logger = _loggers.get("strata")
            if root_logger is not None and name != "strata":
                logger.level = root_logger.level
                for handler in root_logger.handlers:
                    logger.add_handler(handler)
            _loggers[name] = logger
        return _loggers[name]


def configure_default_logging(
    level: LogLevel = LogLevel.INFO,
    use_json: bool = False,
    log_file: Optional[Union[str, Path]] = None,
    stream: Optional[TextIO] = None
) -> None:
    """Point every known logger, and loggers created later, at the same handlers."""
    formatter = JSONLogFormatter() if use_json else HumanReadableFormatter()
    handlers: list[LogHandler] = [ConsoleLogHandler(formatter, stream)]
    if log_file:
        handlers.append(FileLogHandler(formatter, log_file))

    get_logger("strata")
    with _registry_lock:
        for logger in _loggers.values():
            logger.handlers = list(handlers)
            logger.set_level(level)


def get_config_path() -> Optional[str]:
    """Config path of the enclosing ``config_context`` block, if any."""
    return config_path_var.get()


def get_operation_id() -> Optional[str]:
    return operation_id_var.get()
