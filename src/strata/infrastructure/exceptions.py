"""
Strata exception hierarchy.

Every error raised by the configuration and caching core derives from
StrataException and carries an error code plus a context dictionary so that
callers and structured log records can report where a failure happened.
"""

from typing import Any, Dict, List, Optional


class StrataException(Exception):
    """Base exception for all Strata errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "STRATA_ERROR"
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the exception for structured logging."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }

    def __str__(self) -> str:
        return self.message


class ConfigurationError(StrataException):
    """Raised when Strata's own settings are invalid or cannot be loaded."""

    def __init__(
        self,
        message: str,
        config_path: Optional[str] = None,
        validation_errors: Optional[List[str]] = None
    ):
        context: Dict[str, Any] = {}
        if config_path:
            context["config_path"] = config_path
        if validation_errors:
            context["validation_errors"] = validation_errors
        super().__init__(message, "CONFIGURATION_ERROR", context)
        self.config_path = config_path
        self.validation_errors = validation_errors or []


class FormatError(StrataException):
    """Raised when a structured or flat document is syntactically malformed."""

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        line: Optional[int] = None,
        column: Optional[int] = None
    ):
        context: Dict[str, Any] = {}
        if source:
            context["source"] = source
        if line is not None:
            context["line"] = line
        if column is not None:
            context["column"] = column
        super().__init__(message, "FORMAT_ERROR", context)
        self.source = source
        self.line = line
        self.column = column


class DecodeError(StrataException):
    """Raised when a well-formed document does not fit the requested target type."""

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None
    ):
        context: Dict[str, Any] = {}
        if target:
            context["target"] = target
        if errors:
            context["errors"] = errors
        super().__init__(message, "DECODE_ERROR", context)
        self.target = target
        self.errors = errors or []


class PathNotFoundError(StrataException):
    """Raised when a dot-path does not resolve through existing object nodes."""

    def __init__(self, message: str, dot_path: str, segment: Optional[str] = None):
        context: Dict[str, Any] = {"dot_path": dot_path}
        if segment is not None:
            context["segment"] = segment
        super().__init__(message, "PATH_NOT_FOUND", context)
        self.dot_path = dot_path
        self.segment = segment


class NotFoundError(StrataException):
    """Raised when a referenced file such as a backup does not exist."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, "NOT_FOUND", {"path": path} if path else {})
        self.path = path


class StorageError(StrataException):
    """Raised when an underlying read, write, or copy fails."""

    def __init__(self, message: str, path: Optional[str] = None, operation: Optional[str] = None):
        context: Dict[str, Any] = {}
        if path:
            context["path"] = path
        if operation:
            context["operation"] = operation
        super().__init__(message, "STORAGE_ERROR", context)
        self.path = path
        self.operation = operation
