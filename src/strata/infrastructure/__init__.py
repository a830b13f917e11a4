"""
Strata Infrastructure Layer

Caching, file storage, exceptions and observability used by the
configuration framework.
"""

from .caching import CacheEntry, ExpiringCache, DEFAULT_TTL
from .exceptions import (
    StrataException, ConfigurationError, FormatError, DecodeError,
    PathNotFoundError, NotFoundError, StorageError
)
from .observability import (
    get_logger, configure_logging, configure_default_logging,
    get_framework_logger, get_infrastructure_logger
)

__all__ = [
    'CacheEntry',
    'ExpiringCache',
    'DEFAULT_TTL',
    'StrataException',
    'ConfigurationError',
    'FormatError',
    'DecodeError',
    'PathNotFoundError',
    'NotFoundError',
    'StorageError',
    'get_logger',
    'configure_logging',
    'configure_default_logging',
    'get_framework_logger',
    'get_infrastructure_logger',
]
