"""
Strata: layered configuration files with an expiring cache.
"""

__version__ = "0.1.0"

from strata.infrastructure.caching import DEFAULT_TTL, CacheEntry, ExpiringCache
from strata.infrastructure.exceptions import (
    ConfigurationError,
    DecodeError,
    FormatError,
    NotFoundError,
    PathNotFoundError,
    StorageError,
    StrataException
)
from strata.framework.configuration import (
    ConfigDescriptor,
    ConfigStore,
    ConfigurationBuilder,
    DocumentFormat,
    FlatDocument,
    FlatDocumentStore,
    StrataContext,
    StrataSettings,
    StructuredDocument,
    WatchRegistration,
    WatchRegistry,
    debounce,
    decode,
    encode,
    merge,
    merge_documents,
    parse_document,
    parse_flat,
    serialize_document,
    serialize_flat,
    set_path,
    validate_flat_text
)

__all__ = [
    '__version__',
    'DEFAULT_TTL',
    'CacheEntry',
    'ExpiringCache',
    'ConfigurationError',
    'DecodeError',
    'FormatError',
    'NotFoundError',
    'PathNotFoundError',
    'StorageError',
    'StrataException',
    'ConfigDescriptor',
    'ConfigStore',
    'ConfigurationBuilder',
    'DocumentFormat',
    'FlatDocument',
    'FlatDocumentStore',
    'StrataContext',
    'StrataSettings',
    'StructuredDocument',
    'WatchRegistration',
    'WatchRegistry',
    'debounce',
    'decode',
    'encode',
    'merge',
    'merge_documents',
    'parse_document',
    'parse_flat',
    'serialize_document',
    'serialize_flat',
    'set_path',
    'validate_flat_text'
]
