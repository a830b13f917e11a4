"""
Strata Configuration System

Structured documents with deep merge and environment overlays, a file-backed
configuration store with watching and backups, and flat section/key-value
documents.
"""

from .builder import ConfigurationBuilder, StrataContext
from .codec import decode, encode, try_decode
from .document import (
    DocumentFormat,
    StructuredDocument,
    get_path,
    is_valid_document,
    parse_document,
    serialize_document,
    set_path,
    try_parse_document
)
from .flat import (
    FlatDocument,
    FlatDocumentStore,
    parse_flat,
    serialize_flat,
    validate_flat_text
)
from .merge import merge, merge_documents
from .models import CacheSettings, LoggingConfiguration, StoreSettings, StrataSettings
from .sources import (
    ConfigurationSource,
    DictConfigurationSource,
    EnvironmentConfigurationSource,
    YAMLConfigurationSource
)
from .store import ConfigDescriptor, ConfigStore
from .watcher import Debouncer, FileWatcher, WatchRegistration, WatchRegistry, debounce

__all__ = [
    'ConfigurationBuilder',
    'StrataContext',
    'decode',
    'encode',
    'try_decode',
    'DocumentFormat',
    'StructuredDocument',
    'get_path',
    'is_valid_document',
    'parse_document',
    'serialize_document',
    'set_path',
    'try_parse_document',
    'FlatDocument',
    'FlatDocumentStore',
    'parse_flat',
    'serialize_flat',
    'validate_flat_text',
    'merge',
    'merge_documents',
    'CacheSettings',
    'LoggingConfiguration',
    'StoreSettings',
    'StrataSettings',
    'ConfigurationSource',
    'DictConfigurationSource',
    'EnvironmentConfigurationSource',
    'YAMLConfigurationSource',
    'ConfigDescriptor',
    'ConfigStore',
    'Debouncer',
    'FileWatcher',
    'WatchRegistration',
    'WatchRegistry',
    'debounce'
]
