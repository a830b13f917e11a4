"""
Configuration Builder

Provides a fluent interface for assembling Strata from layered settings
sources: defaults, a YAML settings file and environment variables.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from strata.infrastructure.caching import ExpiringCache
from strata.infrastructure.exceptions import ConfigurationError
from strata.infrastructure.observability.factory import configure_logging, get_framework_logger
from .flat import FlatDocumentStore
from .merge import merge
from .models import StrataSettings
from .sources import (
    ConfigurationSource, DictConfigurationSource,
    EnvironmentConfigurationSource, YAMLConfigurationSource
)
from .store import ConfigStore


OVERRIDE_PRIORITY = 1000


@dataclass
class StrataContext:
    """The wired-up stores and the settings they were built from."""
    settings: StrataSettings
    cache: ExpiringCache
    config_store: ConfigStore
    flat_store: FlatDocumentStore

    def close(self) -> None:
        """Stop all watchers and drop cached documents."""
        self.config_store.close()
        self.cache.clear()

    def __enter__(self) -> 'StrataContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ConfigurationBuilder:
    """
    Builder for Strata settings and stores.

    Sources are merged lowest priority first, so later layers override
    earlier ones key by key. Explicit overrides such as
    ``with_config_directory`` win over every source.
    """

    def __init__(self):
        self.sources: List[ConfigurationSource] = []
        self._overrides: Dict[str, Any] = {}
        self._logger = get_framework_logger("builder")

    def add_defaults(self) -> 'ConfigurationBuilder':
        """Add the model defaults as the lowest layer."""
        defaults = StrataSettings().model_dump(mode="json")
        self.sources.append(DictConfigurationSource(defaults, priority=0))
        return self

    def add_yaml_source(
        self,
        path: Union[str, Path],
        priority: int = 100,
        required: bool = True
    ) -> 'ConfigurationBuilder':
        """
        Add a YAML settings file.

        Args:
            path: Path to the YAML file
            priority: Priority of this source (higher = more important)
            required: Raise ConfigurationError when the file is missing

        Returns:
            Self for method chaining
        """
        self.sources.append(YAMLConfigurationSource(path, priority, required))
        return self

    def add_environment_source(self, prefix: str = "STRATA_", priority: int = 200) -> 'ConfigurationBuilder':
        """Add ``STRATA_``-prefixed environment variables."""
        self.sources.append(EnvironmentConfigurationSource(prefix, priority))
        return self

    def add_source(self, source: ConfigurationSource) -> 'ConfigurationBuilder':
        self.sources.append(source)
        return self

    def with_config_directory(self, directory: Union[str, Path]) -> 'ConfigurationBuilder':
        self._overrides = merge(self._overrides, {"store": {"config_directory": str(directory)}})
        return self

    def with_logging(self, **logging_settings: Any) -> 'ConfigurationBuilder':
        self._overrides = merge(self._overrides, {"logging": logging_settings})
        return self

    def build_settings(self) -> StrataSettings:
        """Merge every source and validate the result."""
        sources = list(self.sources)
        if self._overrides:
            sources.append(DictConfigurationSource(self._overrides, OVERRIDE_PRIORITY))

        # Lowest first, so higher priority overwrites
        data: Dict[str, Any] = {}
        for source in sorted(sources, key=lambda s: s.get_priority()):
            data = merge(data, source.load())

        try:
            return StrataSettings.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(
                "Settings validation failed",
                validation_errors=[
                    f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                    for error in e.errors()
                ]
            ) from e

    def build(self) -> StrataContext:
        """
        Build settings, apply logging and create the stores.

        Returns:
            StrataContext: cache, structured store and flat store sharing one settings object
        """
        settings = self.build_settings()
        configure_logging(settings.logging)

        cache = ExpiringCache(default_ttl=settings.cache.default_ttl_seconds)
        config_store = ConfigStore(
            settings=settings.store,
            cache=cache if settings.cache.memoize_documents else None
        )
        flat_store = FlatDocumentStore(encoding=settings.store.encoding)

        self._logger.info("Strata initialized", extra={
            "config_directory": str(settings.store.config_directory),
            "sources": len(self.sources)
        })
        return StrataContext(
            settings=settings,
            cache=cache,
            config_store=config_store,
            flat_store=flat_store
        )
