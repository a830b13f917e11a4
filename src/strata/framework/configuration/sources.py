"""
Settings Sources

Layers that feed Strata's own settings: in-code defaults, a YAML settings
file and ``STRATA_``-prefixed environment variables. Sources are merged in
priority order (lowest first) by ConfigurationBuilder.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from strata.infrastructure.exceptions import ConfigurationError


class ConfigurationSource(ABC):
    """Base class for settings sources."""

    @abstractmethod
    def load(self) -> Dict[str, Any]:
        """Load settings data from this source."""
        pass

    @abstractmethod
    def get_priority(self) -> int:
        """Higher priority sources override lower ones."""
        pass


class DictConfigurationSource(ConfigurationSource):
    """Fixed in-memory settings, used for defaults and explicit overrides."""

    def __init__(self, data: Dict[str, Any], priority: int = 0):
        self.data = data
        self._priority = priority

    def load(self) -> Dict[str, Any]:
        return self.data

    def get_priority(self) -> int:
        return self._priority


class YAMLConfigurationSource(ConfigurationSource):
    """Settings read from a YAML file."""

    def __init__(self, file_path: Union[str, Path], priority: int = 100, required: bool = True):
        self.file_path = Path(file_path)
        self._priority = priority
        self.required = required

    def load(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            if not self.required:
                return {}
            raise ConfigurationError(
                f"Settings file not found: {self.file_path}",
                config_path=str(self.file_path)
            )

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in settings file: {self.file_path}",
                config_path=str(self.file_path),
                validation_errors=[str(e)]
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Error reading settings file: {self.file_path}",
                config_path=str(self.file_path),
                validation_errors=[str(e)]
            ) from e

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Settings file must contain a mapping: {self.file_path}",
                config_path=str(self.file_path)
            )
        return config

    def get_priority(self) -> int:
        return self._priority


class EnvironmentConfigurationSource(ConfigurationSource):
    """
    Settings from environment variables.

    ``STRATA_STORE__WATCH_POLL_INTERVAL=0.5`` becomes
    ``{"store": {"watch_poll_interval": 0.5}}``: the prefix is stripped, the
    rest is lower-cased and split on double underscores.
    """

    def __init__(self, prefix: str = "STRATA_", priority: int = 200):
        self.prefix = prefix
        self._priority = priority

    def _matching_variables(self) -> Dict[str, str]:
        return {k: v for k, v in os.environ.items() if k.startswith(self.prefix)}

    def load(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        env_vars = self._matching_variables()

        for key, value in env_vars.items():
            keys = key[len(self.prefix):].lower().split('__')
            self._set_nested_value(config, keys, self._parse_value(value))
        return config

    def _parse_value(self, value: str) -> Any:
        """Coerce booleans, numbers and comma-separated lists."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            if '.' in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if ',' in value:
            return self._parse_escaped_list(value)

        return value

    def _parse_escaped_list(self, value: str) -> List[str]:
        """Split on commas; a backslash escapes the next character."""
        items = []
        current_item = ""
        escaped = False

        for char in value:
            if escaped:
                current_item += char
                escaped = False
            elif char == '\\':
                escaped = True
            elif char == ',':
                items.append(current_item.strip())
                current_item = ""
            else:
                current_item += char

        if current_item:
            items.append(current_item.strip())

        return items

    def _set_nested_value(self, config: Dict[str, Any], keys: List[str], value: Any) -> None:
        current = config
        for k in keys[:-1]:
            child = current.get(k)
            if not isinstance(child, dict):
                child = {}
                current[k] = child
            current = child
        current[keys[-1]] = value

    def get_priority(self) -> int:
        return self._priority
