"""
Configuration root and builder.

The root holds providers in order; for a given key the last provider that
has it wins. The root's reload token fires whenever any provider fires its
own token.
"""

import logging
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

from .base import KEY_DELIMITER, ConfigurationProvider, ConfigurationSource
from .files import JsonConfigurationSource, XmlConfigurationSource, YamlConfigurationSource, source_for_file
from .providers import (
    CommandLineConfigurationSource,
    EnvironmentVariablesConfigurationSource,
    MemoryConfigurationSource,
)
from .tokens import ChangeTokenRegistration, ReloadToken, on_change

logger = logging.getLogger(__name__)


class ConfigurationRoot:
    """Read view over an ordered list of loaded providers."""

    def __init__(self, providers: Iterable[ConfigurationProvider]):
        self._providers = list(providers)
        self._reload_token = ReloadToken()
        self._token_lock = threading.Lock()
        self._registrations: list[ChangeTokenRegistration] = []

        for provider in self._providers:
            provider.load()
            self._registrations.append(
                on_change(provider.get_reload_token, lambda _: self._raise_changed())
            )

    @property
    def providers(self) -> list[ConfigurationProvider]:
        return list(self._providers)

    def get(self, key: str, default: str | None = None) -> str | None:
        for provider in reversed(self._providers):
            found, value = provider.try_get(key)
            if found:
                return value
        return default

    def __getitem__(self, key: str) -> str | None:
        return self.get(key)

    def __setitem__(self, key: str, value: str | None) -> None:
        if not self._providers:
            raise KeyError("No configuration providers to set values on")
        for provider in self._providers:
            provider.set(key, value)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return any(provider.try_get(key)[0] for provider in self._providers)

    def get_child_keys(self, parent_path: str | None = None) -> list[str]:
        """Distinct immediate child segments of ``parent_path`` across all providers."""
        keys: list[str] = []
        for provider in self._providers:
            keys = provider.get_child_keys(keys, parent_path)
        return list(dict.fromkeys(keys))

    def iter_items(self, parent_path: str | None = None) -> Iterator[tuple[str, str | None]]:
        """Walk every key below ``parent_path`` depth first, yielding ``(key, value)``."""
        for child in self.get_child_keys(parent_path):
            key = f"{parent_path}{KEY_DELIMITER}{child}" if parent_path else child
            if key in self:
                yield key, self.get(key)
            yield from self.iter_items(key)

    def as_dict(self) -> dict[str, str | None]:
        return dict(self.iter_items())

    def reload(self) -> None:
        for provider in self._providers:
            provider.load()
        self._raise_changed()

    def get_reload_token(self) -> ReloadToken:
        return self._reload_token

    def _raise_changed(self) -> None:
        with self._token_lock:
            previous, self._reload_token = self._reload_token, ReloadToken()
        previous.on_reload()

    def close(self) -> None:
        for registration in self._registrations:
            registration.dispose()
        self._registrations.clear()
        for provider in self._providers:
            provider.close()

    def __enter__(self) -> "ConfigurationRoot":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class ConfigurationBuilder:
    """Collects sources in order and builds a ``ConfigurationRoot``."""

    def __init__(self) -> None:
        self._sources: list[ConfigurationSource] = []
        self._properties: dict[str, Any] = {}

    @property
    def sources(self) -> list[ConfigurationSource]:
        return self._sources

    @property
    def properties(self) -> dict[str, Any]:
        return self._properties

    def add(self, source: ConfigurationSource) -> "ConfigurationBuilder":
        if source is None:
            raise ValueError("source must not be None")
        self._sources.append(source)
        return self

    def add_in_memory(self, initial_data: Mapping[str, str | None] | None = None) -> "ConfigurationBuilder":
        return self.add(MemoryConfigurationSource(initial_data))

    def add_environment_variables(
        self, prefix: str = "", environ: Mapping[str, str] | None = None
    ) -> "ConfigurationBuilder":
        return self.add(EnvironmentVariablesConfigurationSource(prefix, environ))

    def add_command_line(self, args: Sequence[str]) -> "ConfigurationBuilder":
        return self.add(CommandLineConfigurationSource(args))

    def add_json_file(self, path: str | Path, **kwargs: Any) -> "ConfigurationBuilder":
        return self.add(JsonConfigurationSource(path, **kwargs))

    def add_yaml_file(self, path: str | Path, **kwargs: Any) -> "ConfigurationBuilder":
        return self.add(YamlConfigurationSource(path, **kwargs))

    def add_xml_file(self, path: str | Path, **kwargs: Any) -> "ConfigurationBuilder":
        return self.add(XmlConfigurationSource(path, **kwargs))

    def add_file(self, path: str | Path, **kwargs: Any) -> "ConfigurationBuilder":
        """Add a JSON, YAML or XML file, picking the source from the suffix."""
        return self.add(source_for_file(path, **kwargs))

    def build_providers(self) -> list[ConfigurationProvider]:
        return [source.build(self) for source in self._sources]

    def build(self) -> ConfigurationRoot:
        return ConfigurationRoot(self.build_providers())
