"""
In-process configuration providers and their sources.

``DictConfigurationProvider`` is the base for every concrete provider: it keeps
the flattened key/value pairs in a dict and implements the read side of the
contract on top of it. Subclasses only need to fill ``self.data`` in ``load``.
"""

import logging
import os
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from typing import Any

from .base import (
    KEY_DELIMITER,
    ConfigurationBuilderLike,
    ConfigurationProvider,
    ConfigurationSource,
    key_sort_key,
    segment,
)
from .tokens import ReloadToken

logger = logging.getLogger(__name__)


class DictConfigurationProvider(ConfigurationProvider):
    """Provider backed by a flat ``dict`` of ``path:to:key -> value``."""

    def __init__(self) -> None:
        self.data: dict[str, str | None] = {}
        self._reload_token = ReloadToken()

    def load(self) -> None:
        pass

    def try_get(self, key: str) -> tuple[bool, str | None]:
        if key in self.data:
            return True, self.data[key]
        return False, None

    def set(self, key: str, value: str | None) -> None:
        self.data[key] = value

    def get_data(self) -> MutableMapping[str, str | None]:
        return self.data

    def get_child_keys(self, earlier_keys: Iterable[str], parent_path: str | None) -> list[str]:
        prefix = f"{parent_path}{KEY_DELIMITER}" if parent_path else ""
        keys = [segment(key, len(prefix)) for key in self.data if key.startswith(prefix)]
        keys.extend(earlier_keys)
        keys.sort(key=key_sort_key)
        return keys

    def get_reload_token(self) -> ReloadToken:
        return self._reload_token

    def on_reload(self) -> None:
        """Swap in a fresh reload token and fire the previous one."""
        previous, self._reload_token = self._reload_token, ReloadToken()
        previous.on_reload()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MemoryConfigurationProvider(DictConfigurationProvider):
    """Provider over an in-memory mapping of already flattened keys."""

    def __init__(self, initial_data: Mapping[str, str | None] | None = None):
        super().__init__()
        if initial_data:
            self.data.update(initial_data)


class MemoryConfigurationSource(ConfigurationSource):
    def __init__(self, initial_data: Mapping[str, str | None] | None = None):
        self.initial_data = dict(initial_data or {})

    def build(self, builder: ConfigurationBuilderLike) -> MemoryConfigurationProvider:
        return MemoryConfigurationProvider(self.initial_data)


class EnvironmentVariablesConfigurationProvider(DictConfigurationProvider):
    """Provider over environment variables.

    Only variables starting with ``prefix`` (case-insensitive) are loaded, with
    the prefix removed. A double underscore in the name separates hierarchy
    levels: ``DATABASE__PASSWORD`` becomes ``DATABASE:PASSWORD``.
    """

    def __init__(self, prefix: str = "", environ: Mapping[str, str] | None = None):
        super().__init__()
        self.prefix = prefix
        self._environ = environ

    def load(self) -> None:
        environ = os.environ if self._environ is None else self._environ
        prefix = self.prefix.lower()
        data: dict[str, str | None] = {}
        for name, value in environ.items():
            if not name.lower().startswith(prefix):
                continue
            data[name[len(prefix) :].replace("__", KEY_DELIMITER)] = value
        self.data = data

    def __repr__(self) -> str:
        return f"{type(self).__name__}(prefix={self.prefix!r})"


class EnvironmentVariablesConfigurationSource(ConfigurationSource):
    def __init__(self, prefix: str = "", environ: Mapping[str, str] | None = None):
        self.prefix = prefix
        self.environ = environ

    def build(self, builder: ConfigurationBuilderLike) -> EnvironmentVariablesConfigurationProvider:
        return EnvironmentVariablesConfigurationProvider(self.prefix, self.environ)


class CommandLineConfigurationProvider(DictConfigurationProvider):
    """Provider over command-line arguments.

    Accepted forms: ``--key value``, ``--key=value``, ``/key value``,
    ``/key=value`` and ``key=value``. Later arguments win. Arguments in any
    other form are ignored.
    """

    def __init__(self, args: Sequence[str]):
        super().__init__()
        self.args = list(args)

    def load(self) -> None:
        data: dict[str, str | None] = {}
        args = iter(self.args)
        for arg in args:
            if arg.startswith("--"):
                key_start = 2
            elif arg.startswith("/"):
                key_start = 1
            elif "=" in arg:
                key_start = 0
            else:
                logger.debug(f"Ignoring command line argument without a key: {arg!r}")
                continue

            separator = arg.find("=")
            if separator >= 0:
                key = arg[key_start:separator]
                value: str | None = arg[separator + 1 :]
            elif key_start == 0:
                continue
            else:
                key = arg[key_start:]
                value = next(args, None)
                if value is None:
                    logger.debug(f"Ignoring command line switch without a value: {arg!r}")
                    continue

            if key:
                data[key] = value
        self.data = data


class CommandLineConfigurationSource(ConfigurationSource):
    def __init__(self, args: Sequence[str]):
        self.args = list(args)

    def build(self, builder: ConfigurationBuilderLike) -> CommandLineConfigurationProvider:
        return CommandLineConfigurationProvider(self.args)


def scalar_to_string(value: Any) -> str | None:
    """Render a parsed scalar the way configuration stores it."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten(value: Any, prefix: str = "", data: dict[str, str | None] | None = None) -> dict[str, str | None]:
    """Flatten nested dicts/lists into ``parent:child`` / ``parent:0`` keys.

    Empty containers produce no keys.
    """
    if data is None:
        data = {}

    if isinstance(value, Mapping):
        for key, child in value.items():
            child_key = f"{prefix}{KEY_DELIMITER}{key}" if prefix else str(key)
            flatten(child, child_key, data)
    elif isinstance(value, list):
        for index, child in enumerate(value):
            child_key = f"{prefix}{KEY_DELIMITER}{index}" if prefix else str(index)
            flatten(child, child_key, data)
    elif prefix:
        data[prefix] = scalar_to_string(value)

    return data
