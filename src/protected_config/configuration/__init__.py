"""Minimal hierarchical configuration framework decorated by protected configuration."""

from .base import (
    KEY_DELIMITER,
    ConfigurationProvider,
    ConfigurationSource,
    SupportsDataAccess,
    combine_keys,
)
from .files import (
    FileConfigurationProvider,
    FileConfigurationSource,
    JsonConfigurationProvider,
    JsonConfigurationSource,
    XmlConfigurationProvider,
    XmlConfigurationSource,
    YamlConfigurationProvider,
    YamlConfigurationSource,
    source_for_file,
)
from .providers import (
    CommandLineConfigurationProvider,
    CommandLineConfigurationSource,
    DictConfigurationProvider,
    EnvironmentVariablesConfigurationProvider,
    EnvironmentVariablesConfigurationSource,
    MemoryConfigurationProvider,
    MemoryConfigurationSource,
    flatten,
)
from .root import ConfigurationBuilder, ConfigurationRoot
from .tokens import CallbackRegistration, ChangeToken, ChangeTokenRegistration, ReloadToken, on_change
from .watch import FileChangePoller

__all__ = [
    "KEY_DELIMITER",
    "CallbackRegistration",
    "ChangeToken",
    "ChangeTokenRegistration",
    "CommandLineConfigurationProvider",
    "CommandLineConfigurationSource",
    "ConfigurationBuilder",
    "ConfigurationProvider",
    "ConfigurationRoot",
    "ConfigurationSource",
    "DictConfigurationProvider",
    "EnvironmentVariablesConfigurationProvider",
    "EnvironmentVariablesConfigurationSource",
    "FileChangePoller",
    "FileConfigurationProvider",
    "FileConfigurationSource",
    "JsonConfigurationProvider",
    "JsonConfigurationSource",
    "MemoryConfigurationProvider",
    "MemoryConfigurationSource",
    "ReloadToken",
    "SupportsDataAccess",
    "XmlConfigurationProvider",
    "XmlConfigurationSource",
    "YamlConfigurationProvider",
    "YamlConfigurationSource",
    "combine_keys",
    "flatten",
    "on_change",
    "source_for_file",
]
