"""
Offline encryption helpers.

These functions turn ``Protect:{...}`` tokens into ``Protected:{...}`` tokens
ahead of time: in single values, collections, dictionaries, environment
variables and whole configuration files. They all take a valid
``ProtectProviderConfigurationData``.
"""

import logging
import os
import shutil
import xml.etree.ElementTree as ET
from collections.abc import Iterable, MutableMapping
from pathlib import Path
from typing import Any, TypeVar, overload

from .processors import FileProtectOptionRegistry
from .provider_data import ProtectProviderConfigurationData

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".bak"

_MappingT = TypeVar("_MappingT", bound=MutableMapping[Any, Any])


@overload
def protect_configuration_value(data: ProtectProviderConfigurationData, value: None) -> None: ...


@overload
def protect_configuration_value(data: ProtectProviderConfigurationData, value: str) -> str: ...


@overload
def protect_configuration_value(
    data: ProtectProviderConfigurationData, value: tuple[str, ...]
) -> tuple[str, ...]: ...


@overload
def protect_configuration_value(data: ProtectProviderConfigurationData, value: _MappingT) -> _MappingT: ...


@overload
def protect_configuration_value(
    data: ProtectProviderConfigurationData, value: Iterable[str]
) -> list[str]: ...


def protect_configuration_value(data: ProtectProviderConfigurationData, value: Any) -> Any:
    """Encrypt every plaintext token in ``value``.

    Args:
        data: A valid provider configuration
        value: A string, a tuple or other iterable of strings, or a mutable
            mapping whose values are strings

    Returns:
        The protected value. Strings and tuples are returned as new objects,
        other iterables as a list. Mappings are updated in place (keys are
        never touched) and returned. ``None`` is returned as ``None``.

    Raises:
        ConfigurationShapeError: If ``data`` is not valid
    """
    data.check_configuration_is_valid()

    if value is None:
        return None

    if isinstance(value, str):
        return _protect_string(data, value)

    if isinstance(value, MutableMapping):
        for key, item in value.items():
            if isinstance(item, str):
                value[key] = _protect_string(data, item)
        return value

    if isinstance(value, tuple):
        return tuple(_protect_string(data, item) for item in value)

    if isinstance(value, Iterable):
        return [_protect_string(data, item) for item in value]

    raise TypeError(f"Cannot protect value of type {type(value).__name__}")


def _protect_string(data: ProtectProviderConfigurationData, value: str) -> str:
    if not data.grammar.is_protectable(value):
        return value
    return data.protect_value(value)


def unprotect_configuration_value(data: ProtectProviderConfigurationData, value: str | None) -> str | None:
    """Decrypt every ciphertext token in ``value``.

    Raises:
        DecryptionError: If a token cannot be decrypted
    """
    data.check_configuration_is_valid()
    if value is None or not data.grammar.is_protected(value):
        return value
    return data.unprotect_value(value)


def protect_environment_variables(
    data: ProtectProviderConfigurationData,
    environ: MutableMapping[str, str] | None = None,
) -> list[str]:
    """Encrypt tokens in environment variables, in place.

    Args:
        data: A valid provider configuration
        environ: The mapping to rewrite, ``os.environ`` by default

    Returns:
        The names of the variables which were rewritten
    """
    data.check_configuration_is_valid()
    if environ is None:
        environ = os.environ

    changed = []
    for name, value in list(environ.items()):
        if data.grammar.is_protectable(value):
            environ[name] = data.protect_value(value)
            changed.append(name)
            logger.debug(f"Protected environment variable {name}")

    if changed:
        logger.info(f"Protected {len(changed)} environment variable(s)")
    return changed


def protect_files(
    data: ProtectProviderConfigurationData,
    directory: str | Path,
    pattern: str = "*.json",
    recursive: bool = False,
    backup: bool = True,
    options: FileProtectOptionRegistry | None = None,
) -> list[Path]:
    """Encrypt tokens in every file of ``directory`` matching ``pattern``.

    Each file is handled by the processor of the first matching option in
    ``options``. Files which would not change are never rewritten. A failure on
    one file (I/O, parse error) is logged and the remaining files are still
    processed.

    Args:
        data: A valid provider configuration
        directory: Directory to search
        pattern: Glob pattern for file names
        recursive: Also search subdirectories
        backup: Copy each modified file to ``<file>.bak`` before rewriting it
        options: File option registry, the default JSON/XML/raw one if omitted

    Returns:
        The files which were rewritten, in processing order
    """
    data.check_configuration_is_valid()

    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")

    registry = options if options is not None else FileProtectOptionRegistry()
    grammar = data.grammar
    protect_function = grammar.protect_function(data.require_provider())

    candidates = directory.rglob(pattern) if recursive else directory.glob(pattern)
    modified: list[Path] = []

    for path in sorted(candidates):
        if not path.is_file() or path.name.endswith(BACKUP_SUFFIX):
            continue

        option = registry.find_option_for_file(path)
        if option is None:
            logger.debug(f"No file protect option for {path}, skipping")
            continue

        try:
            raw_text = path.read_text(encoding="utf-8")
            protected_text = option.processor.protect_file(
                raw_text, grammar.protect_regex, protect_function
            )
            if protected_text == raw_text:
                logger.debug(f"Nothing to protect in {path}")
                continue

            if backup:
                shutil.copyfile(path, path.with_name(path.name + BACKUP_SUFFIX))
            path.write_text(protected_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError, ValueError, ET.ParseError) as e:
            logger.error(f"Failed to protect file {path}: {e}")
            continue

        logger.debug(f"Protected file {path} with {option.processor.name} processor")
        modified.append(path)

    logger.info(f"Protected {len(modified)} file(s) in {directory}")
    return modified
