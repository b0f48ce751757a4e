"""
File based configuration providers (JSON, YAML, XML).

A file provider re-reads its file on ``load()``. When created with
``reload_on_change=True`` it also compares the file modification time on
``check_for_changes()`` and, if the file changed, reloads and fires its
reload token. ``check_for_changes`` can be called directly or driven by a
``FileChangePoller``.
"""

import json
import logging
import xml.etree.ElementTree as ET
from abc import abstractmethod
from collections import Counter
from pathlib import Path
from typing import Any

import yaml

from .base import KEY_DELIMITER, ConfigurationBuilderLike, ConfigurationSource
from .providers import DictConfigurationProvider, flatten
from .watch import FileChangePoller

logger = logging.getLogger(__name__)


class FileConfigurationProvider(DictConfigurationProvider):
    """Base class for providers loading a single file."""

    def __init__(
        self,
        path: str | Path,
        optional: bool = False,
        reload_on_change: bool = False,
        poll_interval: float | None = None,
    ):
        super().__init__()
        self.path = Path(path)
        self.optional = optional
        self.reload_on_change = reload_on_change
        self._last_mtime: float | None = None
        self._poller: FileChangePoller | None = None
        if reload_on_change and poll_interval is not None:
            self._poller = FileChangePoller([self], interval=poll_interval)
            self._poller.start()

    def _current_mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except FileNotFoundError:
            return None

    def load(self) -> None:
        mtime = self._current_mtime()
        if mtime is None:
            if not self.optional:
                raise FileNotFoundError(f"Configuration file not found: {self.path}")
            logger.debug(f"Optional configuration file not found: {self.path}")
            self.data = {}
        else:
            text = self.path.read_text(encoding="utf-8")
            try:
                self.data = self.parse(text)
            except (ValueError, yaml.YAMLError, ET.ParseError) as e:
                raise ValueError(f"Failed to parse configuration file {self.path}: {e}") from e
        self._last_mtime = mtime

    def reload(self) -> None:
        """Load the file again and notify listeners."""
        self.load()
        self.on_reload()

    def check_for_changes(self) -> bool:
        """Reload if the file's modification time changed since the last load."""
        if not self.reload_on_change:
            return False

        mtime = self._current_mtime()
        if mtime == self._last_mtime:
            return False

        logger.info(f"Configuration file changed: {self.path}")
        self.reload()
        return True

    def close(self) -> None:
        if self._poller is not None:
            self._poller.stop()
            self._poller = None

    @abstractmethod
    def parse(self, text: str) -> dict[str, str | None]:
        """Parse file contents into flattened key/value pairs."""
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={str(self.path)!r})"


class JsonConfigurationProvider(FileConfigurationProvider):
    def parse(self, text: str) -> dict[str, str | None]:
        document = json.loads(text) if text.strip() else {}
        if not isinstance(document, dict):
            raise ValueError("top-level JSON value must be an object")
        return flatten(document)


class YamlConfigurationProvider(FileConfigurationProvider):
    def parse(self, text: str) -> dict[str, str | None]:
        document = yaml.safe_load(text)
        if document is None:
            return {}
        if not isinstance(document, dict):
            raise ValueError("top-level YAML value must be a mapping")
        return flatten(document)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _flatten_element(element: ET.Element, prefix: str, data: dict[str, str | None]) -> None:
    for attribute, value in element.attrib.items():
        data[KEY_DELIMITER.join(filter(None, (prefix, _local_name(attribute))))] = value

    children = list(element)
    if not children:
        if element.text is not None and element.text.strip() and prefix:
            data[prefix] = element.text
        return

    counts = Counter(_local_name(child.tag) for child in children)
    indexes: Counter[str] = Counter()
    for child in children:
        name = _local_name(child.tag)
        child_prefix = KEY_DELIMITER.join(filter(None, (prefix, name)))

        name_attribute = child.get("name") or child.get("Name")
        if name_attribute:
            child_prefix = f"{child_prefix}{KEY_DELIMITER}{name_attribute}"
        elif counts[name] > 1:
            child_prefix = f"{child_prefix}{KEY_DELIMITER}{indexes[name]}"
            indexes[name] += 1

        _flatten_element(child, child_prefix, data)


class XmlConfigurationProvider(FileConfigurationProvider):
    """XML provider; the root element name is not part of the keys."""

    def parse(self, text: str) -> dict[str, str | None]:
        root = ET.fromstring(text)
        data: dict[str, str | None] = {}
        _flatten_element(root, "", data)
        return data


class FileConfigurationSource(ConfigurationSource):
    provider_class: type[FileConfigurationProvider]

    def __init__(
        self,
        path: str | Path,
        optional: bool = False,
        reload_on_change: bool = False,
        poll_interval: float | None = None,
    ):
        self.path = Path(path)
        self.optional = optional
        self.reload_on_change = reload_on_change
        self.poll_interval = poll_interval

    def build(self, builder: ConfigurationBuilderLike) -> FileConfigurationProvider:
        base_path = builder.properties.get("base_path")
        path = self.path if base_path is None or self.path.is_absolute() else Path(base_path) / self.path
        return self.provider_class(path, self.optional, self.reload_on_change, self.poll_interval)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(path={str(self.path)!r})"


class JsonConfigurationSource(FileConfigurationSource):
    provider_class = JsonConfigurationProvider


class YamlConfigurationSource(FileConfigurationSource):
    provider_class = YamlConfigurationProvider


class XmlConfigurationSource(FileConfigurationSource):
    provider_class = XmlConfigurationProvider


_SOURCES_BY_SUFFIX: dict[str, type[FileConfigurationSource]] = {
    ".json": JsonConfigurationSource,
    ".yml": YamlConfigurationSource,
    ".yaml": YamlConfigurationSource,
    ".xml": XmlConfigurationSource,
}


def source_for_file(path: str | Path, **kwargs: Any) -> FileConfigurationSource:
    """Pick the file source class from the file suffix."""
    suffix = Path(path).suffix.lower()
    try:
        source_class = _SOURCES_BY_SUFFIX[suffix]
    except KeyError as e:
        raise ValueError(f"Unsupported configuration file type: {path}") from e
    return source_class(path, **kwargs)
