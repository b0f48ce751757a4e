"""
File protect processors.

A processor rewrites the text of one configuration file so that every value
matching the protect regex is passed through a protect function. Processors
are selected per file by a ``FileProtectOptionRegistry``: the first option
whose filename pattern matches wins.

Default options, in order:

- ``*.json``: ``JsonFileProtectProcessor``
- ``*.xml``: ``XmlFileProtectProcessor``
- anything else: ``RawFileProtectProcessor``
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

ProtectFunction = Callable[[str], str]


class FileProtectProcessor(ABC):
    """Rewrites the text of one file, protecting matching values."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def protect_file(
        self, raw_text: str, protect_regex: re.Pattern[str], protect_function: ProtectFunction
    ) -> str:
        """Return the rewritten text, or ``raw_text`` itself if nothing matched."""
        pass


class RawFileProtectProcessor(FileProtectProcessor):
    """Treats the whole file as one string."""

    @property
    def name(self) -> str:
        return "raw"

    def protect_file(
        self, raw_text: str, protect_regex: re.Pattern[str], protect_function: ProtectFunction
    ) -> str:
        if protect_regex.search(raw_text):
            return protect_function(raw_text)
        return raw_text


_JSON_INDENT = re.compile(r"\n([ \t]+)\S")


def detect_json_indent(raw_text: str) -> int | str:
    """Indentation of the first indented line, 2 when there is none."""
    match = _JSON_INDENT.search(raw_text)
    if match is None:
        return 2
    indent = match.group(1)
    if "\t" in indent:
        return indent
    return len(indent)


def _string_leaves(node: Any) -> Iterator[tuple[Any, Any, str]]:
    """Yield ``(container, key, value)`` for every string leaf, depth first."""
    if isinstance(node, dict):
        items: Iterable[tuple[Any, Any]] = node.items()
    elif isinstance(node, list):
        items = enumerate(node)
    else:
        return

    for key, value in items:
        if isinstance(value, str):
            yield node, key, value
        else:
            yield from _string_leaves(value)


class JsonFileProtectProcessor(FileProtectProcessor):
    """Structural JSON rewrite.

    Only string values (object members and array elements) are considered;
    property names never are. The document is re-serialised with its detected
    indentation, so comments and original formatting details are lost.
    """

    @property
    def name(self) -> str:
        return "json"

    def protect_file(
        self, raw_text: str, protect_regex: re.Pattern[str], protect_function: ProtectFunction
    ) -> str:
        document = json.loads(raw_text)

        # Snapshot first: containers are mutated while replacing.
        matching = [
            (container, key, value)
            for container, key, value in _string_leaves(document)
            if protect_regex.search(value)
        ]
        if not matching:
            return raw_text

        for container, key, value in matching:
            container[key] = protect_function(value)

        text = json.dumps(document, indent=detect_json_indent(raw_text), ensure_ascii=False)
        if raw_text.endswith("\n"):
            text += "\n"
        return text


class JsonWithCommentsFileProtectProcessor(FileProtectProcessor):
    """Textual JSON rewrite that keeps comments and formatting intact.

    The regex runs over the raw file text. Each match is decoded as JSON string
    content, protected, and encoded back, so escapes stay valid. Text outside
    matches is left byte for byte.
    """

    @property
    def name(self) -> str:
        return "json-with-comments"

    def protect_file(
        self, raw_text: str, protect_regex: re.Pattern[str], protect_function: ProtectFunction
    ) -> str:
        def _replace(match: re.Match[str]) -> str:
            raw = match.group(0)
            try:
                decoded = json.loads(f'"{raw}"')
            except ValueError:
                logger.debug(f"Skipping token at offset {match.start()}: not valid JSON string content")
                return raw
            return json.dumps(protect_function(decoded), ensure_ascii=False)[1:-1]

        return protect_regex.sub(_replace, raw_text)


_XML_COMMENT = r"<!--(?:(?!-->).)*-->"
_XML_PI = r"<\?(?:(?!\?>).)*\?>"

_XML_PROLOG = re.compile(
    rf"\A(?:\s*(?:{_XML_PI}|{_XML_COMMENT}|<!DOCTYPE[^>\[]*(?:\[.*?\])?\s*>))*\s*", re.DOTALL
)
_XML_EPILOG = re.compile(rf"(?:\s*(?:{_XML_PI}|{_XML_COMMENT}))*\s*\Z", re.DOTALL)

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"


def _is_element(node: ET.Element) -> bool:
    return isinstance(node.tag, str)


def _protect_text(
    text: str | None, protect_regex: re.Pattern[str], protect_function: ProtectFunction
) -> str | None:
    if text and protect_regex.search(text):
        return protect_function(text)
    return text


def _namespace_prefixes(raw_text: str) -> dict[str, str]:
    """Map each namespace URI of the document to the prefix it was declared with."""
    prefixes: dict[str, str] = {XML_NAMESPACE: "xml"}
    used = set(prefixes.values())
    for _, (prefix, uri) in ET.iterparse(StringIO(raw_text), events=("start-ns",)):
        if uri in prefixes:
            continue
        if prefix in used:
            # same prefix rebound to another URI deeper in the document
            prefix = f"ns{len(prefixes)}"
        prefixes[uri] = prefix
        used.add(prefix)
    return prefixes


def _qualified_name(name: str, prefixes: dict[str, str]) -> str:
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    prefix = prefixes[uri]
    return f"{prefix}:{local}" if prefix else local


def _apply_prefixes(root: ET.Element, prefixes: dict[str, str]) -> None:
    """Rewrite ``{uri}name`` tags and attributes with the document's own prefixes.

    The serializer writes such names as they are, so nothing is registered in
    ElementTree's process-wide namespace map.
    """
    for element in root.iter():
        if not _is_element(element):
            continue
        element.tag = _qualified_name(element.tag, prefixes)
        if any(name.startswith("{") for name in element.attrib):
            attributes = {_qualified_name(name, prefixes): value for name, value in element.attrib.items()}
            element.attrib.clear()
            element.attrib.update(attributes)

    for uri, prefix in prefixes.items():
        if uri != XML_NAMESPACE:
            root.set(f"xmlns:{prefix}" if prefix else "xmlns", uri)


class XmlFileProtectProcessor(FileProtectProcessor):
    """Structural XML rewrite.

    Attribute values of every element and the text of elements without child
    elements are considered. Text split around comments or processing
    instructions is protected piece by piece. Comments, processing
    instructions, namespace prefixes and everything around the root element
    (declaration, doctype, trailing comments) are preserved.
    """

    @property
    def name(self) -> str:
        return "xml"

    def protect_file(
        self, raw_text: str, protect_regex: re.Pattern[str], protect_function: ProtectFunction
    ) -> str:
        parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
        root = ET.fromstring(raw_text, parser=parser)

        changed = False
        for element in root.iter():
            if not _is_element(element):
                continue

            for attribute, value in element.attrib.items():
                if protect_regex.search(value):
                    element.set(attribute, protect_function(value))
                    changed = True

            if any(_is_element(child) for child in element):
                continue

            # with comments kept, text following a comment or PI is its tail
            for node, field in [(element, "text"), *((child, "tail") for child in element)]:
                value = getattr(node, field)
                protected = _protect_text(value, protect_regex, protect_function)
                if protected is not value:
                    setattr(node, field, protected)
                    changed = True

        if not changed:
            return raw_text

        _apply_prefixes(root, _namespace_prefixes(raw_text))
        root.tail = None

        prolog_match = _XML_PROLOG.match(raw_text)
        prolog = prolog_match.group(0) if prolog_match else ""
        epilog_match = _XML_EPILOG.search(raw_text, len(prolog))
        epilog = epilog_match.group(0) if epilog_match else ""
        return prolog + ET.tostring(root, encoding="unicode") + epilog


@dataclass(frozen=True)
class FileProtectOption:
    """Associates a filename pattern with a processor."""

    filename_pattern: re.Pattern[str]
    processor: FileProtectProcessor

    @classmethod
    def for_pattern(cls, pattern: str, processor: FileProtectProcessor) -> "FileProtectOption":
        return cls(re.compile(pattern, re.IGNORECASE), processor)

    def matches(self, path: str | Path) -> bool:
        return self.filename_pattern.search(Path(path).name) is not None


JSON_FILENAME_PATTERN = r"\.json$"
XML_FILENAME_PATTERN = r"\.xml$"
ANY_FILENAME_PATTERN = r".*"


def default_file_protect_options() -> list[FileProtectOption]:
    return [
        FileProtectOption.for_pattern(JSON_FILENAME_PATTERN, JsonFileProtectProcessor()),
        FileProtectOption.for_pattern(XML_FILENAME_PATTERN, XmlFileProtectProcessor()),
        FileProtectOption.for_pattern(ANY_FILENAME_PATTERN, RawFileProtectProcessor()),
    ]


class FileProtectOptionRegistry:
    """Ordered list of file protect options; the first match wins."""

    def __init__(self, options: Iterable[FileProtectOption] | None = None):
        self._options = list(options) if options is not None else default_file_protect_options()

    def register(self, option: FileProtectOption, first: bool = True) -> None:
        """Register an option, by default ahead of the existing ones."""
        if first:
            self._options.insert(0, option)
        else:
            self._options.append(option)
        logger.debug(
            f"Registered file protect option {option.filename_pattern.pattern!r} -> "
            f"{option.processor.name}"
        )

    def find_option_for_file(self, path: str | Path) -> FileProtectOption | None:
        for option in self._options:
            if option.matches(path):
                return option
        return None

    def use_json_with_comments(self) -> "FileProtectOptionRegistry":
        """Replace the JSON processor by the comment-preserving textual one."""
        replacement = JsonWithCommentsFileProtectProcessor()
        self._options = [
            FileProtectOption(option.filename_pattern, replacement)
            if isinstance(option.processor, JsonFileProtectProcessor)
            else option
            for option in self._options
        ]
        return self

    def list_options(self) -> list[FileProtectOption]:
        return list(self._options)

    def __iter__(self) -> Iterator[FileProtectOption]:
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)
