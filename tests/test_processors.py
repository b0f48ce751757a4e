"""
Tests for protected_config.processors.
"""

import json
import re
import xml.etree.ElementTree as ET
from unittest.mock import patch

import pytest

from protected_config.grammar import TokenGrammar
from protected_config.processors import (
    FileProtectOption,
    FileProtectOptionRegistry,
    JsonFileProtectProcessor,
    JsonWithCommentsFileProtectProcessor,
    RawFileProtectProcessor,
    XmlFileProtectProcessor,
    detect_json_indent,
)
from protected_config.providers import ChainedProtectProvider, PassthroughProtectProvider


@pytest.fixture
def grammar():
    return TokenGrammar()


@pytest.fixture
def protect(grammar):
    return grammar.protect_function(PassthroughProtectProvider())


@pytest.fixture
def protect_reversed(grammar):
    """Protect function whose ciphertext is the reversed plaintext."""
    provider = ChainedProtectProvider(PassthroughProtectProvider(), lambda s: s[::-1], lambda s: s[::-1])
    return grammar.protect_function(provider)


class TestRawFileProtectProcessor:
    """Test the whole-text processor."""

    def test_protects_whole_text(self, grammar, protect):
        text = "user=Protect:{sa}\npassword=Protect:{pwd}\n"
        result = RawFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        assert result == "user=Protected:{sa}\npassword=Protected:{pwd}\n"

    def test_no_match_returns_same_text(self, grammar, protect):
        text = "nothing here"
        assert RawFileProtectProcessor().protect_file(text, grammar.protect_regex, protect) is text


class TestJsonFileProtectProcessor:
    """Test the structural JSON processor."""

    def test_string_leaves_protected(self, grammar, protect):
        text = json.dumps(
            {
                "Protect:{key}": "Protect:{value}",
                "nested": {"list": ["Protect:{a}", 1, True, None, {"deep": "Protect:{b}"}]},
                "number": 5,
                "plain": "text",
            },
            indent=2,
        )
        result = JsonFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        document = json.loads(result)

        assert document == {
            "Protect:{key}": "Protected:{value}",
            "nested": {"list": ["Protected:{a}", 1, True, None, {"deep": "Protected:{b}"}]},
            "number": 5,
            "plain": "text",
        }

    def test_no_match_returns_original_text(self, grammar, protect):
        text = '{ "a" :   "b",\n\n   "c": [1,2] }'
        assert JsonFileProtectProcessor().protect_file(text, grammar.protect_regex, protect) is text

    def test_indentation_and_trailing_newline_kept(self, grammar, protect):
        text = '{\n    "a": "Protect:{x}",\n    "b": {\n        "c": 1\n    }\n}\n'
        result = JsonFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        assert result == '{\n    "a": "Protected:{x}",\n    "b": {\n        "c": 1\n    }\n}\n'

    def test_non_ascii_not_escaped(self, grammar, protect):
        text = '{"a": "Protect:{héllo}", "b": "wörld"}'
        result = JsonFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        assert "Protected:{héllo}" in result
        assert "wörld" in result

    def test_escaped_characters_are_decoded(self, grammar, protect_reversed):
        """Test that the protect function sees the decoded string."""
        text = '{"a": "Protect:{x\\"y}"}'
        result = JsonFileProtectProcessor().protect_file(text, grammar.protect_regex, protect_reversed)
        assert json.loads(result) == {"a": 'Protected:{y"x}'}

    def test_invalid_json_raises(self, grammar, protect):
        with pytest.raises(ValueError):
            JsonFileProtectProcessor().protect_file("{not json", grammar.protect_regex, protect)

    @pytest.mark.parametrize(
        "text,expected",
        [
            ('{"a": 1}', 2),
            ('{\n    "a": 1\n}', 4),
            ('{\n\t"a": 1\n}', "\t"),
        ],
    )
    def test_detect_indent(self, text, expected):
        assert detect_json_indent(text) == expected


class TestJsonWithCommentsFileProtectProcessor:
    """Test the textual JSON processor."""

    def test_comments_and_formatting_kept(self, grammar, protect):
        text = (
            "{\n"
            "  // database settings\n"
            '  "password":   "Protect:{pwd}",  /* inline */\n'
            '  "user": "sa"\n'
            "}\n"
        )
        result = JsonWithCommentsFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        assert result == text.replace("Protect:{pwd}", "Protected:{pwd}")

    def test_escapes_round_trip(self, grammar, protect_reversed):
        text = '{"a": "Protect:{x\\"y}"}'
        result = JsonWithCommentsFileProtectProcessor().protect_file(
            text, grammar.protect_regex, protect_reversed
        )
        assert result == '{"a": "Protected:{y\\"x}"}'
        assert json.loads(result) == {"a": 'Protected:{y"x}'}


XML_TEXT = """<?xml version="1.0" encoding="utf-8"?>
<!-- settings -->
<configuration>
  <!-- database -->
  <database password="Protect:{pwd}" host="localhost">
    <user>Protect:{admin}</user>
    <timeout>30</timeout>
  </database>
</configuration>
"""


class TestXmlFileProtectProcessor:
    """Test the structural XML processor."""

    def test_attributes_and_leaf_text(self, grammar, protect):
        result = XmlFileProtectProcessor().protect_file(XML_TEXT, grammar.protect_regex, protect)

        assert 'password="Protected:{pwd}"' in result
        assert 'host="localhost"' in result
        assert "<user>Protected:{admin}</user>" in result
        assert "<timeout>30</timeout>" in result

    def test_prolog_and_comments_kept(self, grammar, protect):
        result = XmlFileProtectProcessor().protect_file(XML_TEXT, grammar.protect_regex, protect)

        assert result.startswith('<?xml version="1.0" encoding="utf-8"?>\n<!-- settings -->\n<configuration>')
        assert "<!-- database -->" in result
        assert result.endswith("</configuration>\n")

    def test_parent_text_not_considered(self, grammar, protect):
        text = "<root>Protect:{mixed}<child>plain</child></root>"
        assert XmlFileProtectProcessor().protect_file(text, grammar.protect_regex, protect) is text

    def test_no_match_returns_original_text(self, grammar, protect):
        text = "<root>\n  <a   b='c'/>\n</root>"
        assert XmlFileProtectProcessor().protect_file(text, grammar.protect_regex, protect) is text

    def test_text_after_comment(self, grammar, protect):
        text = "<root><a><!-- note -->Protect:{t}</a><b>Protect:{u}<?pi data?>Protect:{v}</b></root>"
        result = XmlFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        assert result == (
            "<root><a><!-- note -->Protected:{t}</a>"
            "<b>Protected:{u}<?pi data?>Protected:{v}</b></root>"
        )

    def test_content_after_root_kept(self, grammar, protect):
        text = "<root><a>Protect:{t}</a></root>\n<!-- keep me -->\n<?after x?>\n"
        result = XmlFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)
        assert result == "<root><a>Protected:{t}</a></root>\n<!-- keep me -->\n<?after x?>\n"

    def test_namespace_prefixes_kept(self, grammar, protect):
        text = '<c:configuration xmlns:c="urn:cfg"><c:db c:password="Protect:{p}">Protect:{u}</c:db></c:configuration>'
        with patch.object(ET, "register_namespace") as register_namespace:
            result = XmlFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)

        register_namespace.assert_not_called()
        assert result == text.replace("Protect:", "Protected:")

    def test_default_namespace_kept(self, grammar, protect):
        text = '<configuration xmlns="urn:app"><db password="Protect:{p}" /></configuration>'
        result = XmlFileProtectProcessor().protect_file(text, grammar.protect_regex, protect)

        assert result == text.replace("Protect:", "Protected:")
        assert ET.fromstring(result).tag == "{urn:app}configuration"

    def test_invalid_xml_raises(self, grammar, protect):
        with pytest.raises(SyntaxError):
            XmlFileProtectProcessor().protect_file("<root>", grammar.protect_regex, protect)


class TestFileProtectOptionRegistry:
    """Test processor selection by file name."""

    def test_default_options(self):
        registry = FileProtectOptionRegistry()
        assert isinstance(registry.find_option_for_file("appsettings.json").processor, JsonFileProtectProcessor)
        assert isinstance(registry.find_option_for_file("App.Config.XML").processor, XmlFileProtectProcessor)
        assert isinstance(registry.find_option_for_file("settings.ini").processor, RawFileProtectProcessor)
        assert len(registry) == 3

    def test_use_json_with_comments(self):
        registry = FileProtectOptionRegistry().use_json_with_comments()
        processor = registry.find_option_for_file("appsettings.json").processor
        assert isinstance(processor, JsonWithCommentsFileProtectProcessor)
        assert isinstance(registry.find_option_for_file("a.xml").processor, XmlFileProtectProcessor)

    def test_register_first(self):
        registry = FileProtectOptionRegistry()
        registry.register(FileProtectOption.for_pattern(r"\.secret\.json$", RawFileProtectProcessor()))

        assert registry.find_option_for_file("db.secret.json").processor.name == "raw"
        assert registry.find_option_for_file("db.json").processor.name == "json"

    def test_empty_registry(self):
        registry = FileProtectOptionRegistry([])
        assert registry.find_option_for_file("a.json") is None

    def test_option_matches_file_name_only(self):
        option = FileProtectOption(re.compile(r"^config"), RawFileProtectProcessor())
        assert option.matches("/srv/app/config.ini")
        assert not option.matches("/srv/config/app.ini")
