"""
Tokenization grammar for protected configuration values.

A grammar is made of three parts:

- a *protect* regex matching plaintext tokens which must be encrypted,
  capturing the data in a group named ``protectData``;
- a *protected* regex matching ciphertext tokens which must be decrypted,
  capturing the data in a group named ``protectedData``;
- a *replacement template* producing the protected token from the encrypted
  data, referencing ``${protectedData}`` and optionally ``${subPurposePattern}``.

Both regexes may capture an optional ``subPurposePattern`` segment containing a
``subPurpose`` group. When a token carries a sub-purpose, the provider used for
that single match is derived from the root provider with
``derive_sub_provider(subPurpose)`` and the whole segment is echoed back into
the protected token, so that decryption follows the same derivation path.

Default wire format::

    Protect:{<data>}                  ->  Protected:{<ciphertext>}
    Protect:{<subpurpose>}:{<data>}   ->  Protected:{<subpurpose>}:{<ciphertext>}

Patterns written with .NET named groups (``(?<name>...)``) are accepted and
normalised to Python syntax (``(?P<name>...)``).
"""

import logging
import re
from collections.abc import Callable
from string import Template

from .errors import ConfigurationShapeError
from .providers.base import ProtectProvider

logger = logging.getLogger(__name__)

PROTECT_DATA_GROUP = "protectData"
PROTECTED_DATA_GROUP = "protectedData"
SUB_PURPOSE_PATTERN_GROUP = "subPurposePattern"
SUB_PURPOSE_GROUP = "subPurpose"

DEFAULT_PROTECT_REGEX_STRING = (
    r"Protect(?P<subPurposePattern>(:{(?P<subPurpose>[^:{}]+)})?):{(?P<protectData>.+?)}"
)
DEFAULT_PROTECTED_REGEX_STRING = (
    r"Protected(?P<subPurposePattern>(:{(?P<subPurpose>[^:{}]+)})?):{(?P<protectedData>.+?)}"
)
DEFAULT_PROTECTED_REPLACE_STRING = "Protected${subPurposePattern}:{${protectedData}}"

_TEMPLATE_PLACEHOLDERS = frozenset({SUB_PURPOSE_PATTERN_GROUP, PROTECTED_DATA_GROUP})

# (?<name> but not the (?<= and (?<! lookbehinds
_DOTNET_NAMED_GROUP = re.compile(r"\(\?<(?![=!])")

PatternLike = str | re.Pattern[str]


def normalize_pattern(pattern: str) -> str:
    """Convert .NET style named groups into Python named groups."""
    return _DOTNET_NAMED_GROUP.sub("(?P<", pattern)


def compile_grammar_regex(pattern: PatternLike, required_group: str) -> re.Pattern[str]:
    """Compile a grammar regex and check that it defines ``required_group``.

    Raises:
        ConfigurationShapeError: If the pattern does not compile or lacks the group
    """
    if isinstance(pattern, re.Pattern):
        compiled = pattern
    else:
        if not pattern:
            raise ConfigurationShapeError("Grammar regex must not be empty")
        try:
            compiled = re.compile(normalize_pattern(pattern))
        except re.error as e:
            raise ConfigurationShapeError(f"Invalid grammar regex '{pattern}': {e}") from e

    if required_group not in compiled.groupindex:
        raise ConfigurationShapeError(f"Regex must contain a group named {required_group}!")

    return compiled


def compile_replace_template(template: str) -> Template:
    """Validate a replacement template and return it as a ``string.Template``.

    The template must reference ``${protectedData}`` and may only reference the
    ``protectedData`` and ``subPurposePattern`` placeholders.

    Raises:
        ConfigurationShapeError: If the template is empty or malformed
    """
    if not template:
        raise ConfigurationShapeError("Replacement template must not be empty")

    compiled = Template(template)
    identifiers = set()
    for match in compiled.pattern.finditer(template):
        if match.group("invalid") is not None:
            raise ConfigurationShapeError(
                f"Invalid placeholder in replacement template '{template}' "
                f"at position {match.start('invalid')}"
            )
        name = match.group("named") or match.group("braced")
        if name:
            identifiers.add(name)

    unknown = identifiers - _TEMPLATE_PLACEHOLDERS
    if unknown:
        raise ConfigurationShapeError(
            f"Replacement template references unknown placeholders: {', '.join(sorted(unknown))}"
        )
    if PROTECTED_DATA_GROUP not in identifiers:
        raise ConfigurationShapeError(
            f"Replacement template must contain the placeholder ${{{PROTECTED_DATA_GROUP}}}!"
        )

    return compiled


def _group(match: re.Match[str], name: str) -> str:
    if name not in match.re.groupindex:
        return ""
    return match.group(name) or ""


class TokenGrammar:
    """An immutable, validated pair of token regexes plus replacement template."""

    __slots__ = ("_protect_regex", "_protected_regex", "_protected_replace", "_template")

    def __init__(
        self,
        protect_regex: PatternLike | None = None,
        protected_regex: PatternLike | None = None,
        protected_replace: str | None = None,
    ):
        self._protect_regex = compile_grammar_regex(
            protect_regex or DEFAULT_PROTECT_REGEX_STRING, PROTECT_DATA_GROUP
        )
        self._protected_regex = compile_grammar_regex(
            protected_regex or DEFAULT_PROTECTED_REGEX_STRING, PROTECTED_DATA_GROUP
        )
        self._protected_replace = protected_replace or DEFAULT_PROTECTED_REPLACE_STRING
        self._template = compile_replace_template(self._protected_replace)

    @property
    def protect_regex(self) -> re.Pattern[str]:
        return self._protect_regex

    @property
    def protected_regex(self) -> re.Pattern[str]:
        return self._protected_regex

    @property
    def protected_replace(self) -> str:
        return self._protected_replace

    def is_protectable(self, value: str | None) -> bool:
        """Check whether ``value`` contains at least one plaintext token."""
        return bool(value) and self._protect_regex.search(value) is not None

    def is_protected(self, value: str | None) -> bool:
        """Check whether ``value`` contains at least one ciphertext token."""
        return bool(value) and self._protected_regex.search(value) is not None

    def protect(self, value: str, provider: ProtectProvider) -> str:
        """Encrypt every plaintext token in ``value``.

        Text outside tokens is returned unchanged. Each token carrying a
        sub-purpose is encrypted with a provider derived for that token only.
        """

        def _replace(match: re.Match[str]) -> str:
            token_provider = self._provider_for(match, provider)
            return self._template.substitute(
                {
                    SUB_PURPOSE_PATTERN_GROUP: _group(match, SUB_PURPOSE_PATTERN_GROUP),
                    PROTECTED_DATA_GROUP: token_provider.encrypt(match.group(PROTECT_DATA_GROUP)),
                }
            )

        return self._protect_regex.sub(_replace, value)

    def unprotect(self, value: str, provider: ProtectProvider) -> str:
        """Decrypt every ciphertext token in ``value``."""

        def _replace(match: re.Match[str]) -> str:
            token_provider = self._provider_for(match, provider)
            return token_provider.decrypt(match.group(PROTECTED_DATA_GROUP))

        return self._protected_regex.sub(_replace, value)

    def protect_function(self, provider: ProtectProvider) -> Callable[[str], str]:
        """Return ``protect`` bound to ``provider`` (the shape file processors expect)."""
        return lambda value: self.protect(value, provider)

    @staticmethod
    def _provider_for(match: re.Match[str], provider: ProtectProvider) -> ProtectProvider:
        sub_purpose = _group(match, SUB_PURPOSE_GROUP)
        if sub_purpose:
            return provider.derive_sub_provider(sub_purpose)
        return provider

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenGrammar):
            return NotImplemented
        return (
            self._protect_regex.pattern == other._protect_regex.pattern
            and self._protected_regex.pattern == other._protected_regex.pattern
            and self._protected_replace == other._protected_replace
        )

    def __hash__(self) -> int:
        return hash(
            (self._protect_regex.pattern, self._protected_regex.pattern, self._protected_replace)
        )

    def __repr__(self) -> str:
        return (
            f"TokenGrammar(protect={self._protect_regex.pattern!r}, "
            f"protected={self._protected_regex.pattern!r}, "
            f"replace={self._protected_replace!r})"
        )
