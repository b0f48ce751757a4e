"""
Provider configuration data.

``ProtectProviderConfigurationData`` groups everything needed to transform
configuration values: the protect regex, the protected regex, the replacement
template and the bound protect provider.

Instances are immutable. Any field may be left as ``None``: a per-source
override usually sets only the fields it wants to change and is combined with
the global configuration by :func:`merge`. Only a *valid* instance (all four
fields present) can be used to transform data; trying to use an invalid one
raises ``ConfigurationShapeError``.
"""

import logging
import re
from dataclasses import dataclass
from functools import cached_property

from .errors import ConfigurationShapeError
from .grammar import (
    DEFAULT_PROTECT_REGEX_STRING,
    DEFAULT_PROTECTED_REGEX_STRING,
    DEFAULT_PROTECTED_REPLACE_STRING,
    PROTECT_DATA_GROUP,
    PROTECTED_DATA_GROUP,
    PatternLike,
    TokenGrammar,
    compile_grammar_regex,
    compile_replace_template,
)
from .providers import (
    FernetProtectProvider,
    PassthroughProtectProvider,
    ProtectProvider,
    key_number_purpose,
    string_purpose,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProtectProviderConfigurationData:
    """Grammar plus provider, validated at construction.

    Attributes:
        protect_regex: Regex matching plaintext tokens (group ``protectData``)
        protected_regex: Regex matching ciphertext tokens (group ``protectedData``)
        protected_replace: Template producing ciphertext tokens
        provider: The protect provider performing encryption/decryption

    Example:
        >>> data = ProtectProviderConfigurationData.with_defaults(PassthroughProtectProvider())
        >>> data.protect_value("Protect:{hello}")
        'Protected:{hello}'
    """

    protect_regex: PatternLike | None = None
    protected_regex: PatternLike | None = None
    protected_replace: str | None = None
    provider: ProtectProvider | None = None

    def __post_init__(self) -> None:
        if self.protect_regex is not None:
            object.__setattr__(
                self,
                "protect_regex",
                compile_grammar_regex(self.protect_regex, PROTECT_DATA_GROUP),
            )

        if self.protected_regex is not None:
            object.__setattr__(
                self,
                "protected_regex",
                compile_grammar_regex(self.protected_regex, PROTECTED_DATA_GROUP),
            )

        if not self.protected_replace:
            object.__setattr__(self, "protected_replace", None)
        else:
            compile_replace_template(self.protected_replace)

        if self.provider is not None and not isinstance(self.provider, ProtectProvider):
            raise ConfigurationShapeError(
                f"provider must be a ProtectProvider, got {type(self.provider).__name__}"
            )

    @classmethod
    def with_defaults(
        cls,
        provider: ProtectProvider,
        protect_regex: PatternLike | None = None,
        protected_regex: PatternLike | None = None,
        protected_replace: str | None = None,
    ) -> "ProtectProviderConfigurationData":
        """Create a complete configuration, using the default grammar where not given."""
        return cls(
            protect_regex=protect_regex or DEFAULT_PROTECT_REGEX_STRING,
            protected_regex=protected_regex or DEFAULT_PROTECTED_REGEX_STRING,
            protected_replace=protected_replace or DEFAULT_PROTECTED_REPLACE_STRING,
            provider=provider,
        )

    def missing_fields(self) -> list[str]:
        """Return the names of the fields which are not set."""
        return [
            name
            for name in ("protect_regex", "protected_regex", "protected_replace", "provider")
            if getattr(self, name) is None
        ]

    @property
    def is_valid(self) -> bool:
        return not self.missing_fields()

    def check_configuration_is_valid(self) -> None:
        """Raise ``ConfigurationShapeError`` unless every field is set."""
        missing = self.missing_fields()
        if missing:
            raise ConfigurationShapeError(
                f"Protect provider configuration is incomplete, missing: {', '.join(missing)}"
            )

    @cached_property
    def grammar(self) -> TokenGrammar:
        self.check_configuration_is_valid()
        return TokenGrammar(self.protect_regex, self.protected_regex, self.protected_replace)

    def require_provider(self) -> ProtectProvider:
        self.check_configuration_is_valid()
        assert self.provider is not None
        return self.provider

    def protect_value(self, value: str) -> str:
        """Encrypt every plaintext token in ``value``."""
        return self.grammar.protect(value, self.require_provider())

    def unprotect_value(self, value: str) -> str:
        """Decrypt every ciphertext token in ``value``."""
        return self.grammar.unprotect(value, self.require_provider())

    @staticmethod
    def merge(
        global_data: "ProtectProviderConfigurationData | None",
        local_data: "ProtectProviderConfigurationData | None",
    ) -> "ProtectProviderConfigurationData | None":
        return merge(global_data, local_data)


def merge(
    global_data: ProtectProviderConfigurationData | None,
    local_data: ProtectProviderConfigurationData | None,
) -> ProtectProviderConfigurationData | None:
    """Combine global and per-source configuration; local fields win.

    Neither input is modified. The result is not required to be valid; callers
    decide what to do with an incomplete result.
    """
    if local_data is None:
        return global_data

    if global_data is None:
        return local_data

    def _pick(name: str) -> object:
        local_value = getattr(local_data, name)
        return local_value if local_value is not None else getattr(global_data, name)

    return ProtectProviderConfigurationData(
        protect_regex=_pick("protect_regex"),  # type: ignore[arg-type]
        protected_regex=_pick("protected_regex"),  # type: ignore[arg-type]
        protected_replace=_pick("protected_replace"),  # type: ignore[arg-type]
        provider=_pick("provider"),  # type: ignore[arg-type]
    )


def passthrough_configuration_data(
    protect_regex: PatternLike | None = None,
    protected_regex: PatternLike | None = None,
    protected_replace: str | None = None,
) -> ProtectProviderConfigurationData:
    """Complete configuration bound to a ``PassthroughProtectProvider``."""
    return ProtectProviderConfigurationData.with_defaults(
        PassthroughProtectProvider(), protect_regex, protected_regex, protected_replace
    )


def fernet_configuration_data(
    master_key: str | bytes,
    key_number: int = 1,
    purpose: str | None = None,
    protect_regex: PatternLike | None = None,
    protected_regex: PatternLike | None = None,
    protected_replace: str | None = None,
) -> ProtectProviderConfigurationData:
    """Complete configuration bound to a ``FernetProtectProvider``.

    Args:
        master_key: The master key material
        key_number: Selects the ``ProtectedConfigurationBuilder.Key{n}`` purpose
        purpose: Custom purpose string; takes precedence over ``key_number``
    """
    root_purpose = string_purpose(purpose) if purpose else key_number_purpose(key_number)
    return ProtectProviderConfigurationData.with_defaults(
        FernetProtectProvider(master_key, root_purpose),
        protect_regex,
        protected_regex,
        protected_replace,
    )


def describe(data: ProtectProviderConfigurationData | None) -> str:
    """Short description used in log messages (never includes key material)."""
    if data is None:
        return "<none>"
    pattern = data.protected_regex.pattern if isinstance(data.protected_regex, re.Pattern) else None
    return f"provider={data.provider!r}, protected_regex={pattern!r}"
