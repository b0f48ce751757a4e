"""
Protected configuration provider.

``ProtectedConfigurationProvider`` decorates any ``ConfigurationProvider``:
reads, writes and key enumeration are forwarded unchanged, but after every
load (and every reload signalled by the wrapped provider) all values
containing ciphertext tokens are decrypted in place.

Example:
    >>> inner = MemoryConfigurationProvider({"db:password": "Protected:{secret}"})
    >>> protected = ProtectedConfigurationProvider(inner, passthrough_configuration_data())
    >>> protected.load()
    >>> protected.try_get("db:password")
    (True, 'secret')
"""

import logging
import threading
from collections.abc import Iterable
from typing import Any

from .configuration import (
    KEY_DELIMITER,
    ConfigurationProvider,
    ReloadToken,
    SupportsDataAccess,
    on_change,
)
from .configuration.tokens import ChangeToken, ChangeTokenRegistration
from .errors import DecryptionError
from .provider_data import ProtectProviderConfigurationData

logger = logging.getLogger(__name__)


class ProtectedConfigurationProvider(ConfigurationProvider):
    """Decrypt-on-load decorator around a configuration provider."""

    def __init__(self, provider: ConfigurationProvider, data: ProtectProviderConfigurationData):
        data.check_configuration_is_valid()
        self._provider = provider
        self._data = data
        self._token_lock = threading.Lock()
        self._reload_token: ReloadToken | None = None
        self._registration: ChangeTokenRegistration | None = None
        self._register_reload_callback()

    @property
    def provider(self) -> ConfigurationProvider:
        """The wrapped provider."""
        return self._provider

    @property
    def configuration_data(self) -> ProtectProviderConfigurationData:
        return self._data

    def _register_reload_callback(self) -> None:
        if self._provider.get_reload_token() is None:
            return

        self._reload_token = ReloadToken()
        self._registration = on_change(self._provider.get_reload_token, self._on_provider_reload)

    def _on_provider_reload(self, _: Any) -> None:
        logger.debug(f"Wrapped provider {self._provider!r} reloaded, decrypting again")
        self.decrypt_all_keys()
        self._on_reload()

    def _on_reload(self) -> None:
        with self._token_lock:
            previous, self._reload_token = self._reload_token, ReloadToken()
        if previous is not None:
            previous.on_reload()

    def load(self) -> None:
        self._provider.load()
        self.decrypt_all_keys()

    def decrypt_all_keys(self) -> int:
        """Decrypt every value of the wrapped provider containing ciphertext tokens.

        Returns:
            The number of keys rewritten

        Raises:
            DecryptionError: If a token cannot be decrypted; keys processed before
                the failing one keep their decrypted value
        """
        if isinstance(self._provider, SupportsDataAccess):
            keys: Iterable[str] = list(self._provider.get_data().keys())
        else:
            keys = list(self._walk_keys(None))

        decrypted = 0
        for key in keys:
            found, value = self._provider.try_get(key)
            if found and value and self._decrypt_key(key, value):
                decrypted += 1

        if decrypted:
            logger.debug(f"Decrypted {decrypted} key(s) in {self._provider!r}")
        return decrypted

    def _walk_keys(self, parent_path: str | None) -> Iterable[str]:
        for child in dict.fromkeys(self._provider.get_child_keys([], parent_path)):
            key = f"{parent_path}{KEY_DELIMITER}{child}" if parent_path else child
            found, _ = self._provider.try_get(key)
            if found:
                yield key
            # a key may hold a value and have children too
            yield from self._walk_keys(key)

    def _decrypt_key(self, key: str, value: str) -> bool:
        grammar = self._data.grammar
        if not grammar.is_protected(value):
            return False

        try:
            plaintext = grammar.unprotect(value, self._data.require_provider())
        except DecryptionError as e:
            raise DecryptionError(f"Failed to decrypt configuration key '{key}': {e}", key=key) from e

        self._provider.set(key, plaintext)
        return True

    def try_get(self, key: str) -> tuple[bool, str | None]:
        return self._provider.try_get(key)

    def set(self, key: str, value: str | None) -> None:
        self._provider.set(key, value)

    def get_child_keys(self, earlier_keys: Iterable[str], parent_path: str | None) -> list[str]:
        return self._provider.get_child_keys(earlier_keys, parent_path)

    def get_reload_token(self) -> ChangeToken | None:
        return self._reload_token

    def close(self) -> None:
        if self._registration is not None:
            self._registration.dispose()
            self._registration = None
        self._provider.close()

    def __enter__(self) -> "ProtectedConfigurationProvider":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Protected{self._provider!r}"
