"""
Tests for protected_config.provider.
"""

import json
import os
from collections.abc import Iterable

import pytest

from protected_config.configuration import (
    ConfigurationProvider,
    JsonConfigurationProvider,
    MemoryConfigurationProvider,
    on_change,
)
from protected_config.configuration.base import KEY_DELIMITER, key_sort_key, segment
from protected_config.encryptor import protect_configuration_value
from protected_config.errors import ConfigurationShapeError, DecryptionError
from protected_config.provider import ProtectedConfigurationProvider
from protected_config.provider_data import ProtectProviderConfigurationData


class OpaqueProvider(ConfigurationProvider):
    """Provider exposing its keys only through ``get_child_keys``."""

    def __init__(self, values):
        self._values = dict(values)

    def load(self):
        pass

    def try_get(self, key):
        if key in self._values:
            return True, self._values[key]
        return False, None

    def set(self, key, value):
        self._values[key] = value

    def get_child_keys(self, earlier_keys: Iterable[str], parent_path):
        prefix = f"{parent_path}{KEY_DELIMITER}" if parent_path else ""
        keys = [segment(key, len(prefix)) for key in self._values if key.startswith(prefix)]
        keys.extend(earlier_keys)
        return sorted(keys, key=key_sort_key)

    def get_reload_token(self):
        return None


def protected_memory_provider(data, values):
    return ProtectedConfigurationProvider(MemoryConfigurationProvider(values), data)


class TestDecryptOnLoad:
    """Test that values are decrypted when the provider loads."""

    def test_passthrough(self, passthrough_data):
        provider = protected_memory_provider(
            passthrough_data,
            {"db:password": "Protected:{secret}", "db:user": "sa", "db:empty": "", "db:null": None},
        )
        provider.load()

        assert provider.try_get("db:password") == (True, "secret")
        assert provider.try_get("db:user") == (True, "sa")
        assert provider.try_get("db:empty") == (True, "")
        assert provider.try_get("db:null") == (True, None)

    def test_embedded_tokens(self, fernet_data):
        value = protect_configuration_value(fernet_data, "Server=db;User=Protect:{sa};Password=Protect:{pwd}")
        provider = protected_memory_provider(fernet_data, {"connection": value})
        provider.load()
        assert provider.try_get("connection") == (True, "Server=db;User=sa;Password=pwd")

    def test_sub_purpose(self, fernet_data):
        value = protect_configuration_value(fernet_data, "Protect:{mySubPurpose}:{42}")
        provider = protected_memory_provider(fernet_data, {"answer": value})
        provider.load()
        assert provider.try_get("answer") == (True, "42")

    def test_chained_provider(self, reverse_chained_data):
        value = protect_configuration_value(reverse_chained_data, "Protect:{42}")
        provider = protected_memory_provider(reverse_chained_data, {"answer": value})
        provider.load()
        assert provider.try_get("answer") == (True, "42")

    def test_decrypt_count(self, passthrough_data):
        provider = protected_memory_provider(
            passthrough_data, {"a": "Protected:{1}", "b": "Protected:{2}", "c": "plain"}
        )
        provider.load()
        assert provider.decrypt_all_keys() == 0

    def test_walks_keys_without_data_access(self, passthrough_data):
        inner = OpaqueProvider({"a:b:c": "Protected:{deep}", "a:d": "Protected:{shallow}", "e": "plain"})
        provider = ProtectedConfigurationProvider(inner, passthrough_data)
        provider.load()

        assert inner.try_get("a:b:c") == (True, "deep")
        assert inner.try_get("a:d") == (True, "shallow")
        assert inner.try_get("e") == (True, "plain")

    def test_walk_reaches_children_of_keys_with_values(self, passthrough_data):
        """Test that keys holding a value or None still have their children decrypted."""
        values = {
            "a": "Protected:{x}",
            "a:b": "Protected:{y}",
            "n": None,
            "n:c": "Protected:{z}",
        }
        walked = OpaqueProvider(values)
        ProtectedConfigurationProvider(walked, passthrough_data).load()
        direct = MemoryConfigurationProvider(values)
        ProtectedConfigurationProvider(direct, passthrough_data).load()

        expected = {"a": "x", "a:b": "y", "n": None, "n:c": "z"}
        assert {key: walked.try_get(key)[1] for key in values} == expected
        assert direct.data == expected

    def test_forwards_contract(self, passthrough_data):
        provider = protected_memory_provider(passthrough_data, {"a:x": "1"})
        provider.load()
        provider.set("a:y", "2")

        assert provider.get_child_keys([], "a") == ["x", "y"]
        assert provider.provider.try_get("a:y") == (True, "2")
        assert repr(provider) == "ProtectedMemoryConfigurationProvider()"


class TestErrors:
    """Test failure behaviour."""

    def test_invalid_data_rejected(self):
        with pytest.raises(ConfigurationShapeError):
            ProtectedConfigurationProvider(MemoryConfigurationProvider(), ProtectProviderConfigurationData())

    def test_decryption_error_names_key(self, fernet_data, master_key):
        provider = protected_memory_provider(fernet_data, {"db:password": "Protected:{garbage}"})

        with pytest.raises(DecryptionError) as exc_info:
            provider.load()

        assert exc_info.value.key == "db:password"
        assert "db:password" in str(exc_info.value)
        assert master_key not in str(exc_info.value)


class TestReload:
    """Test decryption after the wrapped provider reloads."""

    def test_no_token_when_wrapped_has_none(self, passthrough_data):
        provider = ProtectedConfigurationProvider(OpaqueProvider({}), passthrough_data)
        assert provider.get_reload_token() is None

    def test_reload_decrypts_then_notifies_once(self, tmp_path, fernet_data):
        path = tmp_path / "app.json"
        first = protect_configuration_value(fernet_data, "Protect:{one}")
        path.write_text(json.dumps({"secret": first}))

        provider = ProtectedConfigurationProvider(
            JsonConfigurationProvider(path, reload_on_change=True), fernet_data
        )
        provider.load()
        assert provider.try_get("secret") == (True, "one")

        seen = []
        on_change(provider.get_reload_token, lambda _: seen.append(provider.try_get("secret")[1]))

        second = protect_configuration_value(fernet_data, "Protect:{two}")
        path.write_text(json.dumps({"secret": second}))
        stat = path.stat()
        os.utime(path, (stat.st_atime + 10, stat.st_mtime + 10))
        provider.provider.check_for_changes()

        assert seen == ["two"]

    def test_token_is_swapped_on_reload(self, passthrough_data):
        inner = MemoryConfigurationProvider({"a": "Protected:{1}"})
        provider = ProtectedConfigurationProvider(inner, passthrough_data)
        token = provider.get_reload_token()

        inner.set("a", "Protected:{2}")
        inner.on_reload()

        assert token.has_changed
        assert provider.get_reload_token() is not token
        assert provider.try_get("a") == (True, "2")

    def test_close_stops_reload(self, passthrough_data):
        inner = MemoryConfigurationProvider({"a": "Protected:{1}"})
        provider = ProtectedConfigurationProvider(inner, passthrough_data)
        token = provider.get_reload_token()

        provider.close()
        inner.on_reload()

        assert not token.has_changed
        assert inner.try_get("a") == (True, "Protected:{1}")
