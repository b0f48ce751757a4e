"""
Global pytest configuration and fixtures.
"""

import pytest

from protected_config.provider_data import (
    ProtectProviderConfigurationData,
    fernet_configuration_data,
    passthrough_configuration_data,
)
from protected_config.providers import ChainedProtectProvider, FernetProtectProvider


def reverse(text: str) -> str:
    return text[::-1]


@pytest.fixture
def master_key() -> str:
    return FernetProtectProvider.generate_key()


@pytest.fixture
def fernet_data(master_key) -> ProtectProviderConfigurationData:
    return fernet_configuration_data(master_key)


@pytest.fixture
def passthrough_data() -> ProtectProviderConfigurationData:
    return passthrough_configuration_data()


@pytest.fixture
def reverse_chained_data(master_key) -> ProtectProviderConfigurationData:
    """Fernet provider whose ciphertext is additionally reversed."""
    provider = ChainedProtectProvider(FernetProtectProvider(master_key), reverse, reverse)
    return ProtectProviderConfigurationData.with_defaults(provider)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Keep developer settings out of the tests."""
    monkeypatch.delenv("PROTECTED_CONFIG_SETTINGS", raising=False)
    monkeypatch.delenv("PROTECTED_CONFIG_DEBUG", raising=False)
    monkeypatch.delenv("PROTECTED_CONFIG_KEY", raising=False)
