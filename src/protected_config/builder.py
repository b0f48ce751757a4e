"""
Protected configuration builder.

``ProtectedConfigurationBuilder`` is a ``ConfigurationBuilder`` which wraps
the provider of every source with a ``ProtectedConfigurationProvider``, so
that the resulting ``ConfigurationRoot`` only ever exposes decrypted values.

A global ``ProtectProviderConfigurationData`` applies to all sources; a
per-source override can be attached with
``with_protected_configuration_options`` right after adding the source. The
override is merged over the global data field by field.
"""

import logging

from .configuration import ConfigurationProvider, ConfigurationRoot, ConfigurationSource
from .configuration.root import ConfigurationBuilder
from .errors import ConfigurationShapeError
from .provider import ProtectedConfigurationProvider
from .provider_data import ProtectProviderConfigurationData, describe, merge

logger = logging.getLogger(__name__)


class ProtectedConfigurationBuilder(ConfigurationBuilder):
    """Configuration builder decrypting every source transparently.

    Args:
        protect_provider_configuration_data: Global configuration; must be valid
        strict: Raise ``ConfigurationShapeError`` when a source's merged
            configuration is incomplete instead of leaving it undecrypted

    Example:
        >>> builder = ProtectedConfigurationBuilder(fernet_configuration_data(key))
        >>> builder.add_json_file("appsettings.json")
        >>> builder.add_json_file("secrets.json").with_protected_configuration_options(
        ...     fernet_configuration_data(key, key_number=2)
        ... )
        >>> configuration = builder.build()
    """

    def __init__(
        self,
        protect_provider_configuration_data: ProtectProviderConfigurationData,
        strict: bool = False,
    ):
        super().__init__()
        if protect_provider_configuration_data is None:
            raise ConfigurationShapeError("Global protect provider configuration is required")
        protect_provider_configuration_data.check_configuration_is_valid()

        self._global_data = protect_provider_configuration_data
        self.strict = strict
        # keyed by id(source); the source is kept alongside so the id stays unique
        self._overrides: dict[int, tuple[ConfigurationSource, ProtectProviderConfigurationData]] = {}

    @property
    def protect_provider_configuration_data(self) -> ProtectProviderConfigurationData:
        return self._global_data

    def with_protected_configuration_options(
        self, protect_provider_configuration_data: ProtectProviderConfigurationData
    ) -> "ProtectedConfigurationBuilder":
        """Attach an override to the most recently added source.

        Raises:
            ConfigurationShapeError: If no source has been added yet
        """
        if not self.sources:
            raise ConfigurationShapeError(
                "with_protected_configuration_options must be called after adding a source"
            )

        source = self.sources[-1]
        self._overrides[id(source)] = (source, protect_provider_configuration_data)
        logger.debug(f"Attached protect options to {source!r}: {describe(protect_provider_configuration_data)}")
        return self

    def get_source_configuration_data(
        self, source: ConfigurationSource
    ) -> ProtectProviderConfigurationData | None:
        """The merged configuration that applies to ``source``."""
        override = self._overrides.get(id(source))
        if override is None or override[0] is not source:
            return self._global_data
        return merge(self._global_data, override[1])

    def build_providers(self) -> list[ConfigurationProvider]:
        providers = []
        for source in self.sources:
            provider = source.build(self)
            providers.append(self._create_protected_provider(source, provider))
        return providers

    def build(self) -> ConfigurationRoot:
        return ConfigurationRoot(self.build_providers())

    def _create_protected_provider(
        self, source: ConfigurationSource, provider: ConfigurationProvider
    ) -> ConfigurationProvider:
        data = self.get_source_configuration_data(source)
        if data is None or not data.is_valid:
            missing = data.missing_fields() if data is not None else ["all"]
            message = (
                f"Protect provider configuration for {source!r} is incomplete "
                f"(missing: {', '.join(missing)})"
            )
            if self.strict:
                raise ConfigurationShapeError(message)
            logger.warning(f"{message}; values from this source will not be decrypted")
            return provider

        return ProtectedConfigurationProvider(provider, data)
