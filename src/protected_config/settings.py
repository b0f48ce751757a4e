"""
Settings for the protected-config tooling.

Settings are read from a YAML file and validated with Pydantic:

```yaml
key:
  env: PROTECTED_CONFIG_KEY     # environment variable holding the master key
  file: ./master.key            # or a file holding it (takes precedence)
key_number: 1                   # selects ProtectedConfigurationBuilder.Key1
purpose: null                   # custom purpose, takes precedence over key_number
strict: false
grammar:
  protect_regex: null           # null keeps the default grammar
  protected_regex: null
  protected_replace: null
```
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import Field, ValidationError, field_validator

from .errors import ConfigurationShapeError
from .grammar import PROTECT_DATA_GROUP, PROTECTED_DATA_GROUP, compile_grammar_regex, compile_replace_template
from .models import ProtectedConfigBaseModel
from .provider_data import ProtectProviderConfigurationData, fernet_configuration_data

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "PROTECTED_CONFIG_SETTINGS"
DEFAULT_SETTINGS_FILENAME = "protected-config.yml"
DEFAULT_KEY_ENV_VAR = "PROTECTED_CONFIG_KEY"


class KeySettingsModel(ProtectedConfigBaseModel):
    """Where the master key comes from.

    Attributes:
        env: Environment variable containing the master key
        file: File containing the master key; takes precedence over ``env``
    """

    env: str = DEFAULT_KEY_ENV_VAR
    file: Path | None = None


class GrammarSettingsModel(ProtectedConfigBaseModel):
    """Optional custom token grammar; unset fields keep the default grammar."""

    protect_regex: str | None = None
    protected_regex: str | None = None
    protected_replace: str | None = None

    @field_validator("protect_regex")
    @classmethod
    def _check_protect_regex(cls, value: str | None) -> str | None:
        if value is not None:
            compile_grammar_regex(value, PROTECT_DATA_GROUP)
        return value

    @field_validator("protected_regex")
    @classmethod
    def _check_protected_regex(cls, value: str | None) -> str | None:
        if value is not None:
            compile_grammar_regex(value, PROTECTED_DATA_GROUP)
        return value

    @field_validator("protected_replace")
    @classmethod
    def _check_protected_replace(cls, value: str | None) -> str | None:
        if value is not None:
            compile_replace_template(value)
        return value


class ProtectionSettingsModel(ProtectedConfigBaseModel):
    """Root settings model.

    Example:
        >>> settings = ProtectionSettingsModel(key_number=2)
        >>> settings.key.env
        'PROTECTED_CONFIG_KEY'
    """

    key: KeySettingsModel = Field(default_factory=KeySettingsModel)
    key_number: int = Field(default=1, ge=1)
    purpose: str | None = None
    strict: bool = False
    grammar: GrammarSettingsModel = Field(default_factory=GrammarSettingsModel)


def find_settings_file(settings_path: Path | None = None) -> Path | None:
    """Locate the settings file.

    Lookup order: ``settings_path``, the ``PROTECTED_CONFIG_SETTINGS``
    environment variable, ``./protected-config.yml``.
    """
    if settings_path is not None:
        return settings_path

    env_path = os.environ.get(SETTINGS_ENV_VAR)
    if env_path:
        return Path(env_path)

    candidate = Path.cwd() / DEFAULT_SETTINGS_FILENAME
    if candidate.exists():
        return candidate

    return None


def load_settings(settings_path: Path | None = None) -> ProtectionSettingsModel:
    """Load and validate settings.

    Returns the default settings when no settings file is found.

    Raises:
        FileNotFoundError: If an explicitly requested settings file doesn't exist
        ValueError: If the file is not valid YAML or fails validation
    """
    path = find_settings_file(settings_path)
    if path is None:
        logger.debug("No settings file found, using defaults")
        return ProtectionSettingsModel()

    if not path.exists():
        raise FileNotFoundError(f"Settings file not found at {path}")

    logger.debug(f"Loading settings from: {path}")

    try:
        with open(path) as f:
            raw_settings = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML settings file {path}: {e}") from e

    if not raw_settings:
        return ProtectionSettingsModel()

    try:
        settings = ProtectionSettingsModel.model_validate(raw_settings)
    except ValidationError as e:
        raise ValueError(f"Invalid settings in {path}: {e}") from e

    # key file paths are relative to the settings file
    if settings.key.file is not None and not settings.key.file.is_absolute():
        key = settings.key.model_copy(update={"file": path.parent / settings.key.file})
        settings = settings.model_copy(update={"key": key})

    return settings


def resolve_master_key(
    settings: ProtectionSettingsModel, environ: Mapping[str, str] | None = None
) -> str:
    """Read the master key from the configured key file or environment variable.

    Raises:
        ConfigurationShapeError: If no key is available
    """
    if settings.key.file is not None:
        try:
            key = settings.key.file.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigurationShapeError(f"Cannot read key file {settings.key.file}: {e}") from e
        if not key:
            raise ConfigurationShapeError(f"Key file {settings.key.file} is empty")
        return key

    environ = os.environ if environ is None else environ
    key = environ.get(settings.key.env, "")
    if not key:
        raise ConfigurationShapeError(
            f"No master key: set the {settings.key.env} environment variable or configure key.file"
        )
    return key


def build_configuration_data(
    settings: ProtectionSettingsModel, environ: Mapping[str, str] | None = None
) -> ProtectProviderConfigurationData:
    """Create a validated Fernet based configuration from settings."""
    return fernet_configuration_data(
        resolve_master_key(settings, environ),
        key_number=settings.key_number,
        purpose=settings.purpose,
        protect_regex=settings.grammar.protect_regex,
        protected_regex=settings.grammar.protected_regex,
        protected_replace=settings.grammar.protected_replace,
    )
