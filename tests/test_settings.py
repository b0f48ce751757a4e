"""
Tests for protected_config.settings.
"""

import pytest
from pydantic import ValidationError

from protected_config.errors import ConfigurationShapeError
from protected_config.providers import FernetProtectProvider
from protected_config.settings import (
    DEFAULT_SETTINGS_FILENAME,
    ProtectionSettingsModel,
    build_configuration_data,
    find_settings_file,
    load_settings,
    resolve_master_key,
)


class TestLoadSettings:
    """Test settings discovery and validation."""

    def test_defaults_without_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert find_settings_file() is None

        settings = load_settings()

        assert settings.key.env == "PROTECTED_CONFIG_KEY"
        assert settings.key_number == 1
        assert settings.strict is False

    def test_default_file_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / DEFAULT_SETTINGS_FILENAME).write_text("key_number: 3\n")
        monkeypatch.chdir(tmp_path)

        assert load_settings().key_number == 3

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yml"
        path.write_text("strict: true\n")
        monkeypatch.setenv("PROTECTED_CONFIG_SETTINGS", str(path))

        assert load_settings().strict is True

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.yml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "settings.yml"
        path.write_text("")
        assert load_settings(path) == ProtectionSettingsModel()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "settings.yml"
        path.write_text("key: [unclosed\n")
        with pytest.raises(ValueError, match="Failed to parse"):
            load_settings(path)

    @pytest.mark.parametrize(
        "content",
        [
            "key_number: 0\n",
            "unknown: 1\n",
            "grammar:\n  protect_regex: 'Protect:{(.+?)}'\n",
            "grammar:\n  protected_replace: 'Protected:{data}'\n",
        ],
    )
    def test_invalid_settings(self, tmp_path, content):
        path = tmp_path / "settings.yml"
        path.write_text(content)
        with pytest.raises(ValueError, match="Invalid settings"):
            load_settings(path)

    def test_key_file_relative_to_settings(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        path = config_dir / "settings.yml"
        path.write_text("key:\n  file: master.key\n")

        assert load_settings(path).key.file == config_dir / "master.key"

    def test_models_are_frozen(self):
        settings = ProtectionSettingsModel()
        with pytest.raises(ValidationError):
            settings.strict = True  # type: ignore[misc]


class TestMasterKey:
    """Test master key resolution."""

    def test_from_environment(self, master_key):
        assert resolve_master_key(ProtectionSettingsModel(), {"PROTECTED_CONFIG_KEY": master_key}) == master_key

    def test_custom_env_var(self, master_key):
        settings = ProtectionSettingsModel.model_validate({"key": {"env": "APP_KEY"}})
        assert resolve_master_key(settings, {"APP_KEY": master_key}) == master_key

    def test_file_takes_precedence(self, tmp_path, master_key):
        key_file = tmp_path / "master.key"
        key_file.write_text(master_key + "\n")
        settings = ProtectionSettingsModel.model_validate({"key": {"file": str(key_file)}})

        assert resolve_master_key(settings, {"PROTECTED_CONFIG_KEY": "ignored"}) == master_key

    def test_missing_key(self):
        with pytest.raises(ConfigurationShapeError, match="PROTECTED_CONFIG_KEY"):
            resolve_master_key(ProtectionSettingsModel(), {})

    def test_missing_key_file(self, tmp_path):
        settings = ProtectionSettingsModel.model_validate({"key": {"file": str(tmp_path / "missing.key")}})
        with pytest.raises(ConfigurationShapeError):
            resolve_master_key(settings, {})

    def test_empty_key_file(self, tmp_path):
        key_file = tmp_path / "master.key"
        key_file.write_text("\n")
        settings = ProtectionSettingsModel.model_validate({"key": {"file": str(key_file)}})
        with pytest.raises(ConfigurationShapeError, match="empty"):
            resolve_master_key(settings, {})


class TestBuildConfigurationData:
    """Test turning settings into provider configuration."""

    def test_key_number(self, master_key):
        settings = ProtectionSettingsModel(key_number=2)
        data = build_configuration_data(settings, {"PROTECTED_CONFIG_KEY": master_key})

        assert data.is_valid
        assert isinstance(data.provider, FernetProtectProvider)
        assert data.provider.purpose == "ProtectedConfigurationBuilder.Key2"

    def test_purpose_and_grammar(self, master_key):
        settings = ProtectionSettingsModel.model_validate(
            {
                "purpose": "Billing",
                "grammar": {
                    "protect_regex": r"Enc\[(?<protectData>[^\]]+)\]",
                    "protected_regex": r"Dec\[(?<protectedData>[^\]]+)\]",
                    "protected_replace": "Dec[${protectedData}]",
                },
            }
        )
        data = build_configuration_data(settings, {"PROTECTED_CONFIG_KEY": master_key})

        assert data.provider.purpose == "ProtectedConfigurationBuilder.Billing"
        protected = data.protect_value("pwd=Enc[secret]")
        assert protected.startswith("pwd=Dec[")
        assert data.unprotect_value(protected) == "pwd=secret"
