import json
import logging
import os
import traceback
from pathlib import Path
from typing import Any

import click

from protected_config.errors import DecryptionError
from protected_config.provider_data import ProtectProviderConfigurationData
from protected_config.settings import ProtectionSettingsModel, build_configuration_data, load_settings

DEBUG_ENV_VAR = "PROTECTED_CONFIG_DEBUG"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def get_env_flag(env_var: str, default: bool = False) -> bool:
    """Read an on/off switch such as ``PROTECTED_CONFIG_DEBUG`` from the environment.

    Unset or empty variables give ``default``; ``1``, ``true``, ``yes`` and
    ``on`` (any case) switch it on, anything else switches it off.
    """
    value = os.environ.get(env_var, "").strip().lower()
    if not value:
        return default
    return value in _TRUE_VALUES


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr at WARNING, or DEBUG with ``--debug``/``PROTECTED_CONFIG_DEBUG``."""
    if not debug:
        debug = get_env_flag(DEBUG_ENV_VAR)

    level = logging.DEBUG if debug else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # one handler only, commands may run several times in a process
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    root_logger.addHandler(stream_handler)

    logging.getLogger("protected_config").setLevel(level)


def format_error(error: Exception, debug: bool = False) -> dict[str, Any]:
    """Describe a failed command as a dict.

    A ``DecryptionError`` carries the configuration key whose value could not
    be decrypted; it is reported under ``key``. With ``debug`` the exception
    type and traceback are added.
    """
    details: dict[str, Any] = {"error": str(error)}
    if isinstance(error, DecryptionError) and error.key is not None:
        details["key"] = error.key
    if debug:
        details["type"] = type(error).__name__
        details["traceback"] = traceback.format_exc()
    return details


def output_result(result: Any, json_output: bool = False, debug: bool = False) -> None:
    """Print a command result: JSON envelope, one line per list item, or ``key=value`` lines."""
    if json_output:
        click.echo(json.dumps({"status": "ok", "result": result}, indent=2, default=str))
    elif isinstance(result, list):
        for row in result:
            click.echo(row)
    elif isinstance(result, dict):
        for key, value in result.items():
            click.echo(f"{key}={'' if value is None else value}")
    else:
        click.echo(result)


def output_error(error: Exception, json_output: bool = False, debug: bool = False) -> None:
    """Report a failed command and stop it with ``click.Abort`` (exit code 1).

    Without ``--json-output`` the message goes to stderr as ``Error: ...``,
    followed by the traceback when ``--debug`` is set.
    """
    details = format_error(error, debug)

    if json_output:
        click.echo(json.dumps({"status": "error", **details}, indent=2))
        raise click.Abort()

    click.echo(f"Error: {details['error']}", err=True)
    if "traceback" in details:
        click.echo(details["traceback"], err=True)
    raise click.Abort()


def load_configuration_data(
    settings_path: Path | None,
) -> tuple[ProtectionSettingsModel, ProtectProviderConfigurationData]:
    """Load settings and build the protect provider configuration they describe."""
    settings = load_settings(settings_path)
    return settings, build_configuration_data(settings)
