from pathlib import Path

import click

from protected_config.cli.utils import (
    configure_logging,
    load_configuration_data,
    output_error,
    output_result,
)
from protected_config.encryptor import protect_configuration_value


@click.command(name="protect-value")
@click.argument("values", nargs=-1, required=True)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the protected-config settings file",
)
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def protect_value(
    values: tuple[str, ...], settings_path: Path | None, json_output: bool, debug: bool
) -> None:
    """Encrypt the Protect:{...} tokens of each VALUE.

    Values without tokens are printed unchanged.

    \b
    Examples:
        protected-config protect-value 'Protect:{s3cr3t}'
        protected-config protect-value 'Server=db;Password=Protect:{pwd}'
    """
    configure_logging(debug)

    try:
        _, data = load_configuration_data(settings_path)
        output_result(list(protect_configuration_value(data, values)), json_output, debug)
    except Exception as e:
        output_error(e, json_output, debug)
