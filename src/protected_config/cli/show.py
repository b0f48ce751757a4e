from pathlib import Path

import click

from protected_config.builder import ProtectedConfigurationBuilder
from protected_config.cli.utils import (
    configure_logging,
    load_configuration_data,
    output_error,
    output_result,
)


@click.command(name="show")
@click.argument(
    "files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path)
)
@click.option("--prefix", help="Only show keys below this configuration path")
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the protected-config settings file",
)
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def show(
    files: tuple[Path, ...],
    prefix: str | None,
    settings_path: Path | None,
    json_output: bool,
    debug: bool,
) -> None:
    """Load FILES (JSON, YAML or XML) and print the decrypted configuration.

    Later files override earlier ones for the same key.

    \b
    Examples:
        protected-config show appsettings.json
        protected-config show base.yml override.json --prefix database
    """
    configure_logging(debug)

    try:
        settings, data = load_configuration_data(settings_path)

        builder = ProtectedConfigurationBuilder(data, strict=settings.strict)
        for path in files:
            builder.add_file(path)

        with builder.build() as configuration:
            output_result(dict(configuration.iter_items(prefix)), json_output, debug)
    except Exception as e:
        output_error(e, json_output, debug)
