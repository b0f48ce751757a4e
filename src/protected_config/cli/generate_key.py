import os
from pathlib import Path

import click

from protected_config.cli.utils import configure_logging, output_error, output_result
from protected_config.providers import FernetProtectProvider


@click.command(name="generate-key")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the key to this file (mode 0600) instead of printing it",
)
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def generate_key(output: Path | None, json_output: bool, debug: bool) -> None:
    """Generate a new random master key.

    \b
    Examples:
        protected-config generate-key
        protected-config generate-key --output master.key
    """
    configure_logging(debug)

    try:
        key = FernetProtectProvider.generate_key()
        if output is None:
            output_result(key, json_output, debug)
            return

        fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(key + "\n")
        output_result(str(output), json_output, debug)
    except Exception as e:
        output_error(e, json_output, debug)
