from pathlib import Path

import click

from protected_config.cli.utils import (
    configure_logging,
    load_configuration_data,
    output_error,
    output_result,
)
from protected_config.encryptor import protect_files as protect_files_in_directory
from protected_config.processors import FileProtectOptionRegistry


@click.command(name="protect-files")
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--pattern", default="*.json", show_default=True, help="Glob pattern of files to protect")
@click.option("--recursive", is_flag=True, help="Also search subdirectories")
@click.option("--no-backup", is_flag=True, help="Do not keep a .bak copy of modified files")
@click.option(
    "--json-with-comments",
    is_flag=True,
    help="Rewrite JSON files textually, keeping comments and formatting",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to the protected-config settings file",
)
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--debug", is_flag=True, help="Show detailed debug information")
def protect_files(
    directory: Path,
    pattern: str,
    recursive: bool,
    no_backup: bool,
    json_with_comments: bool,
    settings_path: Path | None,
    json_output: bool,
    debug: bool,
) -> None:
    """Encrypt the Protect:{...} tokens inside configuration files of DIRECTORY.

    Prints the files which were modified.

    \b
    Examples:
        protected-config protect-files ./config
        protected-config protect-files ./config --pattern '*.xml' --recursive
        protected-config protect-files ./config --json-with-comments --no-backup
    """
    configure_logging(debug)

    try:
        _, data = load_configuration_data(settings_path)

        options = FileProtectOptionRegistry()
        if json_with_comments:
            options.use_json_with_comments()

        modified = protect_files_in_directory(
            data,
            directory,
            pattern=pattern,
            recursive=recursive,
            backup=not no_backup,
            options=options,
        )
        output_result([str(path) for path in modified], json_output, debug)
    except Exception as e:
        output_error(e, json_output, debug)
