import click

from protected_config.cli.generate_key import generate_key
from protected_config.cli.protect_files import protect_files
from protected_config.cli.protect_value import protect_value
from protected_config.cli.show import show


@click.group(invoke_without_command=True)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """protected-config CLI"""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


cli.add_command(generate_key)
cli.add_command(protect_value)
cli.add_command(protect_files)
cli.add_command(show)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
