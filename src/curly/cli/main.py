"""curly CLI entry point."""

import logging

import click


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log compile and render details.")
def cli(verbose: bool):
    """curly: compile, check and render templates."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from curly.cli.render_cmd import check, inspect, render  # noqa: E402
from curly.cli.tree_cmd import export, import_cmd  # noqa: E402

cli.add_command(render)
cli.add_command(check)
cli.add_command(inspect)
cli.add_command(export)
cli.add_command(import_cmd)
