"""CLI interface for Controller Cleaner.

Command groups are split by functionality and registered at import time.
"""

import logging

import click
from dotenv import load_dotenv

from controller_cleaner import __version__

# Load CONTROLLER_CLEANER_* overrides from a .env file
load_dotenv()

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option(
    "--version",
    is_flag=True,
    help="Show the controller-cleaner version and exit.",
)
@click.pass_context
def main(ctx: click.Context, version: bool) -> None:
    """Controller Cleaner - remove unused sub-assets from animator controllers.

    \b
      controller-cleaner scan Assets/Player.controller   Scan one controller
      controller-cleaner scan --all Assets               Scan every controller
      controller-cleaner clean --all Assets -y           Scan and clean everything
    """
    if version:
        click.echo(__version__)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def register_commands() -> None:
    """Register all commands with the main CLI."""
    from controller_cleaner.cli.scan import clean, scan

    main.add_command(scan)
    main.add_command(clean)


# Register commands at import time
register_commands()

__all__ = ["main"]
