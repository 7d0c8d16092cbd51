"""Command-line interface for beamer.

This module provides the main CLI entry point and assembles all commands.

Commands:
- send: Watch a file and push it to a receiver on every write
- receive: Accept transmitters and keep a destination file in sync
"""

from __future__ import annotations

import click

from beamer import __version__
from beamer.cli.receive import receive
from beamer.cli.send import send
from beamer.core.logs import setup_logging


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    default="INFO",
    envvar="BEAMER_LOG_LEVEL",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Beamer - push a file to another host every time it is written.

    Example:

        remote$ beamer receive 3000 prog

        local$ beamer send build prog remote 3000
    """
    setup_logging(log_level)


cli.add_command(send)
cli.add_command(receive)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = ["cli", "main"]
