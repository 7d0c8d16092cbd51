"""Receive command for beamer CLI.

Commands:
- receive: Listen on PORT and keep DESTINATION in sync with transmitters
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from beamer.core.config import DEFAULT_FILE_MODE, ReceiverConfig, parse_file_mode
from beamer.core.types import BeamerError
from beamer.receiver import ReceiverServer

logger = logging.getLogger(__name__)


class FileModeType(click.ParamType):
    """Octal file mode parameter."""

    name = "octal"

    def convert(
        self, value: object, param: click.Parameter | None, ctx: click.Context | None
    ) -> int:
        if isinstance(value, int):
            return value
        try:
            return parse_file_mode(str(value))
        except ValueError as e:
            self.fail(str(e), param, ctx)


FILE_MODE = FileModeType()


@click.command()
@click.argument("port", type=click.IntRange(0, 65535))
@click.argument("destination", type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--mode",
    "-m",
    "file_mode",
    type=FILE_MODE,
    default=f"{DEFAULT_FILE_MODE:o}",
    envvar="BEAMER_FILE_MODE",
    show_default=True,
    help="Mode bits (octal) applied to DESTINATION after each update.",
)
@click.option(
    "--bind",
    "bind_host",
    default="",
    help="Address to listen on (default: all interfaces).",
)
def receive(port: int, destination: Path, file_mode: int, bind_host: str) -> None:
    """Listen on PORT and write each received file to DESTINATION.

    The previous version is kept as DESTINATION.prev. Runs until killed;
    a transmitter that disconnects can be replaced by a new one at any
    time.
    """
    config = ReceiverConfig(
        port=port,
        destination=destination,
        file_mode=file_mode,
        bind_host=bind_host,
    )
    server = ReceiverServer(config)
    try:
        server.start()
        server.serve_forever()
    except KeyboardInterrupt:
        click.echo("Stopping receiver.")
    except BeamerError as e:
        logger.error("%s", e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        server.close()
