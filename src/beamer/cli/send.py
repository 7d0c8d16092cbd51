"""Send command for beamer CLI.

Commands:
- send: Watch DIR/FILE and transmit it to HOST:PORT after every write
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from beamer.core.config import DEFAULT_POLL_INTERVAL_S, TransmitterConfig
from beamer.core.types import BeamerError
from beamer.transmitter import Transmitter

logger = logging.getLogger(__name__)


@click.command()
@click.argument("watch_dir", type=click.Path(file_okay=False, path_type=Path))
@click.argument("filename")
@click.argument("host")
@click.argument("port", type=click.IntRange(1, 65535))
@click.option(
    "--polling",
    is_flag=True,
    help="Detect writes by polling instead of OS notifications.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0, min_open=True),
    default=DEFAULT_POLL_INTERVAL_S,
    envvar="BEAMER_POLL_INTERVAL",
    show_default=True,
    help="Seconds between polls when --polling is set.",
)
@click.option(
    "--connect-timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Give up connecting to the receiver after this many seconds.",
)
def send(
    watch_dir: Path,
    filename: str,
    host: str,
    port: int,
    polling: bool,
    poll_interval: float,
    connect_timeout: float | None,
) -> None:
    """Transmit WATCH_DIR/FILENAME to the receiver at HOST PORT.

    The file is sent in full each time a writer closes it. Empty files are
    skipped. Any failure to read or send the file ends the process.
    """
    try:
        config = TransmitterConfig(
            watch_dir=watch_dir,
            filename=filename,
            host=host,
            port=port,
            use_polling=polling,
            poll_interval_s=poll_interval,
        )
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    transmitter = Transmitter(config, connect_timeout=connect_timeout)
    try:
        transmitter.start()
        transmitter.run()
    except KeyboardInterrupt:
        click.echo("Stopping transmitter.")
    except BeamerError as e:
        logger.error("%s", e)
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        transmitter.close()
