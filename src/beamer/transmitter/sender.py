"""Transmitter: pushes the watched file over the link after each write.

Known race: the file is streamed from an open descriptor, not from a
snapshot. If it changes between the stat and the end of the copy, the
receiver gets the declared number of bytes of whatever the file held
while it was read. Nothing checks the size again after sending.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING

from beamer.core.frame import DISCONNECT, encode_size
from beamer.core.transport import Link, dial
from beamer.core.types import TransferResult, TransmitError
from beamer.transmitter.watcher import ChangeDetector

if TYPE_CHECKING:
    from beamer.core.config import TransmitterConfig

logger = logging.getLogger(__name__)


def send_file(link: Link, path: Path) -> TransferResult | None:
    """Send the current contents of path as one frame.

    Empty files are skipped, since a zero header means "disconnecting".
    Link.in_frame stays set if the payload does not go out in full, so the
    caller knows the link is no longer on a frame boundary.

    Returns:
        The transfer result, or None if the file was empty.

    Raises:
        TransmitError: If the file cannot be stat'ed, opened or sent.
    """
    try:
        size = path.stat().st_size
    except OSError as e:
        raise TransmitError(f"stat {path}: {e}") from e

    if size == 0:
        logger.debug("Skipping empty file %s", path)
        return None

    start = time.monotonic()
    try:
        with open(path, "rb") as f:
            link.in_frame = True
            link.send_all(encode_size(size))
            sent = link.send_file(f, size)
    except OSError as e:
        raise TransmitError(f"sendfile {path}: {e}") from e

    if sent != size:
        raise TransmitError(f"sendfile {path}: sent {sent} of {size} bytes")
    link.in_frame = False

    result = TransferResult(path=path, size=size, duration_s=time.monotonic() - start)
    logger.info("Transmitted %s (%d bytes)", path, size)
    return result


class Transmitter:
    """Watches one file and streams it to the receiver on every write.

    The link is dialed once; any I/O failure is fatal and left to an
    outer process supervisor to restart.
    """

    def __init__(
        self,
        config: TransmitterConfig,
        detector: ChangeDetector | None = None,
        connect_timeout: float | None = None,
    ) -> None:
        self._config = config
        self._detector = detector or ChangeDetector(config)
        self._connect_timeout = connect_timeout
        self._link: Link | None = None
        self.sent: list[TransferResult] = []

    @property
    def link(self) -> Link | None:
        return self._link

    @property
    def watch_path(self) -> Path:
        return self._config.watch_path

    def start(self) -> Link:
        """Register the watch, then connect to the receiver.

        Returns:
            The established link.

        Raises:
            WatchError: If the watch cannot be registered.
            TransportError: If the receiver cannot be reached.
        """
        self._detector.start()
        try:
            link = dial(self._config.host, self._config.port, timeout=self._connect_timeout)
        except Exception:
            self._detector.stop()
            raise
        self._link = link
        logger.info("Connected to receiver %s:%d", self._config.host, self._config.port)
        logger.info("File to update: %s", self.watch_path)
        return link

    def run(self, max_triggers: int | None = None) -> None:
        """Transmit the file once per completed write.

        Args:
            max_triggers: Return after this many triggers (None runs forever).

        Raises:
            TransmitError: On any failure to read or send the file.
        """
        link = self._link or self.start()

        handled = 0
        while max_triggers is None or handled < max_triggers:
            trigger = self._detector.next_trigger()
            if trigger is None:
                continue
            handled += 1
            result = send_file(link, trigger.path)
            if result is not None:
                self.sent.append(result)

    def close(self) -> None:
        """Send the disconnect sentinel and release the link and watch.

        If a frame was cut off mid-payload the link is just closed, so the
        receiver sees a short payload rather than a sentinel read as data.
        """
        self._detector.stop()
        if self._link is None:
            return
        if self._link.in_frame:
            logger.warning("Closing link with an unfinished frame")
            self._link.close()
            self._link = None
            return
        try:
            self._link.send_all(encode_size(DISCONNECT))
        except OSError as e:
            # The receiver treats a dropped link like the sentinel
            logger.debug("Could not send disconnect frame: %s", e)
        self._link.close()
        self._link = None

    def __enter__(self) -> Transmitter:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
