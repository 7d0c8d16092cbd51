"""Receiver lifecycle: accept one transmitter, serve it, accept the next.

Only one link is served at a time. Further transmitters wait in the
listen backlog until the current session ends.
"""

from __future__ import annotations

import logging
import socket
from typing import TYPE_CHECKING

from beamer.core.transport import accept, listen
from beamer.core.types import TransferResult
from beamer.receiver.session import ReceiverSession, SessionState

if TYPE_CHECKING:
    from beamer.core.config import ReceiverConfig

logger = logging.getLogger(__name__)


class ReceiverServer:
    """Keeps the destination file in sync with whichever transmitter connects."""

    def __init__(self, config: ReceiverConfig) -> None:
        self._config = config
        self._server: socket.socket | None = None
        self.sessions_served = 0
        self.completed: list[TransferResult] = []

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); only valid after start()."""
        if self._server is None:
            raise RuntimeError("server not started")
        host, port = self._server.getsockname()[:2]
        return host, port

    def start(self) -> socket.socket:
        """Bind the listening socket.

        Returns:
            The listening socket.

        Raises:
            TransportError: If the port cannot be bound.
        """
        if self._server is not None:
            return self._server
        self._server = listen(self._config.port, self._config.bind_host)
        logger.info(
            "Receiving into %s on port %d (mode %o)",
            self._config.destination,
            self.address[1],
            self._config.file_mode,
        )
        return self._server

    def serve_one(self) -> SessionState:
        """Accept a single link and serve it until it ends."""
        server = self._server or self.start()

        link = accept(server)
        logger.info("transmitter connected from %s", link.remote)
        session = ReceiverSession(link, self._config)
        try:
            state = session.serve()
        finally:
            link.close()
            self.sessions_served += 1
            self.completed.extend(session.completed)
        logger.debug("Session with %s ended: %s", link.remote, state.value)
        return state

    def serve_forever(self, max_sessions: int | None = None) -> None:
        """Serve transmitters one after another.

        Args:
            max_sessions: Return after this many links have ended
                (None serves forever).

        Raises:
            TransportError: If binding or accepting fails.
        """
        served = 0
        while max_sessions is None or served < max_sessions:
            self.serve_one()
            served += 1

    def close(self) -> None:
        """Close the listening socket."""
        if self._server is not None:
            self._server.close()
            self._server = None

    def __enter__(self) -> ReceiverServer:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
