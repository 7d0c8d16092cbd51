"""TCP transport for beamer links.

This module provides:
- Link: one long-lived stream socket between a transmitter and a receiver
- dial: connect to a receiver, trying every resolved address in order
- listen: bind the receiver's server socket (backlog of one)
- accept: take the next pending link from a server socket
"""

from __future__ import annotations

import logging
import socket
from enum import Enum
from typing import BinaryIO

from beamer.core.types import TransportError

logger = logging.getLogger(__name__)

# One active transmitter at a time; further dials wait in the OS backlog.
LISTEN_BACKLOG = 1


class LinkState(str, Enum):
    """Connection state of a link."""

    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class Link:
    """A single full-duplex byte stream to the peer."""

    def __init__(self, sock: socket.socket, state: LinkState = LinkState.CONNECTED) -> None:
        self._sock = sock
        self._state = state
        self.local: tuple[str, int] | None = None
        self.remote: tuple[str, int] | None = None
        # Set while a frame header has gone out but its payload has not
        self.in_frame = False
        if state is LinkState.CONNECTED:
            self._read_names()

    def _read_names(self) -> None:
        if self._sock.family not in (socket.AF_INET, socket.AF_INET6):
            return
        try:
            self.local = self._sock.getsockname()[:2]
            self.remote = self._sock.getpeername()[:2]
        except OSError:
            # Peer already gone; the first read reports it
            pass

    def connect(self, addr: tuple, timeout: float | None = None) -> None:
        """Complete the dial phase of a CONNECTING link.

        Raises:
            OSError: If the peer does not accept the connection.
        """
        if self._state is not LinkState.CONNECTING:
            raise RuntimeError(f"cannot connect a link in state {self._state.value}")
        self._sock.settimeout(timeout)
        self._sock.connect(addr)
        # Blocking mode for the lifetime of the link
        self._sock.settimeout(None)
        self._state = LinkState.CONNECTED
        self._read_names()

    @property
    def sock(self) -> socket.socket:
        return self._sock

    @property
    def state(self) -> LinkState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is not LinkState.CLOSED

    def fileno(self) -> int:
        return self._sock.fileno()

    def send_all(self, data: bytes) -> None:
        self._sock.sendall(data)

    def send_file(self, f: BinaryIO, count: int) -> int:
        """Send up to count bytes of f, starting at its current offset.

        Uses the kernel's zero-copy path where the platform supports it,
        otherwise a plain read/send loop.
        """
        return self._sock.sendfile(f, 0, count)

    def recv(self, bufsize: int) -> bytes:
        return self._sock.recv(bufsize)

    def recv_exact(self, n: int) -> bytes:
        """Read n bytes, or fewer if the peer closes the stream first."""
        chunks: list[bytes] = []
        remaining = n
        while remaining > 0:
            chunk = self._sock.recv(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def close(self) -> None:
        if self._state is LinkState.CLOSED:
            return
        self._state = LinkState.CLOSED
        try:
            self._sock.close()
        except OSError as e:
            logger.debug("Error closing link to %s: %s", self.remote, e)

    def __enter__(self) -> Link:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Link(remote={self.remote}, state={self._state.value})"


def dial(host: str, port: int, timeout: float | None = None) -> Link:
    """Connect to a receiver.

    Every address the host resolves to is tried in order; the first one
    that accepts the connection wins.

    Raises:
        TransportError: If resolution fails or no address accepts.
    """
    try:
        candidates = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise TransportError(f"Cannot resolve {host}:{port}: {e}") from e

    last_error: OSError | None = None
    for family, socktype, proto, _, addr in candidates:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError as e:
            last_error = e
            continue
        link = Link(sock, LinkState.CONNECTING)
        try:
            link.connect(addr, timeout)
        except OSError as e:
            last_error = e
            link.close()
            continue
        logger.debug("Connected to %s via %s", host, addr)
        return link

    raise TransportError(f"Failed to connect to receiver {host}:{port}: {last_error}")


def listen(port: int, host: str = "") -> socket.socket:
    """Bind and listen on the receiver port.

    Address reuse is enabled so a restarted receiver can rebind at once.

    Raises:
        TransportError: If no address can be bound. This is unrecoverable.
    """
    try:
        candidates = socket.getaddrinfo(
            host or None,
            port,
            socket.AF_INET,
            socket.SOCK_STREAM,
            0,
            socket.AI_PASSIVE,
        )
    except socket.gaierror as e:
        raise TransportError(f"Cannot resolve listen address for port {port}: {e}") from e

    last_error: OSError | None = None
    for family, socktype, proto, _, addr in candidates:
        try:
            sock = socket.socket(family, socktype, proto)
        except OSError as e:
            last_error = e
            continue
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(addr)
            sock.listen(LISTEN_BACKLOG)
        except OSError as e:
            last_error = e
            sock.close()
            continue
        logger.debug("Listening on %s", sock.getsockname())
        return sock

    raise TransportError(f"Failed to bind to port {port}: {last_error}")


def accept(server: socket.socket) -> Link:
    """Wait for and accept the next transmitter.

    Raises:
        TransportError: If accept fails.
    """
    try:
        sock, addr = server.accept()
    except OSError as e:
        raise TransportError(f"Error accepting connection: {e}") from e
    sock.settimeout(None)
    return Link(sock)
