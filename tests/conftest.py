"""Shared fixtures for beamer tests."""

from __future__ import annotations

import socket
from collections.abc import Generator

import pytest

from beamer.core.transport import Link


@pytest.fixture
def link_pair() -> Generator[tuple[Link, Link], None, None]:
    """A connected (transmitter, receiver) pair of links."""
    a, b = socket.socketpair()
    tx, rx = Link(a), Link(b)
    yield tx, rx
    tx.close()
    rx.close()
