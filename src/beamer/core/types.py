"""Shared types for beamer.

This module defines the error hierarchy and result records used by both
the transmitter and the receiver.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class BeamerError(Exception):
    """Base class for all beamer errors."""


class FrameError(BeamerError):
    """Invalid value for a frame size header."""


class TransportError(BeamerError):
    """Failed to dial, bind or accept a link."""


class WatchError(BeamerError):
    """Failed to register the watch on the target directory."""


class TransmitError(BeamerError):
    """Failed to stat, open or send the watched file."""


class TransferError(BeamerError):
    """A single inbound transfer failed on the receiver.

    The receiver recovers from these; the link (or the next one) keeps
    being served.
    """

    def __init__(self, message: str, bytes_received: int = 0, expected: int = 0) -> None:
        super().__init__(message)
        self.bytes_received = bytes_received
        self.expected = expected


@dataclass(frozen=True)
class TransferResult:
    """Outcome of one completed transfer.

    Attributes:
        path: File that was sent or written.
        size: Number of payload bytes.
        duration_s: Wall time spent moving the payload.
    """

    path: Path
    size: int
    duration_s: float

    @property
    def throughput_mbps(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return (self.size * 8 / 1_000_000) / self.duration_s
