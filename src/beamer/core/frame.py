"""Transfer frame header codec.

Every frame on a link starts with the payload length as an 8-byte
unsigned integer in network byte order. A length of zero is the
disconnect sentinel and carries no payload.
"""

from __future__ import annotations

import struct
from typing import TYPE_CHECKING

from beamer.core.types import FrameError

if TYPE_CHECKING:
    from beamer.core.transport import Link

SIZE_HEADER = struct.Struct("!Q")
HEADER_LEN = SIZE_HEADER.size
MAX_FRAME_SIZE = 2**64 - 1

DISCONNECT = 0


def encode_size(size: int) -> bytes:
    """Encode a payload length as a frame header.

    Raises:
        FrameError: If size is negative or does not fit in the header.
    """
    if size < 0 or size > MAX_FRAME_SIZE:
        raise FrameError(f"frame size out of range: {size}")
    return SIZE_HEADER.pack(size)


def decode_size(raw: bytes) -> int | None:
    """Decode a frame header.

    Returns:
        The payload length, or None when fewer than HEADER_LEN bytes are
        available (the caller treats that as the peer going away).
    """
    if len(raw) < HEADER_LEN:
        return None
    (size,) = SIZE_HEADER.unpack_from(raw)
    return int(size)


def read_size(link: Link) -> int | None:
    """Read one frame header from a link.

    Returns None if the stream ends or fails before a whole header arrives.
    """
    try:
        raw = link.recv_exact(HEADER_LEN)
    except OSError:
        return None
    return decode_size(raw)
