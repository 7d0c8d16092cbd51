"""Tests for the frame header codec."""

import struct

import pytest

from beamer.core.frame import (
    DISCONNECT,
    HEADER_LEN,
    MAX_FRAME_SIZE,
    decode_size,
    encode_size,
    read_size,
)
from beamer.core.transport import Link
from beamer.core.types import FrameError


class TestEncodeSize:
    """Tests for encode_size."""

    def test_fixed_width_network_order(self) -> None:
        """Header should be 8 bytes, big-endian."""
        assert HEADER_LEN == 8
        assert encode_size(5) == b"\x00\x00\x00\x00\x00\x00\x00\x05"
        assert encode_size(0x0102) == b"\x00\x00\x00\x00\x00\x00\x01\x02"

    def test_disconnect_sentinel(self) -> None:
        """Zero encodes to an all-zero header."""
        assert encode_size(DISCONNECT) == bytes(HEADER_LEN)

    def test_large_size(self) -> None:
        """Sizes beyond 32 bits should fit."""
        size = 5 * 2**32 + 7
        assert struct.unpack("!Q", encode_size(size))[0] == size

    def test_negative_rejected(self) -> None:
        """Negative sizes are not representable."""
        with pytest.raises(FrameError, match="out of range"):
            encode_size(-1)

    def test_too_large_rejected(self) -> None:
        """Sizes above 64 bits are not representable."""
        with pytest.raises(FrameError):
            encode_size(MAX_FRAME_SIZE + 1)


class TestDecodeSize:
    """Tests for decode_size."""

    def test_decode(self) -> None:
        """Should decode a full header."""
        assert decode_size(b"\x00\x00\x00\x00\x00\x00\x00\x06") == 6

    def test_short_header_is_not_ok(self) -> None:
        """Fewer than 8 bytes means the peer went away."""
        assert decode_size(b"") is None
        assert decode_size(b"\x00\x00\x00\x05") is None

    def test_extra_bytes_ignored(self) -> None:
        """Only the first 8 bytes are the header."""
        assert decode_size(encode_size(9) + b"payload") == 9


class TestReadSize:
    """Tests for reading headers off a link."""

    def test_reads_header(self, link_pair: tuple[Link, Link]) -> None:
        """Should read one header and leave the payload."""
        tx, rx = link_pair
        tx.send_all(encode_size(5) + b"hello")

        assert read_size(rx) == 5
        assert rx.recv_exact(5) == b"hello"

    def test_header_split_across_writes(self, link_pair: tuple[Link, Link]) -> None:
        """A header arriving in pieces is reassembled."""
        tx, rx = link_pair
        raw = encode_size(300)
        tx.send_all(raw[:3])
        tx.send_all(raw[3:])

        assert read_size(rx) == 300

    def test_peer_closed(self, link_pair: tuple[Link, Link]) -> None:
        """End of stream yields None."""
        tx, rx = link_pair
        tx.close()

        assert read_size(rx) is None

    def test_peer_closed_mid_header(self, link_pair: tuple[Link, Link]) -> None:
        """A truncated header yields None."""
        tx, rx = link_pair
        tx.send_all(b"\x00\x00\x00")
        tx.close()

        assert read_size(rx) is None
