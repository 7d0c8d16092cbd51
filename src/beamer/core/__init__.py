"""Core module - Frame codec, transport, configuration and shared types."""

from beamer.core.config import (
    BACKUP_SUFFIX,
    DEFAULT_FILE_MODE,
    ReceiverConfig,
    TransmitterConfig,
    parse_file_mode,
)
from beamer.core.frame import (
    DISCONNECT,
    HEADER_LEN,
    decode_size,
    encode_size,
    read_size,
)
from beamer.core.transport import Link, LinkState, accept, dial, listen
from beamer.core.types import (
    BeamerError,
    FrameError,
    TransferError,
    TransferResult,
    TransmitError,
    TransportError,
    WatchError,
)

__all__ = [
    # Config
    "BACKUP_SUFFIX",
    "DEFAULT_FILE_MODE",
    "ReceiverConfig",
    "TransmitterConfig",
    "parse_file_mode",
    # Frame
    "DISCONNECT",
    "HEADER_LEN",
    "decode_size",
    "encode_size",
    "read_size",
    # Transport
    "Link",
    "LinkState",
    "accept",
    "dial",
    "listen",
    # Types
    "BeamerError",
    "FrameError",
    "TransferError",
    "TransferResult",
    "TransmitError",
    "TransportError",
    "WatchError",
]
