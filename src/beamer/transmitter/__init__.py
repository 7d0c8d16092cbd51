"""Transmitter side - change detection and file push."""

from beamer.transmitter.sender import Transmitter, send_file
from beamer.transmitter.watcher import ChangeDetector, WriteCompletionHandler, WriteTrigger

__all__ = [
    "ChangeDetector",
    "Transmitter",
    "WriteCompletionHandler",
    "WriteTrigger",
    "send_file",
]
