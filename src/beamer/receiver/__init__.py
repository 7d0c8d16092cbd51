"""Receiver side - destination file writes, link sessions and accept loop."""

from beamer.receiver.server import ReceiverServer
from beamer.receiver.session import ReceiverSession, SessionState
from beamer.receiver.writer import (
    apply_mode,
    backup_file,
    backup_path_for,
    create_file,
    receive_payload,
)

__all__ = [
    "ReceiverServer",
    "ReceiverSession",
    "SessionState",
    "apply_mode",
    "backup_file",
    "backup_path_for",
    "create_file",
    "receive_payload",
]
