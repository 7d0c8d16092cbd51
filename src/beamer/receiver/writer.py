"""Destination file handling for the receiver.

This module provides:
- backup_file: Keep one previous generation as <path>.prev
- create_file: Open the destination for writing, creating parent
  directories on demand
- receive_payload: Copy exactly one frame's payload from the link to disk
- apply_mode: Set the configured mode bits after a successful write
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

from beamer.core.config import BACKUP_SUFFIX
from beamer.core.transport import Link
from beamer.core.types import TransferError, TransferResult

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


def backup_path_for(path: Path) -> Path:
    """Get the backup path for a destination file."""
    return path.with_name(path.name + BACKUP_SUFFIX)


def backup_file(path: Path) -> bool:
    """Rename path to its backup, replacing any older backup.

    A failed rename (typically: no file yet) is logged and otherwise
    ignored; the caller goes on to create the file fresh.

    Returns:
        True if a backup was made.
    """
    backup = backup_path_for(path)
    try:
        os.replace(path, backup)
    except OSError as e:
        logger.warning("rename %s %s: %s", path, backup, e.strerror or e)
        return False
    logger.debug("Backed up %s to %s", path, backup)
    return True


def create_file(path: Path, mode: int) -> int:
    """Create or truncate path for writing.

    If the open fails because a parent directory is missing, the parent
    directories are created and the open is tried once more.

    Returns:
        An unbuffered file descriptor; the caller closes it.

    Raises:
        OSError: If the file still cannot be opened.
    """
    try:
        return _open_for_write(path, mode)
    except (FileNotFoundError, NotADirectoryError):
        path.parent.mkdir(parents=True, exist_ok=True)
    return _open_for_write(path, mode)


def _open_for_write(path: Path, mode: int) -> int:
    return os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)


def write_all(fd: int, data: bytes) -> None:
    """Write all of data to fd, looping over partial writes."""
    view = memoryview(data)
    while view:
        written = os.write(fd, view)
        view = view[written:]


def drain(link: Link, count: int) -> int:
    """Discard up to count bytes from the link.

    Returns:
        Number of bytes actually consumed.
    """
    consumed = 0
    while consumed < count:
        try:
            chunk = link.recv(min(COPY_CHUNK_SIZE, count - consumed))
        except OSError as e:
            logger.debug("Link failed while draining payload: %s", e)
            break
        if not chunk:
            break
        consumed += len(chunk)
    return consumed


def _copy_payload(link: Link, fd: int, size: int, path: Path) -> None:
    received = 0
    while received < size:
        try:
            chunk = link.recv(min(COPY_CHUNK_SIZE, size - received))
        except OSError as e:
            raise TransferError(
                f"error receiving data: {e}", bytes_received=received, expected=size
            ) from e
        if not chunk:
            raise TransferError(
                f"link closed after {received} of {size} bytes",
                bytes_received=received,
                expected=size,
            )
        received += len(chunk)
        try:
            write_all(fd, chunk)
        except OSError as e:
            consumed = drain(link, size - received)
            raise TransferError(
                f"error writing file {path}: {e}",
                bytes_received=received + consumed,
                expected=size,
            ) from e


def receive_payload(link: Link, size: int, path: Path, mode: int) -> TransferResult:
    """Write exactly size bytes from the link into path.

    On a short payload the partially written file is left in place. On a
    local create/write failure the rest of the payload is still consumed
    so the link stays aligned on frame boundaries.

    Raises:
        TransferError: If the payload is short or cannot be written.
    """
    start = time.monotonic()
    try:
        fd = create_file(path, mode)
    except OSError as e:
        consumed = drain(link, size)
        raise TransferError(
            f"error creating file {path}: {e}", bytes_received=consumed, expected=size
        ) from e

    try:
        _copy_payload(link, fd, size, path)
    except TransferError:
        try:
            os.close(fd)
        except OSError as e:
            logger.debug("error closing %s: %s", path, e)
        raise

    try:
        os.close(fd)
    except OSError as e:
        raise TransferError(
            f"error writing file {path}: {e}", bytes_received=size, expected=size
        ) from e

    return TransferResult(path=path, size=size, duration_s=time.monotonic() - start)


def apply_mode(path: Path, mode: int) -> bool:
    """Set the file mode bits; failures are logged only."""
    try:
        os.chmod(path, mode)
    except OSError as e:
        logger.warning("error writing file mode %o on %s: %s", mode, path, e)
        return False
    return True
