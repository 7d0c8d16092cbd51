"""Configuration classes for beamer.

Each component receives its settings through one of these objects
instead of reading process-wide state.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_FILE_MODE = 0o755
DEFAULT_POLL_INTERVAL_S = 1.0
BACKUP_SUFFIX = ".prev"
MAX_FILE_MODE = 0o7777


def parse_file_mode(text: str) -> int:
    """Parse an octal file mode such as "0755", "644" or "0o600".

    Raises:
        ValueError: If text is not octal or exceeds 0o7777.
    """
    value = text.strip().lower()
    if value.startswith("0o"):
        value = value[2:]
    try:
        mode = int(value, 8)
    except ValueError:
        raise ValueError(f"invalid file mode {text!r}") from None
    if mode < 0 or mode > MAX_FILE_MODE:
        raise ValueError(f"invalid file mode {text!r}")
    return mode


def _check_port(port: int, minimum: int = 0) -> None:
    if not minimum <= port <= 65535:
        raise ValueError(f"port out of range: {port}")


@dataclass(frozen=True)
class TransmitterConfig:
    """Settings for the transmitting side.

    Attributes:
        watch_dir: Directory containing the watched file.
        filename: Name of the watched file inside watch_dir.
        host: Receiver host name or address.
        port: Receiver TCP port.
        use_polling: Detect changes by periodic stat instead of OS events.
        poll_interval_s: Stat interval when use_polling is set.
    """

    watch_dir: Path
    filename: str
    host: str
    port: int
    use_polling: bool = False
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S

    def __post_init__(self) -> None:
        object.__setattr__(self, "watch_dir", Path(self.watch_dir).expanduser().resolve())
        if not self.filename or os.sep in self.filename or "/" in self.filename:
            raise ValueError(f"filename must be a bare file name: {self.filename!r}")
        _check_port(self.port, minimum=1)
        if self.poll_interval_s <= 0:
            raise ValueError("poll interval must be positive")

    @property
    def watch_path(self) -> Path:
        """Absolute path of the watched file."""
        return self.watch_dir / self.filename


@dataclass(frozen=True)
class ReceiverConfig:
    """Settings for the receiving side.

    Attributes:
        port: TCP port to listen on (0 picks a free port).
        destination: Path of the file kept in sync.
        file_mode: Mode bits applied after each successful write.
        bind_host: Address to bind, empty for all interfaces.
        header_timeout_s: How long to wait for the next frame header
            before checking the link again (None waits indefinitely).
    """

    port: int
    destination: Path
    file_mode: int = DEFAULT_FILE_MODE
    bind_host: str = ""
    header_timeout_s: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "destination", Path(self.destination).expanduser())
        _check_port(self.port)
        if not 0 <= self.file_mode <= MAX_FILE_MODE:
            raise ValueError(f"invalid file mode {self.file_mode:o}")

    @property
    def backup_path(self) -> Path:
        """Path of the single retained previous version."""
        return self.destination.with_name(self.destination.name + BACKUP_SUFFIX)
