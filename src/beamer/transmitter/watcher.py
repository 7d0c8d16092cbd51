"""Change detection for the watched file.

This module provides:
- WriteCompletionHandler: Filters watchdog events down to completed writes
  of one file name
- ChangeDetector: Owns the observer and hands out one trigger per
  completed write

Only close-after-write notifications count, so a transmission never races
a writer that is still filling the file. Bursts are not coalesced: every
qualifying event yields its own trigger. Where the platform has no
close-write notification, the polling observer can be used instead and a
detected modification becomes the trigger.
"""

from __future__ import annotations

import logging
import queue
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from beamer.core.types import WatchError

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

    from beamer.core.config import TransmitterConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteTrigger:
    """One completed write of the watched file."""

    path: Path
    timestamp: float = field(default_factory=time.time)


def _event_path(raw: str | bytes) -> Path:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    return Path(raw)


class WriteCompletionHandler(FileSystemEventHandler):
    """Turns watchdog events for one file name into write triggers."""

    def __init__(
        self,
        target: Path,
        triggers: queue.Queue[WriteTrigger],
        trigger_on_modify: bool = False,
    ) -> None:
        """Initialize the handler.

        Args:
            target: Absolute path of the watched file.
            triggers: Queue receiving one WriteTrigger per qualifying event.
            trigger_on_modify: Treat modifications as completed writes
                (polling mode, which cannot see close events).
        """
        super().__init__()
        self._target = target
        self._triggers = triggers
        self._trigger_on_modify = trigger_on_modify

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        path = _event_path(event.src_path)
        return path.name == self._target.name and path.parent == self._target.parent

    def _fire(self, event: FileSystemEvent) -> None:
        if not self._matches(event):
            return
        trigger = WriteTrigger(path=self._target)
        self._triggers.put(trigger)
        logger.debug("Write completed on %s (%s)", self._target, event.event_type)

    def on_closed(self, event: FileSystemEvent) -> None:
        """Handle close-after-write event."""
        self._fire(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        """Handle modified event (polling mode only)."""
        if self._trigger_on_modify:
            self._fire(event)

    def on_created(self, event: FileSystemEvent) -> None:
        """Handle created event (polling mode only)."""
        if self._trigger_on_modify:
            self._fire(event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        """Deletions never trigger a transmission."""


class ChangeDetector:
    """Watches a single file for completed writes.

    Usage:
        with ChangeDetector(config) as detector:
            while True:
                trigger = detector.next_trigger()
                ...
    """

    def __init__(self, config: TransmitterConfig) -> None:
        self._config = config
        self._triggers: queue.Queue[WriteTrigger] = queue.Queue()
        self._handler = WriteCompletionHandler(
            target=config.watch_path,
            triggers=self._triggers,
            trigger_on_modify=config.use_polling,
        )
        self._observer: BaseObserver
        if config.use_polling:
            self._observer = PollingObserver(timeout=config.poll_interval_s)
        else:
            self._observer = Observer()
        self._running = False

    @property
    def watch_path(self) -> Path:
        """Get the watched file path."""
        return self._config.watch_path

    @property
    def is_running(self) -> bool:
        """Check if the detector is running."""
        return self._running

    def start(self) -> None:
        """Register the watch on the target directory.

        Raises:
            WatchError: If the directory is missing or the watch cannot
                be registered.
        """
        if self._running:
            return

        watch_dir = self._config.watch_dir
        if not watch_dir.is_dir():
            raise WatchError(f"Watch path must be a directory: {watch_dir}")

        try:
            self._observer.schedule(self._handler, str(watch_dir), recursive=False)
            self._observer.start()
        except OSError as e:
            raise WatchError(f"Cannot watch {watch_dir}: {e}") from e

        self._running = True
        logger.info("Watching %s", self.watch_path)

    def next_trigger(self, timeout: float | None = None) -> WriteTrigger | None:
        """Block until the next completed write.

        Args:
            timeout: Seconds to wait, or None to wait forever.

        Returns:
            The next trigger, or None if the timeout expired.
        """
        try:
            return self._triggers.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self) -> None:
        """Stop watching."""
        if not self._running:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._running = False

    def __enter__(self) -> ChangeDetector:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.stop()
