"""Per-link frame serving for the receiver.

A session reads frames from one link until the transmitter disconnects,
as a small state machine:

    AWAITING_FRAME --header-ok(0)----> GRACEFUL_CLOSE
    AWAITING_FRAME --header-ok(n)----> RECEIVING_PAYLOAD
    AWAITING_FRAME --header-fail-----> DISCONNECTED
    RECEIVING_PAYLOAD --payload-ok---> WRITE_COMPLETE --> AWAITING_FRAME
    RECEIVING_PAYLOAD --payload-fail-> AWAITING_FRAME

A failed payload never ends the session by itself; if the link is gone
the next header read fails and the session ends there.
"""

from __future__ import annotations

import logging
import selectors
from enum import Enum
from typing import TYPE_CHECKING

from beamer.core.frame import DISCONNECT, read_size
from beamer.core.types import TransferError, TransferResult
from beamer.receiver.writer import apply_mode, backup_file, receive_payload

if TYPE_CHECKING:
    from beamer.core.config import ReceiverConfig
    from beamer.core.transport import Link

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """State of a link being served."""

    AWAITING_FRAME = "awaiting_frame"
    RECEIVING_PAYLOAD = "receiving_payload"
    WRITE_COMPLETE = "write_complete"
    GRACEFUL_CLOSE = "graceful_close"
    DISCONNECTED = "disconnected"


FINAL_STATES = frozenset({SessionState.GRACEFUL_CLOSE, SessionState.DISCONNECTED})


class InvalidTransition(RuntimeError):
    """An event arrived in a state that does not accept it."""


class ReceiverSession:
    """Serves frames from a single link into the destination file."""

    def __init__(self, link: Link, config: ReceiverConfig) -> None:
        self._link = link
        self._config = config
        self._state = SessionState.AWAITING_FRAME
        self._pending_size = 0
        self._last_result: TransferResult | None = None
        self.completed: list[TransferResult] = []
        self.failures: list[TransferError] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_finished(self) -> bool:
        return self._state in FINAL_STATES

    def _expect(self, *states: SessionState) -> None:
        if self._state not in states:
            raise InvalidTransition(f"unexpected event in state {self._state.value}")

    # Transitions

    def on_header_ok(self, size: int) -> SessionState:
        self._expect(SessionState.AWAITING_FRAME)
        if size == DISCONNECT:
            logger.info("zero file size - client disconnect")
            self._state = SessionState.GRACEFUL_CLOSE
        else:
            logger.info("start receiving file %d bytes", size)
            self._pending_size = size
            self._state = SessionState.RECEIVING_PAYLOAD
        return self._state

    def on_header_fail(self) -> SessionState:
        self._expect(SessionState.AWAITING_FRAME)
        logger.info("transmitter disconnected from %s", self._link.remote)
        self._state = SessionState.DISCONNECTED
        return self._state

    def on_payload_ok(self, result: TransferResult) -> SessionState:
        self._expect(SessionState.RECEIVING_PAYLOAD)
        self._last_result = result
        self._pending_size = 0
        self._state = SessionState.WRITE_COMPLETE
        return self._state

    def on_payload_fail(self, error: TransferError) -> SessionState:
        self._expect(SessionState.RECEIVING_PAYLOAD)
        logger.warning(
            "transfer to %s failed (%d of %d bytes): %s",
            self._config.destination,
            error.bytes_received,
            error.expected,
            error,
        )
        self.failures.append(error)
        self._pending_size = 0
        self._state = SessionState.AWAITING_FRAME
        return self._state

    # Actions

    def _read_header(self, selector: selectors.BaseSelector) -> None:
        # Readiness is only a hint; read_size copes with partial headers
        if not selector.select(timeout=self._config.header_timeout_s):
            return
        size = read_size(self._link)
        if size is None:
            self.on_header_fail()
        else:
            self.on_header_ok(size)

    def _receive(self) -> None:
        destination = self._config.destination
        backup_file(destination)
        try:
            result = receive_payload(
                self._link, self._pending_size, destination, self._config.file_mode
            )
        except TransferError as e:
            self.on_payload_fail(e)
        else:
            self.on_payload_ok(result)

    def _finish_write(self) -> None:
        result = self._last_result
        if result is None:
            raise InvalidTransition("write completed without a payload result")
        apply_mode(result.path, self._config.file_mode)
        logger.info("received %d bytes written to %s", result.size, result.path)
        self.completed.append(result)
        self._last_result = None
        self._state = SessionState.AWAITING_FRAME

    def step(self, selector: selectors.BaseSelector) -> SessionState:
        """Advance the session by one action."""
        if self._state is SessionState.AWAITING_FRAME:
            self._read_header(selector)
        elif self._state is SessionState.RECEIVING_PAYLOAD:
            self._receive()
        elif self._state is SessionState.WRITE_COMPLETE:
            self._finish_write()
        return self._state

    def serve(self) -> SessionState:
        """Serve frames until the link closes or sends the disconnect frame.

        Returns:
            The final state (GRACEFUL_CLOSE or DISCONNECTED).
        """
        with selectors.DefaultSelector() as selector:
            selector.register(self._link.sock, selectors.EVENT_READ)
            while not self.is_finished:
                self.step(selector)
        return self._state
