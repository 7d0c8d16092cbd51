"""Tests for the per-link receiver state machine."""

import errno
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from beamer.core.config import ReceiverConfig
from beamer.core.transport import Link
from beamer.core.types import TransferError, TransferResult
from beamer.receiver import writer
from beamer.receiver.session import InvalidTransition, ReceiverSession, SessionState
from tests.wire import DISCONNECT_FRAME, frame


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def config(out_dir: Path) -> ReceiverConfig:
    return ReceiverConfig(port=0, destination=out_dir / "a.txt", file_mode=0o640)


class TestServe:
    """End-to-end behaviour of one session over a socket pair."""

    def test_first_transfer(self, config: ReceiverConfig, link_pair: tuple[Link, Link]) -> None:
        """No prior file: create it, no backup."""
        tx, rx = link_pair
        tx.send_all(frame(b"hello"))
        tx.close()

        session = ReceiverSession(rx, config)
        state = session.serve()

        assert state is SessionState.DISCONNECTED
        assert config.destination.read_bytes() == b"hello"
        assert not config.backup_path.exists()
        assert stat.S_IMODE(config.destination.stat().st_mode) == 0o640
        assert [r.size for r in session.completed] == [5]

    def test_second_transfer_keeps_backup(
        self, config: ReceiverConfig, link_pair: tuple[Link, Link]
    ) -> None:
        """The previous version moves to .prev."""
        config.destination.parent.mkdir(parents=True)
        config.destination.write_bytes(b"hello")
        tx, rx = link_pair
        tx.send_all(frame(b"world!") + DISCONNECT_FRAME)

        state = ReceiverSession(rx, config).serve()

        assert state is SessionState.GRACEFUL_CLOSE
        assert config.destination.read_bytes() == b"world!"
        assert config.backup_path.read_bytes() == b"hello"

    def test_backup_holds_previous_transfer_only(
        self, config: ReceiverConfig, link_pair: tuple[Link, Link]
    ) -> None:
        """After N transfers the single backup holds transfer N-1."""
        tx, rx = link_pair
        tx.send_all(frame(b"one") + frame(b"two") + frame(b"three") + DISCONNECT_FRAME)

        session = ReceiverSession(rx, config)
        session.serve()

        assert config.destination.read_bytes() == b"three"
        assert config.backup_path.read_bytes() == b"two"
        backups = sorted(p.name for p in config.destination.parent.iterdir())
        assert backups == ["a.txt", "a.txt.prev"]
        assert len(session.completed) == 3

    def test_disconnect_frame_leaves_files_alone(
        self, config: ReceiverConfig, link_pair: tuple[Link, Link]
    ) -> None:
        """A zero header ends the session without touching disk state."""
        config.destination.parent.mkdir(parents=True)
        config.destination.write_bytes(b"current")
        config.backup_path.write_bytes(b"previous")
        tx, rx = link_pair
        tx.send_all(DISCONNECT_FRAME + frame(b"never read"))

        state = ReceiverSession(rx, config).serve()

        assert state is SessionState.GRACEFUL_CLOSE
        assert config.destination.read_bytes() == b"current"
        assert config.backup_path.read_bytes() == b"previous"

    def test_short_payload_recovers(
        self, config: ReceiverConfig, link_pair: tuple[Link, Link]
    ) -> None:
        """A truncated payload fails that transfer and the session then ends."""
        tx, rx = link_pair
        tx.send_all(frame(b"hello"))
        tx.send_all(b"\x00\x00\x00\x00\x00\x00\x00\x0aabc")
        tx.close()

        session = ReceiverSession(rx, config)
        state = session.serve()

        assert state is SessionState.DISCONNECTED
        assert len(session.completed) == 1
        assert len(session.failures) == 1
        assert session.failures[0].bytes_received == 3
        assert config.destination.read_bytes() == b"abc"
        assert config.backup_path.read_bytes() == b"hello"

    def test_unwritable_destination_keeps_framing(
        self, tmp_path: Path, link_pair: tuple[Link, Link]
    ) -> None:
        """A failed write does not desynchronise the link."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        config = ReceiverConfig(port=0, destination=blocker / "a.txt")
        tx, rx = link_pair
        tx.send_all(frame(b"hello") + DISCONNECT_FRAME)

        session = ReceiverSession(rx, config)
        state = session.serve()

        assert state is SessionState.GRACEFUL_CLOSE
        assert len(session.failures) == 1
        assert session.completed == []

    def test_mode_failure_is_not_fatal(
        self, config: ReceiverConfig, link_pair: tuple[Link, Link]
    ) -> None:
        """A chmod failure still counts as a completed transfer."""
        tx, rx = link_pair
        tx.send_all(frame(b"hello") + DISCONNECT_FRAME)

        with patch("beamer.receiver.writer.os.chmod", side_effect=PermissionError("denied")):
            session = ReceiverSession(rx, config)
            session.serve()

        assert config.destination.read_bytes() == b"hello"
        assert len(session.completed) == 1

    def test_write_error_keeps_framing(
        self, config: ReceiverConfig, link_pair: tuple[Link, Link]
    ) -> None:
        """A disk error mid-write fails that transfer and the next frame still lands."""
        tx, rx = link_pair
        tx.send_all(frame(b"hello") + frame(b"world!") + DISCONNECT_FRAME)
        real_write_all = writer.write_all
        calls = []

        def fail_first(fd: int, data: bytes) -> None:
            calls.append(len(data))
            if len(calls) == 1:
                raise OSError(errno.EFBIG, "File too large")
            real_write_all(fd, data)

        with patch("beamer.receiver.writer.write_all", side_effect=fail_first):
            session = ReceiverSession(rx, config)
            state = session.serve()

        assert state is SessionState.GRACEFUL_CLOSE
        assert len(session.failures) == 1
        assert "File too large" in str(session.failures[0])
        assert [r.size for r in session.completed] == [6]
        assert config.destination.read_bytes() == b"world!"


class TestTransitions:
    """Direct tests of the transition functions."""

    @pytest.fixture
    def session(self, config: ReceiverConfig, link_pair: tuple[Link, Link]) -> ReceiverSession:
        return ReceiverSession(link_pair[1], config)

    def test_initial_state(self, session: ReceiverSession) -> None:
        assert session.state is SessionState.AWAITING_FRAME
        assert session.is_finished is False

    def test_header_zero(self, session: ReceiverSession) -> None:
        assert session.on_header_ok(0) is SessionState.GRACEFUL_CLOSE
        assert session.is_finished is True

    def test_header_then_payload(self, session: ReceiverSession, config: ReceiverConfig) -> None:
        assert session.on_header_ok(5) is SessionState.RECEIVING_PAYLOAD
        result = TransferResult(path=config.destination, size=5, duration_s=0.0)
        assert session.on_payload_ok(result) is SessionState.WRITE_COMPLETE

    def test_payload_fail_returns_to_awaiting(self, session: ReceiverSession) -> None:
        session.on_header_ok(5)
        error = TransferError("short", bytes_received=2, expected=5)
        assert session.on_payload_fail(error) is SessionState.AWAITING_FRAME
        assert session.failures == [error]

    def test_header_fail(self, session: ReceiverSession) -> None:
        assert session.on_header_fail() is SessionState.DISCONNECTED

    def test_payload_without_header(self, session: ReceiverSession, config: ReceiverConfig) -> None:
        result = TransferResult(path=config.destination, size=5, duration_s=0.0)
        with pytest.raises(InvalidTransition):
            session.on_payload_ok(result)

    def test_header_while_receiving(self, session: ReceiverSession) -> None:
        session.on_header_ok(5)
        with pytest.raises(InvalidTransition):
            session.on_header_ok(3)

    def test_write_complete_without_result(self, session: ReceiverSession) -> None:
        """Finishing a write that never produced a result is rejected."""
        session.on_header_ok(5)
        session._state = SessionState.WRITE_COMPLETE
        with pytest.raises(InvalidTransition, match="without a payload result"):
            session._finish_write()
