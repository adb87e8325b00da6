"""Tests for livecode.pty.session (SessionStatus, drain marker protocol)."""

from __future__ import annotations

import queue
import time

import pytest

from livecode.pty.errors import SessionIOError, StatusCheckFailed
from livecode.pty.session import (
    EXIT_MARKERS,
    FAILED_MARKER,
    FINISHED_MARKER,
    TERMINATED_MARKER,
    Session,
    SessionStatus,
    new_session_id,
    take_available,
)


class FakeTransport:
    """Stands in for PTYTransport; ``exit_code`` drives poll()."""

    def __init__(self) -> None:
        self.exit_code: int | None = None
        self.poll_error: bool = False
        self.written: list[bytes] = []
        self.killed = False
        self.closed = False
        self.pid = 4242

    def poll(self) -> int | None:
        if self.poll_error:
            raise StatusCheckFailed("probe failed")
        return self.exit_code

    def write(self, data: bytes) -> None:
        if self.closed:
            raise SessionIOError("Terminal is closed")
        self.written.append(data)

    def kill(self, timeout: float = 2.0) -> None:
        self.killed = True
        self.exit_code = -9

    def close(self) -> None:
        self.closed = True


class FakePump:
    def __init__(self) -> None:
        self.finished = False


def _session(exit_settle: float = 0.2) -> tuple[Session, FakeTransport, FakePump]:
    transport = FakeTransport()
    pump = FakePump()
    session = Session(
        id=new_session_id(),
        transport=transport,  # type: ignore[arg-type]
        pump=pump,  # type: ignore[arg-type]
        output=queue.SimpleQueue(),
        exit_settle=exit_settle,
    )
    return session, transport, pump


# ---------------------------------------------------------------------------
# SessionStatus
# ---------------------------------------------------------------------------


class TestSessionStatus:
    def test_values(self) -> None:
        assert SessionStatus.RUNNING == "running"
        assert SessionStatus.SUCCEEDED == "succeeded"
        assert SessionStatus.FAILED == "failed"

    def test_from_exit_code(self) -> None:
        assert SessionStatus.from_exit_code(None) is SessionStatus.RUNNING
        assert SessionStatus.from_exit_code(0) is SessionStatus.SUCCEEDED
        assert SessionStatus.from_exit_code(1) is SessionStatus.FAILED
        assert SessionStatus.from_exit_code(-9) is SessionStatus.FAILED

    def test_exited(self) -> None:
        assert SessionStatus.RUNNING.exited is False
        assert SessionStatus.SUCCEEDED.exited is True
        assert SessionStatus.FAILED.exited is True


class TestHelpers:
    def test_session_ids_unique(self) -> None:
        ids = {new_session_id() for _ in range(1000)}
        assert len(ids) == 1000

    def test_session_id_is_128_bit_hex(self) -> None:
        sid = new_session_id()
        assert len(sid) == 32
        int(sid, 16)

    def test_take_available_empty(self) -> None:
        assert take_available(queue.SimpleQueue()) == []

    def test_take_available_in_order(self) -> None:
        q: queue.SimpleQueue[str] = queue.SimpleQueue()
        for s in ("a", "b", "c"):
            q.put(s)
        assert take_available(q) == ["a", "b", "c"]
        assert take_available(q) == []

    def test_markers_distinct(self) -> None:
        assert len(set(EXIT_MARKERS)) == 3


# ---------------------------------------------------------------------------
# Session.drain
# ---------------------------------------------------------------------------


class TestDrainRunning:
    def test_no_output_is_empty(self) -> None:
        session, _, _ = _session()
        assert session.drain() == []

    def test_returns_chunks_in_order(self) -> None:
        session, _, _ = _session()
        session.output.put("a")
        session.output.put("b")
        assert session.drain() == ["a", "b"]
        assert session.drain() == []


class TestDrainExit:
    def test_success_marker_after_output(self) -> None:
        session, transport, pump = _session()
        session.output.put("done\n")
        transport.exit_code = 0
        pump.finished = True
        assert session.drain() == ["done\n", FINISHED_MARKER]

    def test_failure_marker(self) -> None:
        session, transport, pump = _session()
        transport.exit_code = 1
        pump.finished = True
        assert session.drain() == [FAILED_MARKER]

    def test_marker_emitted_once(self) -> None:
        session, transport, pump = _session()
        transport.exit_code = 0
        pump.finished = True
        assert session.drain() == [FINISHED_MARKER]
        assert session.drain() == []
        session.output.put("straggler")
        assert session.drain() == ["straggler"]
        assert session.exit_reported is True

    def test_marker_held_while_pump_running(self) -> None:
        session, transport, pump = _session(exit_settle=10.0)
        transport.exit_code = 0
        session.output.put("first")
        assert session.drain() == ["first"]

        # Pump delivers its last chunk, then reaches EOF
        session.output.put("last")
        pump.finished = True
        assert session.drain() == ["last", FINISHED_MARKER]

    def test_marker_released_after_settle(self) -> None:
        session, transport, _ = _session(exit_settle=0.05)
        transport.exit_code = 0
        assert session.drain() == []
        time.sleep(0.1)
        assert session.drain() == [FINISHED_MARKER]

    def test_probe_failure_reports_termination(self) -> None:
        session, transport, _ = _session()
        session.output.put("partial")
        transport.poll_error = True
        assert session.drain() == ["partial", TERMINATED_MARKER]
        assert session.exit_reported is False

    def test_repeated_probe_failure_reported_once(self) -> None:
        session, transport, _ = _session()
        transport.poll_error = True
        assert session.drain() == [TERMINATED_MARKER]
        assert session.drain() == []

    def test_real_marker_after_transient_probe_failure(self) -> None:
        session, transport, pump = _session()
        transport.poll_error = True
        assert session.drain() == [TERMINATED_MARKER]
        transport.poll_error = False
        assert session.drain() == []
        transport.exit_code = 0
        pump.finished = True
        session.output.put("done\n")
        assert session.drain() == ["done\n", FINISHED_MARKER]
        assert session.exit_reported is True


# ---------------------------------------------------------------------------
# Session.feed / status / release
# ---------------------------------------------------------------------------


class TestSessionIO:
    def test_feed_encodes_utf8(self) -> None:
        session, transport, _ = _session()
        session.feed("héllo\n")
        assert transport.written == ["héllo\n".encode("utf-8")]

    def test_status(self) -> None:
        session, transport, _ = _session()
        assert session.status() is SessionStatus.RUNNING
        transport.exit_code = 2
        assert session.status() is SessionStatus.FAILED

    def test_status_probe_failure_raises(self) -> None:
        session, transport, _ = _session()
        transport.poll_error = True
        with pytest.raises(StatusCheckFailed):
            session.status()

    def test_pending(self) -> None:
        session, _, _ = _session()
        session.output.put("x")
        session.output.put("y")
        assert session.pending == 2


class TestRelease:
    def test_kill_running(self) -> None:
        session, transport, _ = _session()
        session.release(kill=True)
        assert transport.killed is True
        assert transport.closed is True

    def test_kill_skipped_when_exited(self) -> None:
        session, transport, _ = _session()
        transport.exit_code = 0
        session.release(kill=True)
        assert transport.killed is False
        assert transport.closed is True

    def test_detach_leaves_child(self) -> None:
        session, transport, _ = _session()
        session.release(kill=False)
        assert transport.killed is False
        assert transport.closed is True

    def test_kill_when_probe_fails(self) -> None:
        session, transport, _ = _session()
        transport.poll_error = True
        session.release(kill=True)
        assert transport.killed is True

    def test_feed_after_release(self) -> None:
        session, _, _ = _session()
        session.release(kill=True)
        with pytest.raises(SessionIOError):
            session.feed("x\n")
