"""Tests for livecode.session.wire (Wire, WireEvent, EventType)."""

from __future__ import annotations

import asyncio
import sys
import threading

import pytest

from livecode.config import SessionConfig
from livecode.pty import InteractiveOutcome, SessionManager, SpawnFailed
from livecode.session.wire import EventType, Wire, WireEvent


# ---------------------------------------------------------------------------
# EventType / WireEvent
# ---------------------------------------------------------------------------


class TestEventType:
    def test_all_variants_exist(self) -> None:
        expected = {
            "SESSION_STARTED",
            "BATCH_COMPLETED",
            "SESSION_EXITED",
            "SESSION_CLOSED",
            "ERROR",
        }
        assert {e.name for e in EventType} == expected

    def test_values_are_lowercase(self) -> None:
        for e in EventType:
            assert e.value == e.name.lower()


class TestWireEvent:
    def test_defaults(self) -> None:
        event = WireEvent(type=EventType.ERROR)
        assert event.data == {}


# ---------------------------------------------------------------------------
# Wire: send/subscribe
# ---------------------------------------------------------------------------


class TestWire:
    def test_send_to_subscriber(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_error("oops")
        event = q.get_nowait()
        assert event is not None
        assert event.type == EventType.ERROR
        assert event.data["error"] == "oops"

    def test_send_to_multiple_subscribers(self) -> None:
        wire = Wire()
        q1 = wire.subscribe()
        q2 = wire.subscribe()
        wire.send_session_closed("abc", killed=True)
        assert q1.get_nowait().data == {"session_id": "abc", "killed": True}
        assert q2.get_nowait().data == {"session_id": "abc", "killed": True}

    def test_unsubscribe(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.unsubscribe(q)
        wire.send_error("ignored")
        assert q.empty()

    def test_close_sends_sentinel_and_drops_later_events(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.close()
        wire.send_error("after close")
        assert q.get_nowait() is None
        assert q.empty()

    def test_exited_marker_stripped(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_session_exited("abc", "\n[Program finished successfully]")
        event = q.get_nowait()
        assert event.data["marker"] == "[Program finished successfully]"

    def test_batch_output_capped(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        wire.send_batch_completed(True, 0, "x" * 2000)
        event = q.get_nowait()
        assert len(event.data["output"]) == 500

    async def test_send_from_other_thread(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        thread = threading.Thread(target=wire.send_error, args=("from thread",))
        thread.start()
        thread.join()
        event = await asyncio.wait_for(q.get(), timeout=2)
        assert event is not None
        assert event.data["error"] == "from thread"


# ---------------------------------------------------------------------------
# SessionManager events
# ---------------------------------------------------------------------------


def _drain_events(q: asyncio.Queue) -> list[WireEvent]:
    events = []
    while not q.empty():
        events.append(q.get_nowait())
    return events


class TestManagerEvents:
    async def test_batch_completed(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        manager = SessionManager(
            SessionConfig(interpreter=sys.executable, grace_period=2.0), wire=wire
        )
        await manager.start("print('hi')")
        events = _drain_events(q)
        assert [e.type for e in events] == [EventType.BATCH_COMPLETED]
        assert events[0].data == {"success": True, "exit_code": 0, "output": "hi\n"}

    async def test_interactive_lifecycle(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        manager = SessionManager(
            SessionConfig(interpreter=sys.executable, grace_period=0.2), wire=wire
        )
        outcome = await manager.start("input()")
        assert isinstance(outcome, InteractiveOutcome)
        session_id = outcome.session_id

        manager.feed(session_id, "\n")
        loop = asyncio.get_running_loop()
        deadline = loop.time() + 10
        while not manager.get(session_id).exit_reported:
            assert loop.time() < deadline
            manager.drain(session_id)
            await asyncio.sleep(0.02)
        manager.drain(session_id)
        await manager.close(session_id)

        events = _drain_events(q)
        assert [e.type for e in events] == [
            EventType.SESSION_STARTED,
            EventType.SESSION_EXITED,
            EventType.SESSION_CLOSED,
        ]
        assert events[0].data["session_id"] == session_id
        assert events[1].data["marker"] == "[Program finished successfully]"

    async def test_spawn_failure_reports_error(self) -> None:
        wire = Wire()
        q = wire.subscribe()
        manager = SessionManager(
            SessionConfig(interpreter="/nonexistent/python3"), wire=wire
        )
        with pytest.raises(SpawnFailed):
            await manager.start("pass")
        events = _drain_events(q)
        assert [e.type for e in events] == [EventType.ERROR]
