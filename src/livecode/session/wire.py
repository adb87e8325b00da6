"""Wire protocol — decouples the session manager from UI.

Session lifecycle events flow from the manager to subscribers (the CLI,
a desktop frontend, ...). Subscribers read from an asyncio queue and
render what they care about.
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any


class EventType(enum.Enum):
    SESSION_STARTED = "session_started"
    BATCH_COMPLETED = "batch_completed"
    SESSION_EXITED = "session_exited"
    SESSION_CLOSED = "session_closed"
    ERROR = "error"


@dataclass
class WireEvent:
    """An event on the wire."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)


class Wire:
    """Async message bus: session manager -> UI subscribers.

    Single-producer, multi-consumer broadcast. ``send`` may be called from
    any thread; events for a subscriber created inside an event loop are
    handed to that loop with ``call_soon_threadsafe``.
    """

    def __init__(self) -> None:
        self._subscribers: list[
            tuple[asyncio.Queue[WireEvent | None], asyncio.AbstractEventLoop | None]
        ] = []
        self._closed: bool = False

    def send(self, event: WireEvent | None) -> None:
        """Send an event to all subscribers.

        Silently drops events after ``close()`` has been called.
        """
        if self._closed and event is not None:
            return
        try:
            current = asyncio.get_running_loop()
        except RuntimeError:
            current = None
        for q, loop in list(self._subscribers):
            if loop is None or loop is current:
                q.put_nowait(event)
            elif not loop.is_closed():
                loop.call_soon_threadsafe(q.put_nowait, event)

    def send_session_started(self, session_id: str, pid: int) -> None:
        self.send(
            WireEvent(
                type=EventType.SESSION_STARTED,
                data={"session_id": session_id, "pid": pid},
            )
        )

    def send_batch_completed(
        self, success: bool, exit_code: int | None, output: str = ""
    ) -> None:
        self.send(
            WireEvent(
                type=EventType.BATCH_COMPLETED,
                data={
                    "success": success,
                    "exit_code": exit_code,
                    "output": output[:500],
                },
            )
        )

    def send_session_exited(self, session_id: str, marker: str) -> None:
        """Notify subscribers that a drained session reported its exit."""
        self.send(
            WireEvent(
                type=EventType.SESSION_EXITED,
                data={"session_id": session_id, "marker": marker.strip()},
            )
        )

    def send_session_closed(self, session_id: str, killed: bool) -> None:
        self.send(
            WireEvent(
                type=EventType.SESSION_CLOSED,
                data={"session_id": session_id, "killed": killed},
            )
        )

    def send_error(self, error: str) -> None:
        self.send(WireEvent(type=EventType.ERROR, data={"error": error}))

    def subscribe(self) -> asyncio.Queue[WireEvent | None]:
        """Subscribe to events. Returns a queue to read from."""
        q: asyncio.Queue[WireEvent | None] = asyncio.Queue()
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        self._subscribers.append((q, loop))
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        """Unsubscribe from events."""
        self._subscribers = [(s, loop) for s, loop in self._subscribers if s is not q]

    def close(self) -> None:
        """Signal all subscribers that the wire is closing."""
        self._closed = True
        self.send(None)
