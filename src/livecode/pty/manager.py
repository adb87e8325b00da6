"""Session manager — runs Python code and tracks interactive sessions."""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from livecode.config import SessionConfig
from livecode.pty.errors import (
    SessionIOError,
    SessionNotFound,
    SpawnFailed,
    StatusCheckFailed,
)
from livecode.pty.pump import OutputPump
from livecode.pty.session import (
    Session,
    SessionStatus,
    new_session_id,
    take_available,
)
from livecode.pty.transport import PTYTransport

if TYPE_CHECKING:
    from livecode.session.wire import Wire

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchOutcome:
    """The program finished inside the grace period."""

    success: bool
    output: str
    exit_code: int | None = None


@dataclass(frozen=True)
class InteractiveOutcome:
    """The program is still running; talk to it through ``session_id``."""

    session_id: str


Outcome = BatchOutcome | InteractiveOutcome


class SessionManager:
    """Registry of interactive Python sessions.

    The single entry point for starting, feeding, draining and closing
    sessions. Pass one instance to every caller that needs it; there is no
    module-level registry.

    The registry lock guards only insert/remove/lookup and is never held
    while a session does I/O, so operations on different sessions do not
    block each other.

    Sessions are not removed when their program exits. Once ``drain``
    returns an exit marker the caller must still ``close`` the session,
    otherwise its terminal stays allocated until ``cleanup``.
    """

    def __init__(
        self, config: SessionConfig | None = None, wire: Wire | None = None
    ) -> None:
        self.config = config or SessionConfig()
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._wire = wire

    async def start(self, code: str) -> Outcome:
        """Run ``code`` with the interpreter attached to a fresh PTY.

        Waits ``grace_period`` and returns a BatchOutcome if the program has
        already exited, otherwise registers a session and returns an
        InteractiveOutcome.

        Raises:
            SpawnFailed: the interpreter could not be started.
            StatusCheckFailed: the liveness probe failed after spawn.
        """
        cfg = self.config
        session_id = new_session_id()
        command = [cfg.interpreter, "-c", code]

        try:
            transport = PTYTransport.spawn(command, env=cfg.env, echo=cfg.echo_input)
        except SpawnFailed as e:
            logger.warning("Spawn failed for session %s: %s", session_id, e)
            if self._wire:
                self._wire.send_error(str(e))
            raise

        try:
            reader_fd = transport.clone_reader()
        except SessionIOError:
            transport.kill()
            transport.close()
            raise

        output: queue.SimpleQueue[str] = queue.SimpleQueue()
        pump = OutputPump(
            reader_fd,
            output,
            chunk_size=cfg.read_chunk_size,
            name=f"pty-pump-{session_id[:8]}",
        )
        pump.start()

        try:
            # Let trivially fast programs finish before committing to a session
            await asyncio.sleep(cfg.grace_period)
            exit_code = transport.poll()
            if exit_code is not None:
                # Bounded wait for the pump to pick up the program's last output
                await asyncio.to_thread(pump.join, cfg.exit_settle)
        except BaseException:
            # Cancelled or unprobeable before registration: nothing else owns it
            transport.kill()
            transport.close()
            raise

        if exit_code is not None:
            text = "".join(take_available(output))
            transport.close()
            outcome = BatchOutcome(
                success=exit_code == 0, output=text, exit_code=exit_code
            )
            logger.debug(
                "Batch run finished (code=%d, %d chars)", exit_code, len(text)
            )
            if self._wire:
                self._wire.send_batch_completed(outcome.success, exit_code, text)
            return outcome

        session = Session(
            id=session_id,
            transport=transport,
            pump=pump,
            output=output,
            exit_settle=cfg.exit_settle,
        )
        with self._lock:
            self._sessions[session_id] = session

        logger.info("Session %s started: pid=%d", session_id, transport.pid)
        if self._wire:
            self._wire.send_session_started(session_id, transport.pid)
        return InteractiveOutcome(session_id=session_id)

    def get(self, session_id: str) -> Session:
        """Look up a registered session."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def feed(self, session_id: str, text: str) -> None:
        """Write ``text`` to the session's terminal.

        A write failure does not remove the session; call ``drain`` and
        ``close`` afterwards.
        """
        self.get(session_id).feed(text)

    def drain(self, session_id: str) -> list[str]:
        """Pop all available output; ends with one exit marker after exit."""
        session = self.get(session_id)
        reported = session.exit_reported
        chunks = session.drain()
        if self._wire and not reported and session.exit_reported:
            self._wire.send_session_exited(session_id, chunks[-1])
        return chunks

    def status(self, session_id: str) -> SessionStatus:
        """Return the session's SessionStatus, probed now."""
        return self.get(session_id).status()

    async def close(self, session_id: str, kill: bool | None = None) -> None:
        """Remove a session and release its terminal.

        Closing an unknown id is a no-op. ``kill`` defaults to
        ``config.kill_on_close``; without it a still-running child is left
        to its own devices once the terminal is released.
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return

        if kill is None:
            kill = self.config.kill_on_close
        await asyncio.to_thread(session.release, kill)
        logger.info("Session %s closed (kill=%s)", session_id, kill)
        if self._wire:
            self._wire.send_session_closed(session_id, kill)

    def list_sessions(self) -> list[dict[str, Any]]:
        """List all registered sessions."""
        with self._lock:
            sessions = list(self._sessions.values())
        result = []
        for s in sessions:
            try:
                status = s.status().value
            except StatusCheckFailed:
                status = "unknown"
            result.append(
                {
                    "id": s.id,
                    "pid": s.transport.pid,
                    "status": status,
                    "pending": s.pending,
                }
            )
        return result

    async def cleanup(self) -> None:
        """Close all sessions. Called on shutdown."""
        with self._lock:
            session_ids = list(self._sessions)
        for session_id in session_ids:
            await self.close(session_id)
        logger.info("All Python sessions cleaned up")

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions
