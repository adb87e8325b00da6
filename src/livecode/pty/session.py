"""Interactive Python session — a running interpreter behind a PTY."""

from __future__ import annotations

import enum
import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field

from livecode.pty.errors import StatusCheckFailed
from livecode.pty.pump import OutputPump
from livecode.pty.transport import PTYTransport

logger = logging.getLogger(__name__)

# Terminal markers appended to drained output; UIs match on these.
FINISHED_MARKER = "\n[Program finished successfully]"
FAILED_MARKER = "\n[Program exited with error]"
TERMINATED_MARKER = "\n[Program terminated unexpectedly]"

EXIT_MARKERS = (FINISHED_MARKER, FAILED_MARKER, TERMINATED_MARKER)

# Upper bound on how long a marker is held back waiting for the pump to
# deliver output the child wrote before exiting.
DEFAULT_EXIT_SETTLE = 0.2


class SessionStatus(enum.StrEnum):
    """Derived state of a session's child process."""

    RUNNING = "running"
    SUCCEEDED = "succeeded"  # Exited with status 0
    FAILED = "failed"  # Exited with non-zero status or by signal

    @property
    def exited(self) -> bool:
        return self is not SessionStatus.RUNNING

    @classmethod
    def from_exit_code(cls, exit_code: int | None) -> SessionStatus:
        if exit_code is None:
            return cls.RUNNING
        return cls.SUCCEEDED if exit_code == 0 else cls.FAILED


def new_session_id() -> str:
    """Fresh opaque 128-bit identifier."""
    return uuid.uuid4().hex


def take_available(output: queue.SimpleQueue[str]) -> list[str]:
    """Pop every chunk currently queued without blocking."""
    chunks: list[str] = []
    while True:
        try:
            chunks.append(output.get_nowait())
        except queue.Empty:
            return chunks


@dataclass
class Session:
    """A registered interactive session.

    Owns the transport (terminal pair plus child) exclusively. The pump only
    holds the queue's producing side and its own reader descriptor. State is
    never stored: it is probed from the child on every call.

    Calls on one session are serialised by its own lock, so two sessions
    never contend with each other.
    """

    id: str
    transport: PTYTransport
    pump: OutputPump
    output: queue.SimpleQueue[str]
    exit_settle: float = DEFAULT_EXIT_SETTLE

    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)
    _exit_seen_at: float | None = field(default=None, init=False)
    _exit_reported: bool = field(default=False, init=False)
    _probe_failing: bool = field(default=False, init=False)

    def feed(self, text: str) -> None:
        """Write ``text`` to the child's terminal."""
        with self._lock:
            self.transport.write(text.encode("utf-8"))

    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus.from_exit_code(self.transport.poll())

    def drain(self) -> list[str]:
        """Return queued output, plus one exit marker once the child is done.

        Liveness is probed before the queue is read. After exit is first
        observed the marker is held back (without blocking) until the pump
        has delivered everything or ``exit_settle`` has passed, so the marker
        always trails the program's last output. It is emitted at most once.
        A failed probe yields the termination marker for that call only; it
        does not count as the exit report.
        """
        with self._lock:
            try:
                exit_code = self.transport.poll()
                probe_failed = False
            except StatusCheckFailed as e:
                logger.warning("Status check failed for session %s: %s", self.id, e)
                exit_code = None
                probe_failed = True

            chunks = take_available(self.output)
            if self._exit_reported:
                return chunks

            if probe_failed:
                # Reported once per run of failed probes; a later good probe
                # still produces the real exit marker
                if not self._probe_failing:
                    chunks.append(TERMINATED_MARKER)
                    self._probe_failing = True
                return chunks
            self._probe_failing = False

            if exit_code is None:
                return chunks

            now = time.monotonic()
            if self._exit_seen_at is None:
                self._exit_seen_at = now
            if not self.pump.finished and now - self._exit_seen_at < self.exit_settle:
                return chunks

            # Pump is done (or we gave up on it): pick up its last chunks
            chunks.extend(take_available(self.output))
            chunks.append(FINISHED_MARKER if exit_code == 0 else FAILED_MARKER)
            self._exit_reported = True
            logger.info("Session %s exited (code=%s)", self.id, exit_code)
            return chunks

    @property
    def pending(self) -> int:
        """Approximate number of undrained chunks."""
        return self.output.qsize()

    @property
    def exit_reported(self) -> bool:
        return self._exit_reported

    def release(self, kill: bool) -> None:
        """Free the terminal, killing the child first if asked and running."""
        with self._lock:
            if kill:
                try:
                    running = self.transport.poll() is None
                except StatusCheckFailed:
                    running = True
                if running:
                    self.transport.kill()
            self.transport.close()
