"""Interactive Python sessions behind pseudo-terminals.

Code runs in a child interpreter attached to a PTY. Programs that finish
within a short grace period come back as a batch outcome; programs still
running (typically waiting on ``input()``) become sessions that callers
feed, drain and close by ID.
"""

from livecode.pty.errors import (
    SessionError,
    SessionIOError,
    SessionNotFound,
    SpawnFailed,
    StatusCheckFailed,
)
from livecode.pty.manager import (
    BatchOutcome,
    InteractiveOutcome,
    Outcome,
    SessionManager,
)
from livecode.pty.session import (
    EXIT_MARKERS,
    FAILED_MARKER,
    FINISHED_MARKER,
    TERMINATED_MARKER,
    Session,
    SessionStatus,
)

__all__ = [
    "BatchOutcome",
    "InteractiveOutcome",
    "Outcome",
    "Session",
    "SessionManager",
    "SessionStatus",
    "SessionError",
    "SessionIOError",
    "SessionNotFound",
    "SpawnFailed",
    "StatusCheckFailed",
    "EXIT_MARKERS",
    "FAILED_MARKER",
    "FINISHED_MARKER",
    "TERMINATED_MARKER",
]
