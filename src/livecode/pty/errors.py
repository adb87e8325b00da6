"""Failure taxonomy for the Python session manager."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for all session manager failures."""


class SessionNotFound(SessionError):
    """No registered session has the given identifier."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class SpawnFailed(SessionError):
    """The interpreter could not be started in a pseudo-terminal."""


class SessionIOError(SessionError):
    """Reading from or writing to a session's terminal failed."""


class StatusCheckFailed(SessionError):
    """The child process liveness probe itself failed."""
