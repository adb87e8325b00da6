"""PTY transport — a child interpreter attached to a pseudo-terminal."""

from __future__ import annotations

import fcntl
import logging
import os
import pty
import signal
import struct
import subprocess
import termios

from livecode.pty.errors import SessionIOError, SpawnFailed, StatusCheckFailed

logger = logging.getLogger(__name__)

ROWS = 24
COLS = 80


class PTYTransport:
    """Owns a master/slave terminal pair and the child spawned on the slave.

    The master descriptor is the input writer. ``clone_reader()`` hands out
    an independent duplicate of it for the output pump, so closing the
    transport never pulls a descriptor out from under a blocked read.

    Uses subprocess.Popen (not os.fork) so spawning is safe from a thread
    running an asyncio event loop.
    """

    def __init__(self, master_fd: int, proc: subprocess.Popen) -> None:
        self._master_fd = master_fd
        self._proc = proc
        # start_new_session makes the child its own group leader
        self._pgid = proc.pid
        self._closed = False

    @classmethod
    def spawn(
        cls,
        command: list[str],
        env: dict[str, str] | None = None,
        echo: bool = False,
    ) -> PTYTransport:
        """Spawn ``command`` attached to a fresh pseudo-terminal.

        Raises:
            SpawnFailed: the terminal could not be allocated or the program
                could not be started. No descriptors are leaked.
        """
        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            raise SpawnFailed(f"Failed to create PTY: {e}") from e

        try:
            _configure_slave(slave_fd, echo=echo)

            child_env = {**os.environ, **(env or {})}
            child_env["TERM"] = "dumb"  # Minimize ANSI escape sequences
            child_env.setdefault("PYTHONUNBUFFERED", "1")

            proc = subprocess.Popen(
                command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                start_new_session=True,  # Own process group for tree kills
                env=child_env,
            )
        except (OSError, termios.error, subprocess.SubprocessError) as e:
            os.close(master_fd)
            raise SpawnFailed(f"Failed to spawn {command[0]}: {e}") from e
        finally:
            # Parent always closes slave fd so EOF reaches the master
            os.close(slave_fd)

        return cls(master_fd, proc)

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def closed(self) -> bool:
        return self._closed

    def clone_reader(self) -> int:
        """Return a duplicate of the master descriptor for reading."""
        try:
            return os.dup(self._master_fd)
        except OSError as e:
            raise SessionIOError(f"Failed to clone reader: {e}") from e

    def write(self, data: bytes) -> None:
        """Write all of ``data`` to the child's terminal input."""
        if self._closed:
            raise SessionIOError("Terminal is closed")
        view = memoryview(data)
        try:
            while view:
                written = os.write(self._master_fd, view)
                view = view[written:]
        except OSError as e:
            raise SessionIOError(f"Failed to write input: {e}") from e

    def poll(self) -> int | None:
        """Return the exit code if the child has exited, else None.

        Never blocks.
        """
        try:
            return self._proc.poll()
        except OSError as e:
            raise StatusCheckFailed(f"Failed to check process status: {e}") from e

    def kill(self, timeout: float = 2.0) -> None:
        """SIGKILL the child's process group and reap it."""
        try:
            os.killpg(self._pgid, signal.SIGKILL)
            logger.info("Killed pid=%d (pgid=%d)", self._proc.pid, self._pgid)
        except ProcessLookupError:
            logger.debug("Process group already gone: %d", self._pgid)
        except OSError as e:
            logger.warning("Error killing pgid=%d: %s", self._pgid, e)

        # Wait for process to be reaped (avoids zombies)
        try:
            self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("pid=%d did not exit within %.1fs", self._proc.pid, timeout)

    def close(self) -> None:
        """Release the master descriptor. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            os.close(self._master_fd)
        except OSError:
            pass


def _configure_slave(slave_fd: int, echo: bool) -> None:
    """Apply the fixed geometry and line discipline to the slave side."""
    fcntl.ioctl(slave_fd, termios.TIOCSWINSZ, struct.pack("HHHH", ROWS, COLS, 0, 0))
    attrs = termios.tcgetattr(slave_fd)
    if not echo:
        attrs[3] &= ~termios.ECHO
    # Plain "\n" line endings in captured output
    attrs[1] &= ~termios.ONLCR
    termios.tcsetattr(slave_fd, termios.TCSANOW, attrs)
