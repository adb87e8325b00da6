"""Output pump — relays PTY output into a session's queue."""

from __future__ import annotations

import codecs
import logging
import os
import queue
import threading

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1024


class OutputPump:
    """Background reader moving bytes from a PTY master into a queue.

    One pump exists per session. It owns only its reader descriptor (a
    duplicate of the master) and the producing side of ``output``; it knows
    nothing about the child process. Reads block for as long as the child is
    quiet, which is why they run on a dedicated daemon thread.

    The loop ends on EOF or on a read error (Linux reports ``EIO`` once the
    slave side has been closed by every process). Chunks are decoded as
    UTF-8 with replacement characters for invalid sequences, and a character
    split across two reads is reassembled rather than mangled.
    """

    def __init__(
        self,
        reader_fd: int,
        output: queue.SimpleQueue[str],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        name: str = "pty-pump",
    ) -> None:
        self._fd = reader_fd
        self._output = output
        self._chunk_size = chunk_size
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    @property
    def finished(self) -> bool:
        """True once the read loop has terminated (EOF or error)."""
        return self._thread.ident is not None and not self._thread.is_alive()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the loop to end. Returns True if it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        try:
            while True:
                try:
                    data = os.read(self._fd, self._chunk_size)
                except OSError as e:
                    logger.debug("%s ended: %s", self._thread.name, e)
                    break

                if not data:
                    logger.debug("%s reached EOF", self._thread.name)
                    break

                text = self._decoder.decode(data)
                if text:
                    self._output.put(text)
        finally:
            tail = self._decoder.decode(b"", final=True)
            if tail:
                self._output.put(tail)
            try:
                os.close(self._fd)
            except OSError:
                pass
