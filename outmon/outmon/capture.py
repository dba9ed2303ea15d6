"""
Capture loop - reads the child's output and feeds it to a line buffer.
"""

import logging
import threading
from typing import Iterable, Optional

from outmon.buffer import LineBuffer

logger = logging.getLogger(__name__)


def strip_line_ending(line: str) -> str:
    """Remove a trailing ``\\n`` or ``\\r\\n``."""
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    return line


class CaptureLoop:
    """
    Forwards every line of a text stream to a LineBuffer.

    Runs until the stream reports end of input. A buffer that fails to accept
    a line is logged and capture goes on; a stream that fails to read ends the
    loop, since nothing more can come out of it.

    Usage:
        loop = CaptureLoop(proc.stdout, buffer)
        loop.start()
        proc.wait()
        loop.join()
    """

    def __init__(self, stream: Iterable[str], buffer: LineBuffer):
        self._stream = stream
        self._buffer = buffer
        self._thread: Optional[threading.Thread] = None
        self._stopped = threading.Event()
        self.lines_captured = 0
        self.write_errors = 0

    def run(self) -> None:
        """Read the stream to the end in the calling thread."""
        iterator = iter(self._stream)
        while True:
            try:
                raw = next(iterator)
            except StopIteration:
                break
            except (OSError, ValueError) as e:
                logger.error(f"Error reading process output: {e}")
                break
            if self._stopped.is_set():
                logger.warning("Capture stopped, dropping output read after shutdown")
                break

            line = strip_line_ending(raw)
            self.lines_captured += 1
            try:
                self._buffer.write_line(line)
            except OSError as e:
                self.write_errors += 1
                logger.error(f"Error buffering line: {e}")

        logger.debug(f"Capture finished after {self.lines_captured} lines")

    def start(self) -> None:
        """Run the loop in a background thread."""
        self._thread = threading.Thread(
            target=self.run,
            daemon=True,
            name="outmon-capture",
        )
        self._thread.start()

    def stop(self) -> None:
        """
        Stop forwarding lines to the buffer.

        A thread blocked in a read stays blocked until the stream yields
        another line or reaches end of input, then exits without buffering it.
        """
        self._stopped.set()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the background thread to reach end of input."""
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
