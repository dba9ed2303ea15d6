"""
FlushScheduler - commits the line buffer on a fixed interval.

Architecture:
    timer tick -> LineBuffer.commit() -> path -> Dispatcher.submit()
"""

import logging
import threading
from typing import Optional

from outmon.buffer import CommitError, LineBuffer
from outmon.dispatch import Dispatcher

logger = logging.getLogger(__name__)


class FlushScheduler:
    """
    Background thread that commits the buffer every ``interval`` seconds.

    A failed commit is logged and not retried; whatever is buffered by the
    next tick goes into that tick's file. stop() does not commit, the final
    commit belongs to the shutdown sequence.
    """

    def __init__(self, buffer: LineBuffer, dispatcher: Dispatcher, interval: int):
        """
        Initialize the scheduler.

        Args:
            buffer: Buffer to commit
            dispatcher: Receives every non-empty committed path
            interval: Seconds between commits (> 0)
        """
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            raise ValueError(f"interval must be a positive number of seconds, got {interval!r}")

        self._buffer = buffer
        self._dispatcher = dispatcher
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    def start(self) -> None:
        """Start the flush thread."""
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._flush_loop,
            daemon=True,
            name="outmon-flush",
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the flush thread, waiting for a tick in progress to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join()
        self._thread = None

    def tick(self) -> str:
        """
        Commit once and submit the result.

        Returns:
            The committed path, "" if nothing was committed or the commit failed
        """
        self.ticks += 1
        try:
            path = self._buffer.commit()
        except CommitError as e:
            logger.error(f"Commit failed: {e}")
            return ""

        if path:
            self._dispatcher.submit(path)
        return path

    def _flush_loop(self) -> None:
        while not self._stop_event.wait(timeout=self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error in periodic commit")
