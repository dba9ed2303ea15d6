"""
Dispatcher - hands committed files to the post-processing command.

Architecture:
    commit -> submit(path) -> bounded queue -> worker thread(s) -> subprocess

Each submitted path is counted as in flight until a worker has finished with
it, so shutdown can wait() for every post-processing run to complete. Empty
paths are accepted and only balance the counter.
"""

import logging
import queue
import subprocess
import threading
from collections import deque
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 10
RECENT_PATHS = 100

_STOP = None


class InFlightCounter:
    """
    Counts outstanding work and lets a thread wait for it to reach zero.

    Usage:
        counter = InFlightCounter()
        counter.add()
        ...            # in another thread: counter.done()
        counter.wait()
    """

    def __init__(self):
        self._count = 0
        self._cond = threading.Condition()

    @property
    def count(self) -> int:
        with self._cond:
            return self._count

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._count += n

    def done(self) -> None:
        """
        Mark one unit of work as finished.

        Raises:
            ValueError: If the counter would drop below zero
        """
        with self._cond:
            if self._count <= 0:
                raise ValueError("InFlightCounter.done() called more times than add()")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the counter reaches zero.

        Returns:
            False if the timeout expired first
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout=timeout)


class Dispatcher:
    """
    Runs ``<script> [params...] <path>`` for every committed file.

    Failures (launch errors, non-zero exit) are logged and never retried.
    submit() blocks while the queue is full.
    """

    def __init__(
        self,
        script: str,
        params: Optional[Sequence[str]] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        workers: int = 1,
    ):
        """
        Initialize the dispatcher.

        Args:
            script: Post-processing command; "" disables invocation
            params: Static arguments placed before the file path
            queue_size: Maximum committed files waiting for a worker
            workers: Number of worker threads
        """
        if workers <= 0:
            raise ValueError(f"workers must be positive, got {workers}")

        self.script = script
        self.params: List[str] = list(params or [])
        self.in_flight = InFlightCounter()
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue(maxsize=queue_size)
        self._workers = workers
        self._threads: List[threading.Thread] = []
        self._failures = 0
        self._runs = 0
        self._submitted = 0
        self._recent: "deque[str]" = deque(maxlen=RECENT_PATHS)
        self._stats_lock = threading.Lock()

    def start(self) -> None:
        """Start the worker threads."""
        if self._threads:
            return
        for i in range(self._workers):
            thread = threading.Thread(
                target=self._worker,
                daemon=True,
                name=f"outmon-dispatch-{i}",
            )
            thread.start()
            self._threads.append(thread)

    def submit(self, path: str) -> None:
        """
        Queue a committed file for post-processing.

        Args:
            path: Committed file path, or "" to only balance the counter
        """
        self.in_flight.add()
        if path:
            with self._stats_lock:
                self._submitted += 1
                self._recent.append(path)
        self._queue.put(path)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted path has been handled."""
        return self.in_flight.wait(timeout)

    def close(self) -> None:
        """Stop the workers once the queue is drained."""
        for _ in self._threads:
            self._queue.put(_STOP)
        for thread in self._threads:
            thread.join()
        self._threads = []

    def command_for(self, path: str) -> List[str]:
        """Command line used to post-process *path*."""
        return [self.script, *self.params, path]

    def run_command(self, path: str) -> bool:
        """
        Run the post-processing command for one file and wait for it.

        Returns:
            True if the command exited with status 0
        """
        if not self.script:
            logger.debug(f"No post-processing script configured, skipping {path}")
            return True

        cmd = self.command_for(path)
        cmd_line = " ".join(cmd)
        logger.info(f"Convert: {cmd_line}")
        with self._stats_lock:
            self._runs += 1
        try:
            result = subprocess.run(cmd)
        except OSError as e:
            logger.error(f"Start convert script failed: {e}. Process: {cmd_line}")
            self._record_failure()
            return False

        if result.returncode != 0:
            logger.error(
                f"Convert script exited with status {result.returncode}. Process: {cmd_line}"
            )
            self._record_failure()
            return False
        return True

    def _record_failure(self) -> None:
        with self._stats_lock:
            self._failures += 1

    @property
    def submitted(self) -> int:
        """Number of non-empty paths submitted so far."""
        with self._stats_lock:
            return self._submitted

    @property
    def recent_paths(self) -> List[str]:
        """The last RECENT_PATHS non-empty paths submitted, oldest first."""
        with self._stats_lock:
            return list(self._recent)

    @property
    def runs(self) -> int:
        """Post-processing commands launched so far."""
        with self._stats_lock:
            return self._runs

    @property
    def failures(self) -> int:
        """Post-processing runs that failed to launch or exited non-zero."""
        with self._stats_lock:
            return self._failures

    def _worker(self) -> None:
        while True:
            path = self._queue.get()
            if path is _STOP:
                return
            try:
                if path:
                    self.run_command(path)
            except Exception:
                logger.exception(f"Unexpected error post-processing {path}")
            finally:
                self.in_flight.done()
