"""
ProcessMonitor - runs a command and turns its output into committed files.

This module wires the pipeline together:
1. Starts the dispatcher for the post-processing command
2. Spawns the child process with stdout piped
3. Captures stdout lines into the configured line buffer
4. Commits the buffer every write_interval seconds
5. On child exit: drains stdout, commits once more, and waits until every
   committed file has been post-processed

Usage:
    config = MonitorConfig.from_file("config.json")
    result = ProcessMonitor(config).run()
    sys.exit(0 if result.success else 1)
"""

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from outmon.buffer import CommitError, LineBuffer, new_buffer
from outmon.capture import CaptureLoop
from outmon.config import MonitorConfig
from outmon.dispatch import Dispatcher
from outmon.naming import make_name_generator
from outmon.scheduler import FlushScheduler

logger = logging.getLogger(__name__)

STDOUT_GRACE_SECONDS = 2.0


@dataclass
class MonitorResult:
    """Outcome of a monitored run."""
    returncode: int
    lines_captured: int
    files_committed: int
    dispatch_failures: int
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.returncode == 0


class ProcessMonitor:
    """
    Supervises one child process for its whole lifetime.

    Startup failures (bad filename pattern, unwritable output directory,
    command that cannot be started) raise out of run(). Everything that goes
    wrong afterwards is logged and the pipeline keeps going.
    """

    stdout_grace = STDOUT_GRACE_SECONDS

    def __init__(
        self,
        config: MonitorConfig,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config
        self._now = now or datetime.now

    @property
    def command(self) -> List[str]:
        return [self.config.command, *self.config.command_args]

    def create_buffer(self) -> LineBuffer:
        """
        Create the output directory and the configured line buffer.

        Raises:
            ConfigError: If the filename pattern is invalid
            OSError: If the output directory or temporary file cannot be created
        """
        os.makedirs(self.config.out_dir, exist_ok=True)
        name_gen = make_name_generator(
            self.config.out_dir,
            self.config.out_filename_pattern,
            now=self._now,
        )
        return new_buffer(self.config.context, name_gen, batch_size=self.config.batch_size)

    def create_dispatcher(self) -> Dispatcher:
        return Dispatcher(
            self.config.out_process_script,
            self.config.out_process_script_params,
            queue_size=self.config.queue_size,
            workers=self.config.dispatch_workers,
        )

    def run(self) -> MonitorResult:
        """
        Run the command to completion.

        Returns:
            MonitorResult with the child's exit status and pipeline counters

        Raises:
            ConfigError: If the filename pattern is invalid
            OSError: If the output storage cannot be created or the command
                cannot be started
        """
        start_time = time.time()
        buffer = self.create_buffer()
        dispatcher = self.create_dispatcher()

        self._log_settings(buffer)

        try:
            proc = subprocess.Popen(
                self.command,
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError:
            buffer.close()
            raise

        logger.info(f"Process PID: {proc.pid}")

        dispatcher.start()
        capture = CaptureLoop(proc.stdout, buffer)
        capture.start()
        scheduler = FlushScheduler(buffer, dispatcher, self.config.write_interval)
        scheduler.start()

        try:
            returncode = self._wait(proc)
            self._finish_capture(capture)
        finally:
            scheduler.stop()
            if proc.poll() is None:
                logger.warning(f"Killing process {proc.pid}")
                proc.kill()
                proc.wait()
            capture.stop()
            # closing the pipe would block on the reader's lock
            if not capture.is_alive:
                proc.stdout.close()
            self._drain(buffer, dispatcher)

        if returncode != 0:
            logger.error(f"Error for command {' '.join(self.command)}: exit status {returncode}")

        return MonitorResult(
            returncode=returncode,
            lines_captured=capture.lines_captured,
            files_committed=dispatcher.submitted,
            dispatch_failures=dispatcher.failures,
            duration_seconds=time.time() - start_time,
        )

    def _wait(self, proc: subprocess.Popen) -> int:
        try:
            return proc.wait()
        except KeyboardInterrupt:
            logger.warning(f"Interrupted, terminating process {proc.pid}")
            proc.terminate()
            return proc.wait()

    def _finish_capture(self, capture: CaptureLoop) -> None:
        """
        Give the capture thread a grace period to read the rest of stdout.

        A background process started by the command may inherit the pipe and
        keep it open after the command itself has exited. Shutdown does not
        wait for it.
        """
        capture.join(self.stdout_grace)
        if capture.is_alive:
            logger.warning(
                f"Process output still open {self.stdout_grace}s after exit, "
                f"a background process probably holds it; not waiting for it"
            )

    def _drain(self, buffer: LineBuffer, dispatcher: Dispatcher) -> None:
        """Final commit, then wait for every post-processing run."""
        try:
            path = buffer.commit()
        except CommitError as e:
            logger.error(f"Final commit failed: {e}")
            path = ""

        # submitted even when empty so the in-flight count balances
        dispatcher.submit(path)
        dispatcher.wait()
        dispatcher.close()
        buffer.close()

    def _log_settings(self, buffer: LineBuffer) -> None:
        cfg = self.config
        logger.info(f"Run and monitor command: {' '.join(self.command)}")
        logger.info(f"Write interval: {cfg.write_interval} seconds")
        logger.info(f"Output dir: {cfg.out_dir}")
        logger.info(
            f"Out process script: {' '.join([cfg.out_process_script, *cfg.out_process_script_params])}"
        )
        logger.info(f"Context: {buffer.name}")

