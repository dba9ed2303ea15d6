"""
Disc file line buffer.

Lines are collected in batches and appended to ``<reserved path>.tmp``.
Every batch write is flushed and fsynced, so a crash loses at most the batch
still held in memory. At commit the temp file is renamed to the reserved
path; until then nothing is visible under the final name.
"""

import logging
import os
import threading
from typing import IO, List, Optional

from outmon.buffer import TMP_SUFFIX, CommitError, LineBuffer
from outmon.naming import NameGenerator

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


class FileBuffer(LineBuffer):
    """
    Buffers lines in a temporary file next to the reserved output path.

    A failed batch write keeps its lines in memory. The temp file is cut back
    to the end of the last batch that made it to disk and the lines are
    written again, either once another full batch has accumulated or at the
    next commit. If the commit still fails, the lines already on disk are
    read back and reported together with the in-memory ones, and the temp
    file is removed.
    """

    def __init__(self, name_gen: NameGenerator, batch_size: int = DEFAULT_BATCH_SIZE):
        """
        Initialize the buffer and create the first temporary file.

        Args:
            name_gen: Output path generator, called once per commit cycle
            batch_size: Lines held in memory before they are written out

        Raises:
            OSError: If the temporary file cannot be created
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        self._name_gen = name_gen
        self._batch_size = batch_size
        self._lock = threading.Lock()
        self._pending: List[str] = []
        self._count = 0
        self._written = 0
        # bytes of the temp file known to be on disk
        self._synced_size = 0
        self._flush_at = batch_size
        self._next_path = name_gen()
        self._file: Optional[IO[str]] = self._open_tmp()

    @property
    def name(self) -> str:
        return "Disc file"

    @property
    def line_count(self) -> int:
        with self._lock:
            return self._count

    @property
    def next_path(self) -> str:
        with self._lock:
            return self._next_path

    @property
    def tmp_path(self) -> str:
        """Temporary file the current cycle is written to."""
        with self._lock:
            return self._tmp_path()

    def write_line(self, line: str) -> None:
        """
        Append a line, writing the batch out once it is full.

        Raises:
            OSError: If writing the batch to the temporary file failed. The
                lines stay in memory; the write is tried again once another
                batch has accumulated, and at the next commit.
        """
        with self._lock:
            self._pending.append(line)
            self._count += 1
            if len(self._pending) >= self._flush_at:
                try:
                    self._write_pending()
                except OSError:
                    self._flush_at = len(self._pending) + self._batch_size
                    raise

    def commit(self) -> str:
        with self._lock:
            path = self._next_path
            tmp_path = self._tmp_path()
            count = self._count
            try:
                self._write_pending()
                self._close_file()
                if count == 0:
                    if os.path.exists(tmp_path):
                        os.remove(tmp_path)
                    return ""
                os.replace(tmp_path, path)
            except OSError as e:
                unsaved = self._discard_tmp() + self._pending
                raise CommitError(path, unsaved, str(e)) from e
            finally:
                self._reset()

        logger.info(f"{count} lines written to file {path}")
        return path

    def close(self) -> None:
        """Close the temporary file, removing it if nothing was written."""
        with self._lock:
            tmp_path = self._tmp_path()
            if self._file is not None:
                try:
                    self._close_file()
                except OSError as e:
                    logger.warning(f"Error closing {tmp_path}: {e}")
            if self._count == 0:
                if os.path.exists(tmp_path):
                    try:
                        os.remove(tmp_path)
                    except OSError as e:
                        logger.warning(f"Cannot remove {tmp_path}: {e}")
            else:
                logger.warning(f"{self._count} uncommitted lines left in {tmp_path}")
            self._file = None

    def _tmp_path(self) -> str:
        return f"{self._next_path}{TMP_SUFFIX}"

    def _open_tmp(self) -> IO[str]:
        tmp_path = self._tmp_path()
        if self._synced_size:
            # drop whatever a failed write left after the last good batch
            os.truncate(tmp_path, self._synced_size)
            return open(tmp_path, "a", encoding="utf-8")
        return open(tmp_path, "w", encoding="utf-8")

    def _close_file(self) -> None:
        file, self._file = self._file, None
        if file is not None:
            file.close()

    def _write_pending(self) -> None:
        if not self._pending:
            return
        if self._file is None:
            self._file = self._open_tmp()

        data = "\n".join(self._pending)
        if self._written:
            data = "\n" + data
        try:
            self._file.write(data)
            self._file.flush()
            os.fsync(self._file.fileno())
        except OSError:
            try:
                self._close_file()
            except OSError as e:
                logger.warning(f"Error closing {self._tmp_path()} after failed write: {e}")
            raise

        self._synced_size = os.fstat(self._file.fileno()).st_size
        self._written += len(self._pending)
        self._pending = []
        self._flush_at = self._batch_size

    def _discard_tmp(self) -> List[str]:
        """Remove the temp file of a failed cycle, returning the lines it held."""
        tmp_path = self._tmp_path()
        lines: List[str] = []
        if self._file is not None:
            try:
                self._close_file()
            except OSError as e:
                logger.warning(f"Error closing {tmp_path}: {e}")
        if self._synced_size:
            try:
                with open(tmp_path, "rb") as f:
                    data = f.read(self._synced_size)
            except OSError as e:
                logger.error(f"Cannot read back {tmp_path}, leaving it in place: {e}")
                return lines
            lines = data.decode("utf-8", errors="replace").split("\n")
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError as e:
            logger.warning(f"Cannot remove {tmp_path}: {e}")
        return lines

    def _reset(self) -> None:
        if self._file is not None:
            try:
                self._close_file()
            except OSError as e:
                logger.warning(f"Error closing {self._tmp_path()}: {e}")
        self._file = None
        self._pending = []
        self._count = 0
        self._written = 0
        self._synced_size = 0
        self._flush_at = self._batch_size
        self._next_path = self._name_gen()
        try:
            self._file = self._open_tmp()
        except OSError as e:
            # retried on the next batch write or commit
            logger.error(f"Cannot create temporary file for {self._next_path}: {e}")
