"""
In-memory line buffer.
"""

import logging
import os
import threading
from typing import List

from outmon.buffer import TMP_SUFFIX, CommitError, LineBuffer
from outmon.naming import NameGenerator

logger = logging.getLogger(__name__)


def write_atomic(path: str, content: str) -> None:
    """
    Write *content* to *path* so readers never see a half-written file.

    The content goes to ``<path>.tmp`` first, is synced, and is then renamed
    over *path*. The temp file is removed if anything fails.
    """
    tmp_path = f"{path}{TMP_SUFFIX}"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class MemoryBuffer(LineBuffer):
    """
    Keeps every captured line in memory until commit.

    commit() serializes the whole sequence to the reserved output path in a
    single write. If that fails the lines are handed back inside the
    CommitError so the caller can log them.
    """

    def __init__(self, name_gen: NameGenerator):
        """
        Initialize the buffer.

        Args:
            name_gen: Output path generator, called once per commit cycle
        """
        self._name_gen = name_gen
        self._lock = threading.Lock()
        self._lines: List[str] = []
        self._next_path = name_gen()

    @property
    def name(self) -> str:
        return "In memory"

    @property
    def line_count(self) -> int:
        with self._lock:
            return len(self._lines)

    @property
    def next_path(self) -> str:
        with self._lock:
            return self._next_path

    def write_line(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    def commit(self) -> str:
        with self._lock:
            if not self._lines:
                return ""

            path = self._next_path
            lines = self._lines
            try:
                write_atomic(path, "\n".join(lines))
            except OSError as e:
                raise CommitError(path, lines, str(e)) from e
            finally:
                self._reset()

        logger.info(f"{len(lines)} lines written to file {path}")
        return path

    def _reset(self) -> None:
        self._lines = []
        self._next_path = self._name_gen()
