"""
Line buffers - accumulate captured lines and commit them to output files.

A buffer holds the lines captured since the last commit together with the
output path reserved for them. commit() persists every pending line under
that path or none of them, then resets the buffer and reserves a new path.

Implementations:
    MemoryBuffer: lines held in memory, written in one go at commit
    FileBuffer: lines written in batches to a temporary file, renamed at commit
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from outmon.config import FILE_CONTEXT
from outmon.naming import NameGenerator

TMP_SUFFIX = ".tmp"


class CommitError(Exception):
    """
    Raised when a commit could not persist the buffered lines.

    Attributes:
        path: Output path the lines were meant for
        unsaved_lines: Lines that did not make it to disk
    """

    def __init__(self, path: str, unsaved_lines: Optional[Sequence[str]] = None, reason: str = ""):
        self.path = path
        self.unsaved_lines: List[str] = list(unsaved_lines or [])
        self.reason = reason
        super().__init__(self._format())

    def _format(self) -> str:
        msg = f"Write to file error ({self.path})"
        if self.reason:
            msg += f": {self.reason}"
        if self.unsaved_lines:
            msg += "\nUnsaved lines:\n" + "\n".join(self.unsaved_lines)
        return msg


class LineBuffer(ABC):
    """
    Abstract base class for line buffers.

    write_line() and commit() may be called from different threads;
    implementations serialize them with a single lock.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable name of the storage strategy."""

    @property
    @abstractmethod
    def line_count(self) -> int:
        """Lines accepted since the last commit."""

    @property
    @abstractmethod
    def next_path(self) -> str:
        """Output path reserved for the next commit."""

    @abstractmethod
    def write_line(self, line: str) -> None:
        """
        Append a line to the buffer.

        Args:
            line: Captured line without its line terminator
        """

    @abstractmethod
    def commit(self) -> str:
        """
        Persist the buffered lines and reset the buffer.

        Returns:
            Path of the committed file, or "" when there was nothing to commit

        Raises:
            CommitError: If the lines could not be persisted
        """

    def close(self) -> None:
        """Release resources held by the buffer."""

    def __enter__(self) -> "LineBuffer":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def new_buffer(context: str, name_gen: NameGenerator, batch_size: int = 1000) -> LineBuffer:
    """
    Create the buffer selected by the ``context`` setting.

    Args:
        context: "file" for a FileBuffer, anything else for a MemoryBuffer
        name_gen: Output path generator
        batch_size: Lines per temp file write (FileBuffer only)

    Raises:
        OSError: If the FileBuffer cannot create its temporary file
    """
    from outmon.buffer.disk import FileBuffer
    from outmon.buffer.memory import MemoryBuffer

    if context == FILE_CONTEXT:
        return FileBuffer(name_gen, batch_size=batch_size)
    return MemoryBuffer(name_gen)


__all__ = ["CommitError", "LineBuffer", "new_buffer", "TMP_SUFFIX"]
