"""
outmon - process output monitor

Runs a long-lived command and turns its standard output into a stream of
complete, uniquely named files:
- Captures stdout line by line
- Buffers lines in memory or in a temporary disc file
- Commits the buffer atomically on an interval and when the command exits
- Hands every committed file to a post-processing command
"""

__version__ = "0.1.0"

from outmon.config import ConfigError, MonitorConfig
from outmon.naming import make_name_generator
from outmon.buffer import CommitError, LineBuffer, new_buffer
from outmon.buffer.memory import MemoryBuffer
from outmon.buffer.disk import FileBuffer
from outmon.capture import CaptureLoop
from outmon.dispatch import Dispatcher, InFlightCounter
from outmon.scheduler import FlushScheduler
from outmon.monitor import MonitorResult, ProcessMonitor

__all__ = [
    # Config
    "MonitorConfig",
    "ConfigError",
    # Naming
    "make_name_generator",
    # Buffers
    "LineBuffer",
    "MemoryBuffer",
    "FileBuffer",
    "CommitError",
    "new_buffer",
    # Pipeline
    "CaptureLoop",
    "FlushScheduler",
    "Dispatcher",
    "InFlightCounter",
    # Supervisor
    "ProcessMonitor",
    "MonitorResult",
]
