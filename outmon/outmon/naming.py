"""
Output file name generation.

A name generator is a zero-argument callable returning a fresh output path
each time it is called. Names are rendered from a ``str.format`` pattern with
a single ``{timestamp}`` placeholder and resolved under the output directory:

    gen = make_name_generator("/var/out", "proc_{timestamp}.log")
    gen()  # '/var/out/proc_20240101120000123456000.log'
"""

import os
import threading
from datetime import datetime
from typing import Callable

from outmon.config import ConfigError

NameGenerator = Callable[[], str]

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


def format_timestamp(dt: datetime) -> str:
    """
    Render a timestamp with sub-second precision.

    Seconds resolution followed by the fractional part as nine digits
    (nanoseconds, of which Python exposes microseconds).
    """
    return f"{dt.strftime(TIMESTAMP_FORMAT)}{dt.microsecond * 1000:09d}"


def render_name(pattern: str, timestamp: str) -> str:
    """Render a filename pattern for the given timestamp string."""
    return pattern.format(timestamp=timestamp)


def _validate_pattern(pattern: str) -> None:
    try:
        first = render_name(pattern, "0")
        second = render_name(pattern, "1")
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigError(f"Invalid output filename pattern {pattern!r}: {e}") from e

    if first == second:
        raise ConfigError(
            f"Output filename pattern {pattern!r} must contain a {{timestamp}} placeholder"
        )
    if not first.strip():
        raise ConfigError("Output filename pattern renders an empty name")


def make_name_generator(
    out_dir: str,
    pattern: str,
    now: Callable[[], datetime] = datetime.now,
) -> NameGenerator:
    """
    Build a name generator for an output directory and filename pattern.

    When ``now`` yields the same timestamp as the previous call (a fixed
    time source, or two calls within one microsecond), a ``-<n>`` suffix is
    appended to it so the paths stay distinct.

    Args:
        out_dir: Directory the generated names are resolved under
        pattern: Filename template with a ``{timestamp}`` placeholder
        now: Time source, ``datetime.now`` unless a test pins it

    Returns:
        Zero-argument callable producing output paths

    Raises:
        ConfigError: If the pattern cannot be rendered
    """
    _validate_pattern(pattern)
    lock = threading.Lock()
    state = {"last": "", "repeat": 0}

    def generate() -> str:
        timestamp = format_timestamp(now())
        with lock:
            if timestamp == state["last"]:
                state["repeat"] += 1
                unique = f"{timestamp}-{state['repeat']}"
            else:
                state["last"] = timestamp
                state["repeat"] = 0
                unique = timestamp
        return os.path.join(out_dir, render_name(pattern, unique))

    return generate
