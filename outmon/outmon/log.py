"""
Logging setup for the monitor's own log file.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

LOG_FILE_NAME = "process_out_monitor.log"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 20 * 1024 * 1024
LOG_BACKUPS = 20


def setup_logging(
    log_dir: Optional[str] = None,
    verbose: bool = False,
    console: bool = True,
) -> Optional[str]:
    """
    Configure the ``outmon`` logger.

    Args:
        log_dir: Directory for the rotating log file; None logs to console only
        verbose: Log at DEBUG instead of INFO
        console: Also log to stderr

    Returns:
        Path of the log file, if one was configured

    Raises:
        OSError: If the log directory or file cannot be created
    """
    root = logging.getLogger("outmon")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    log_path = None

    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        log_path = os.path.join(log_dir, LOG_FILE_NAME)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    if console:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    return log_path
