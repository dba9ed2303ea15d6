"""
outmon - CLI entry point.

Usage:
    outmon --config config.json
    outmon -c outmon.yaml --verbose
    outmon --init -c outmon.yaml

Options:
    --config PATH   Configuration file (default: $OUTMON_CONFIG or config.json)
    --init          Write a default configuration file and exit
    --verbose       Debug logging
    --version       Print version and exit

Exit status is 0 when the monitored command exits cleanly, 1 when it fails
or the monitor cannot start, 130 when interrupted before the command exits.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from outmon import __version__
from outmon.config import (
    ConfigError,
    MonitorConfig,
    config_path_from_env,
    create_default_config,
    create_default_json_config,
)
from outmon.log import setup_logging
from outmon.monitor import ProcessMonitor

logger = logging.getLogger("outmon.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="outmon",
        description="Run a command and commit its output to files on an interval",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monitor the command described in config.json
  outmon --config config.json

  # Create a starting configuration
  outmon --init --config outmon.yaml
        """,
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Configuration file (JSON or YAML)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Write a default configuration file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser


def init_config(config_path: Path) -> int:
    """Write a default configuration to *config_path*."""
    if config_path.exists():
        print(f"Error: {config_path} already exists", file=sys.stderr)
        return 1

    if config_path.suffix == ".json":
        config_path.write_text(create_default_json_config())
    else:
        config_path.write_text(create_default_config())
    print(f"Created {config_path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for outmon."""
    args = build_parser().parse_args(argv)
    config_path = args.config or config_path_from_env()

    if args.init:
        return init_config(config_path)

    try:
        config = MonitorConfig.from_file(config_path)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        log_path = setup_logging(config.log_dir, verbose=args.verbose)
    except OSError as e:
        print(f"Error: cannot open log file in {config.log_dir}: {e}", file=sys.stderr)
        return 1

    logger.info(f"outmon {__version__}, log file: {log_path}")

    try:
        result = ProcessMonitor(config).run()
    except (ConfigError, OSError) as e:
        logger.critical(f"Cannot start monitoring: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    logger.info(
        f"Finished: exit status {result.returncode}, {result.lines_captured} lines, "
        f"{result.files_committed} files, {result.dispatch_failures} failed post-processing runs"
    )
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
