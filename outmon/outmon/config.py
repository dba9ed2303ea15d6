"""
Configuration loader for outmon.

The config file is JSON (``.json``) or YAML (anything else). Key names:

    write_interval             Seconds between commits (> 0)
    command                    Program to run and monitor (required)
    command_args               Arguments for the program
    out_dir                    Directory for committed output files
    log_dir                    Directory for the monitor's own log file
    out_filename_pattern       Output filename template, e.g. "out_{timestamp}.log"
    out_process_script         Post-processing command run for each file
    out_process_script_params  Static arguments placed before the file path
    context                    "file" for a disc file buffer, anything else for memory
    batch_size                 Lines held in memory by the disc file buffer
    queue_size                 Committed files waiting for post-processing
    dispatch_workers           Concurrent post-processing invocations

Environment Variables:
    OUTMON_CONFIG: Config path used when none is given on the command line
    OUTMON_OUT_DIR: Overrides out_dir
    OUTMON_LOG_DIR: Overrides log_dir
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import yaml

DEFAULT_CONFIG_FILE = "config.json"
FILE_CONTEXT = "file"
MEMORY_CONTEXT = "memory"


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


@dataclass
class MonitorConfig:
    """Settings consumed by the monitor pipeline."""
    command: str
    command_args: List[str] = field(default_factory=list)
    write_interval: int = 60
    out_dir: str = "."
    log_dir: str = "."
    out_filename_pattern: str = "out_{timestamp}.log"
    out_process_script: str = ""
    out_process_script_params: List[str] = field(default_factory=list)
    context: str = MEMORY_CONTEXT
    batch_size: int = 1000
    queue_size: int = 10
    dispatch_workers: int = 1

    def __post_init__(self) -> None:
        self.validate()

    @property
    def uses_file_buffer(self) -> bool:
        """True when lines are buffered in a temporary disc file."""
        return self.context == FILE_CONTEXT

    def validate(self) -> None:
        """
        Check field values.

        Raises:
            ConfigError: If any value is out of range
        """
        if not isinstance(self.command, str) or not self.command:
            raise ConfigError("'command' is required")
        for name in ("write_interval", "batch_size", "queue_size", "dispatch_workers"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
        for name in ("command_args", "out_process_script_params"):
            value = getattr(self, name)
            if not isinstance(value, list):
                raise ConfigError(f"'{name}' must be a list, got {type(value).__name__}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MonitorConfig":
        """
        Build a config from a parsed mapping, applying environment overrides.

        Raises:
            ConfigError: If required keys are missing or values are invalid
        """
        if "command" not in data:
            raise ConfigError("'command' is required")

        known = {f for f in cls.__dataclass_fields__}
        values: Dict[str, Any] = {k: v for k, v in data.items() if k in known}

        if os.environ.get("OUTMON_OUT_DIR"):
            values["out_dir"] = os.environ["OUTMON_OUT_DIR"]
        if os.environ.get("OUTMON_LOG_DIR"):
            values["log_dir"] = os.environ["OUTMON_LOG_DIR"]

        values["command_args"] = [str(a) for a in values.get("command_args") or []]
        values["out_process_script_params"] = [
            str(a) for a in values.get("out_process_script_params") or []
        ]
        return cls(**values)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "MonitorConfig":
        """
        Load configuration from a JSON or YAML file.

        Args:
            path: Config file path

        Raises:
            ConfigError: If the file is missing, unparsable or invalid
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        try:
            with open(path, "r", encoding="utf-8") as f:
                if path.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Error reading configuration from {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Configuration in {path} must be a mapping")

        return cls.from_dict(data)


def config_path_from_env(default: str = DEFAULT_CONFIG_FILE) -> Path:
    """Config path from OUTMON_CONFIG, falling back to *default*."""
    return Path(os.environ.get("OUTMON_CONFIG") or default)


def create_default_config() -> str:
    """Generate a default outmon.yaml configuration."""
    return '''# outmon configuration
command: /usr/bin/my-noisy-service
command_args:
  - --verbose

write_interval: 60           # seconds between output files
out_dir: ./out
log_dir: ./logs
out_filename_pattern: "out_{timestamp}.log"

# run for every committed file: <script> [params...] <file>
out_process_script: /usr/local/bin/ship-log
out_process_script_params: []

context: memory              # "file" buffers lines in a temporary disc file
batch_size: 1000             # disc file buffer: lines per write
queue_size: 10               # committed files waiting for post-processing
dispatch_workers: 1
'''


def create_default_json_config() -> str:
    """Generate a default config.json, same settings as the YAML template."""
    return json.dumps(yaml.safe_load(create_default_config()), indent=2) + "\n"
