"""
Tests for the outmon command line entry point.
"""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from outmon import __version__
from outmon.cli import main
from outmon.log import LOG_FILE_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers installed by setup_logging()."""
    yield
    logger = logging.getLogger("outmon")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


def write_config(path, **values):
    path.write_text(json.dumps(values))
    return path


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_init_writes_yaml(tmp_path):
    config_path = tmp_path / "outmon.yaml"

    assert main(["--init", "--config", str(config_path)]) == 0
    assert yaml.safe_load(config_path.read_text())["write_interval"] == 60


def test_init_writes_json(tmp_path):
    config_path = tmp_path / "config.json"

    assert main(["--init", "-c", str(config_path)]) == 0
    assert json.loads(config_path.read_text())["context"] == "memory"


def test_init_refuses_to_overwrite(tmp_path, capsys):
    config_path = tmp_path / "config.json"
    config_path.write_text("{}")

    assert main(["--init", "-c", str(config_path)]) == 1
    assert config_path.read_text() == "{}"
    assert "already exists" in capsys.readouterr().err


def test_missing_config(tmp_path, capsys):
    assert main(["-c", str(tmp_path / "missing.json")]) == 1
    assert "not found" in capsys.readouterr().err


def test_config_from_env(tmp_path, monkeypatch):
    config_path = write_config(
        tmp_path / "env.json",
        command=sys.executable,
        command_args=["-c", "print('from env')"],
        out_dir=str(tmp_path / "out"),
        log_dir=str(tmp_path / "logs"),
    )
    monkeypatch.setenv("OUTMON_CONFIG", str(config_path))

    assert main([]) == 0
    files = list((tmp_path / "out").iterdir())
    assert [f.read_text() for f in files] == ["from env"]


def test_run_writes_log_file(tmp_path):
    config_path = write_config(
        tmp_path / "config.json",
        command=sys.executable,
        command_args=["-c", "print('hello')"],
        out_dir=str(tmp_path / "out"),
        log_dir=str(tmp_path / "logs"),
        write_interval=5,
    )

    assert main(["-c", str(config_path)]) == 0

    log_text = (tmp_path / "logs" / LOG_FILE_NAME).read_text()
    assert "Run and monitor command" in log_text
    assert "Write interval: 5 seconds" in log_text
    assert "Context: In memory" in log_text
    assert "1 lines written to file" in log_text


def test_failing_child_exits_1(tmp_path):
    config_path = write_config(
        tmp_path / "config.json",
        command=sys.executable,
        command_args=["-c", "print('partial'); raise SystemExit(2)"],
        out_dir=str(tmp_path / "out"),
        log_dir=str(tmp_path / "logs"),
    )

    assert main(["-c", str(config_path)]) == 1
    files = list((tmp_path / "out").iterdir())
    assert [f.read_text() for f in files] == ["partial"]


def test_unstartable_command_exits_1(tmp_path):
    config_path = write_config(
        tmp_path / "config.json",
        command=str(tmp_path / "no-such-program"),
        out_dir=str(tmp_path / "out"),
        log_dir=str(tmp_path / "logs"),
    )

    assert main(["-c", str(config_path)]) == 1
    assert "Cannot start monitoring" in (tmp_path / "logs" / LOG_FILE_NAME).read_text()


def test_bad_filename_pattern_exits_1(tmp_path):
    config_path = write_config(
        tmp_path / "config.json",
        command=sys.executable,
        out_dir=str(tmp_path / "out"),
        log_dir=str(tmp_path / "logs"),
        out_filename_pattern="{hostname}.log",
    )

    assert main(["-c", str(config_path)]) == 1


def test_interrupt_exits_130(tmp_path):
    config_path = write_config(
        tmp_path / "config.json",
        command=sys.executable,
        out_dir=str(tmp_path / "out"),
        log_dir=str(tmp_path / "logs"),
    )

    with patch("outmon.cli.ProcessMonitor.run", side_effect=KeyboardInterrupt):
        assert main(["-c", str(config_path)]) == 130
    assert "Interrupted" in (tmp_path / "logs" / LOG_FILE_NAME).read_text()
