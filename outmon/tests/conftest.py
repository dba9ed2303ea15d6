"""Pytest fixtures for outmon tests."""

import os
import sys
import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def name_gen(temp_dir):
    """Name generator producing out_0.log, out_1.log, ... in temp_dir."""
    counter = {"n": 0}

    def generate() -> str:
        path = os.path.join(str(temp_dir), f"out_{counter['n']}.log")
        counter["n"] += 1
        return path

    return generate


@pytest.fixture
def copy_script(temp_dir):
    """
    Post-processing command that copies the file it is given to <file>.done.

    Returns (script, params) for a Dispatcher.
    """
    code = "import shutil, sys; shutil.copy(sys.argv[1], sys.argv[1] + '.done')"
    return sys.executable, ["-c", code]


@pytest.fixture(autouse=True)
def reset_env():
    """Reset environment variables after each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
