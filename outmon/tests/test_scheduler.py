"""Tests for outmon.scheduler module."""

import time
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from outmon.buffer.memory import MemoryBuffer
from outmon.dispatch import Dispatcher
from outmon.scheduler import FlushScheduler


@pytest.fixture
def dispatcher():
    """Dispatcher double recording submitted paths."""
    return Mock(spec=Dispatcher)


class TestFlushScheduler:
    """Tests for FlushScheduler class."""

    @pytest.mark.parametrize("interval", [0, -1, 0.5, True])
    def test_interval_must_be_positive_seconds(self, name_gen, dispatcher, interval):
        with pytest.raises(ValueError):
            FlushScheduler(MemoryBuffer(name_gen), dispatcher, interval)

    def test_tick_commits_and_submits(self, name_gen, dispatcher):
        buffer = MemoryBuffer(name_gen)
        for line in ["a", "b", "c"]:
            buffer.write_line(line)
        scheduler = FlushScheduler(buffer, dispatcher, 1)

        path = scheduler.tick()

        assert Path(path).read_text() == "a\nb\nc"
        dispatcher.submit.assert_called_once_with(path)

    def test_empty_tick_submits_nothing(self, name_gen, dispatcher, temp_dir):
        scheduler = FlushScheduler(MemoryBuffer(name_gen), dispatcher, 1)

        assert scheduler.tick() == ""
        dispatcher.submit.assert_not_called()
        assert list(temp_dir.iterdir()) == []

    def test_failed_commit_is_logged_and_next_tick_works(self, name_gen, dispatcher, caplog):
        buffer = MemoryBuffer(name_gen)
        buffer.write_line("lost")
        scheduler = FlushScheduler(buffer, dispatcher, 1)

        with patch("outmon.buffer.memory.os.replace", side_effect=OSError("read-only")):
            assert scheduler.tick() == ""

        assert "Commit failed" in caplog.text
        assert "lost" in caplog.text
        dispatcher.submit.assert_not_called()

        buffer.write_line("kept")
        path = scheduler.tick()
        assert Path(path).read_text() == "kept"
        dispatcher.submit.assert_called_once_with(path)

    def test_timer_commits_each_interval(self, name_gen, dispatcher):
        buffer = MemoryBuffer(name_gen)
        scheduler = FlushScheduler(buffer, dispatcher, 1)
        buffer.write_line("a")
        buffer.write_line("b")
        buffer.write_line("c")

        scheduler.start()
        try:
            deadline = time.time() + 10
            while not dispatcher.submit.called and time.time() < deadline:
                time.sleep(0.05)
        finally:
            scheduler.stop()

        dispatcher.submit.assert_called_once()
        path = dispatcher.submit.call_args[0][0]
        assert Path(path).read_text() == "a\nb\nc"

    def test_stop_does_not_commit(self, name_gen, dispatcher):
        buffer = MemoryBuffer(name_gen)
        scheduler = FlushScheduler(buffer, dispatcher, 60)
        buffer.write_line("pending")

        scheduler.start()
        scheduler.stop()

        assert buffer.line_count == 1
        dispatcher.submit.assert_not_called()

    def test_unexpected_error_does_not_stop_timer(self, name_gen, dispatcher, caplog):
        buffer = MemoryBuffer(name_gen)
        dispatcher.submit.side_effect = [RuntimeError("queue gone"), None]
        scheduler = FlushScheduler(buffer, dispatcher, 1)
        buffer.write_line("first")

        scheduler.start()
        try:
            deadline = time.time() + 10
            while dispatcher.submit.call_count < 1 and time.time() < deadline:
                time.sleep(0.05)
            buffer.write_line("second")
            while dispatcher.submit.call_count < 2 and time.time() < deadline:
                time.sleep(0.05)
        finally:
            scheduler.stop()

        assert dispatcher.submit.call_count == 2
        assert "Unexpected error in periodic commit" in caplog.text
        path = dispatcher.submit.call_args[0][0]
        assert Path(path).read_text() == "second"
