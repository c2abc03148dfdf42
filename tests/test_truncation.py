"""Tests for crashlog/truncation.py: file rewrite and background loop."""

import threading
import time

import pytest

from crashlog.file_utils import read_lines, write_lines
from crashlog.frame_codec import BEGIN_LINE, END_LINE
from crashlog.truncation import TruncationLoop, truncate_file


def _records(count, prefix="msg"):
    lines = []
    for i in range(count):
        lines += [BEGIN_LINE, f"header {i}", f"{prefix} {i}", END_LINE, ""]
    return lines


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestTruncateFile:
    def test_small_file_untouched(self, tmp_path):
        path = tmp_path / "app_messages.log"
        write_lines(path, _records(3))
        before = path.read_bytes()

        assert truncate_file(str(path), 15) is False
        assert path.read_bytes() == before

    def test_keeps_newest_whole_records(self, tmp_path):
        path = tmp_path / "app_messages.log"
        original = _records(2010)
        write_lines(path, original)

        assert truncate_file(str(path), 10000) is True

        lines = read_lines(path)
        assert 1 <= len(lines) <= 9999
        assert lines[0].startswith("MESSAGE BEGIN")
        assert lines[-5:] == original[-5:]
        assert lines == original[-len(lines):]

    def test_bounded_for_any_limit(self, tmp_path):
        path = tmp_path / "trace_error.log"
        for limit in (1, 4, 5, 6, 23, 50):
            write_lines(path, _records(12))
            truncate_file(str(path), limit)
            lines = read_lines(path)
            assert len(lines) <= limit
            if lines:
                assert lines[0].startswith("MESSAGE BEGIN")

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            truncate_file(str(tmp_path / "absent.log"), 10)

    def test_separator_characters_keep_line_count(self, tmp_path):
        path = tmp_path / "app_messages.log"
        original = _records(20, prefix="page\x0cbreak\u2028x")
        write_lines(path, original)

        assert truncate_file(str(path), 50) is True

        lines = read_lines(path)
        assert len(lines) == 45
        assert lines == original[-45:]

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "app_messages.log"
        write_lines(path, _records(20))
        truncate_file(str(path), 30)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["app_messages.log"]


class TestTruncationLoop:
    def test_runs_every_n_wakeups(self):
        calls = []
        loop = TruncationLoop(lambda: calls.append(time.monotonic()), poll_interval=0.01, truncate_every=3)
        loop.start()
        try:
            assert _wait_for(lambda: len(calls) >= 2)
        finally:
            loop.stop()
        assert loop.passes >= 2

    def test_stop_does_not_wait_out_interval(self):
        loop = TruncationLoop(lambda: None, poll_interval=30.0, truncate_every=1)
        loop.start()
        assert loop.running

        started = time.monotonic()
        loop.stop()

        assert time.monotonic() - started < 5.0
        assert not loop.running
        assert loop.passes == 0

    def test_failing_pass_keeps_loop_alive(self):
        calls = []

        def _fail():
            calls.append(1)
            raise RuntimeError("pass failed")

        loop = TruncationLoop(_fail, poll_interval=0.01, truncate_every=1)
        loop.start()
        try:
            assert _wait_for(lambda: len(calls) >= 3)
            assert loop.running
        finally:
            loop.stop()

    def test_start_twice_keeps_one_thread(self):
        loop = TruncationLoop(lambda: None, poll_interval=30.0)
        loop.start()
        loop.start()
        try:
            names = [t.name for t in threading.enumerate() if t.name == "crashlog-truncation"]
            assert len(names) == 1
        finally:
            loop.stop()

    def test_stop_before_start(self):
        loop = TruncationLoop(lambda: None)
        loop.stop()
        assert not loop.running
