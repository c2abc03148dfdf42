"""Tests for crashlog/append_writer.py: handle ownership and flush-on-write."""

from datetime import datetime

import pytest

from crashlog import append_writer
from crashlog.append_writer import AppendWriter
from crashlog.diagnostics import ErrorDiagnostics
from crashlog.frame_codec import format_error_record, format_message_record
from crashlog.interfaces import AppIdentity, LogKind, resolve_target

IDENTITY = AppIdentity(version="1.0", title="Writer")
WHEN = datetime(2025, 6, 1, 12, 0, 0)


@pytest.fixture
def targets(tmp_path):
    log_dir = tmp_path / "logs"
    return [
        resolve_target(str(log_dir), "app_messages.log", LogKind.APPLICATION_MESSAGE, 0),
        resolve_target(str(log_dir), "trace_error.log", LogKind.APPLICATION_ERROR, 0),
    ]


class TestOpenClose:
    def test_open_creates_directory_and_files(self, targets):
        writer = AppendWriter(targets)
        writer.open()
        try:
            assert writer.is_open()
            for target in targets:
                with open(target.path, "r") as f:
                    assert f.read() == ""
        finally:
            writer.close()
        assert not writer.is_open()
        assert not writer.is_open(LogKind.APPLICATION_ERROR)

    def test_open_single_kind(self, targets):
        writer = AppendWriter(targets)
        writer.open([LogKind.APPLICATION_ERROR])
        try:
            assert writer.is_open(LogKind.APPLICATION_ERROR)
            assert not writer.is_open(LogKind.APPLICATION_MESSAGE)
            assert not writer.is_open()
        finally:
            writer.close()

    def test_close_twice(self, targets):
        writer = AppendWriter(targets)
        writer.open()
        writer.close()
        writer.close()
        assert not writer.is_open()


class TestAppend:
    def test_record_is_on_disk_after_append(self, targets):
        writer = AppendWriter(targets, fsync=True)
        writer.open()
        try:
            record = format_message_record("persisted", WHEN, IDENTITY)
            assert writer.append(record) is True
            # Read through a separate handle while the writer stays open.
            with open(targets[0].path, "r", encoding="utf-8") as f:
                assert f.read() == record.serialize()
        finally:
            writer.close()

    def test_records_go_to_their_own_file(self, targets):
        writer = AppendWriter(targets, fsync=False)
        writer.open()
        try:
            writer.append(format_message_record("msg", WHEN, IDENTITY))
            writer.append(format_error_record(RuntimeError("err"), WHEN, IDENTITY))
        finally:
            writer.close()

        with open(targets[0].path) as f:
            messages = f.read()
        with open(targets[1].path) as f:
            errors = f.read()
        assert "Message           [msg]" in messages
        assert "err" not in messages
        assert "Error Message     [err]" in errors

    def test_append_without_handle_is_dropped(self, targets):
        diagnostics = ErrorDiagnostics()
        writer = AppendWriter(targets, diagnostics)
        assert writer.append(format_message_record("lost", WHEN, IDENTITY)) is False
        assert diagnostics.total == 0

    def test_io_error_is_recorded_not_raised(self, targets, monkeypatch):
        diagnostics = ErrorDiagnostics()
        writer = AppendWriter(targets, diagnostics, fsync=True)
        writer.open()

        def _disk_full(fd):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(append_writer.os, "fsync", _disk_full)
        try:
            assert writer.append(format_error_record(ValueError("x"), WHEN, IDENTITY)) is False
        finally:
            monkeypatch.undo()
            writer.close()

        assert diagnostics.count("append_error") == 1
        assert isinstance(diagnostics.last_error, OSError)

    def test_handle_stays_usable_after_failure(self, targets, monkeypatch):
        writer = AppendWriter(targets, fsync=True)
        writer.open()

        def _transient(fd):
            raise OSError("transient")

        try:
            monkeypatch.setattr(append_writer.os, "fsync", _transient)
            assert writer.append(format_message_record("first", WHEN, IDENTITY)) is False
            monkeypatch.undo()
            assert writer.append(format_message_record("second", WHEN, IDENTITY)) is True
        finally:
            writer.close()
