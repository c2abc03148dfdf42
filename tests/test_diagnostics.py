"""Tests for crashlog/diagnostics.py."""

from unittest.mock import Mock

from crashlog.diagnostics import ErrorDiagnostics


class TestErrorDiagnostics:
    def test_counts_per_operation(self):
        diag = ErrorDiagnostics()
        first, second = OSError("a"), OSError("b")
        diag.record("append_message", first)
        diag.record("append_message", second)
        diag.record("truncate", first)

        assert diag.count("append_message") == 2
        assert diag.count("truncate") == 1
        assert diag.count("open_streams") == 0
        assert diag.total == 3
        assert diag.last_error is first
        assert diag.last_operation == "truncate"
        assert diag.counts() == {"append_message": 2, "truncate": 1}

    def test_callback_receives_failure(self):
        callback = Mock()
        diag = ErrorDiagnostics(on_error=callback)
        err = PermissionError("denied")
        diag.record("open_streams", err)
        callback.assert_called_once_with("open_streams", err)

    def test_failing_callback_is_suppressed(self):
        diag = ErrorDiagnostics(on_error=Mock(side_effect=RuntimeError("bad callback")))
        diag.record("truncate", OSError("x"))
        assert diag.count("truncate") == 1

    def test_reset(self):
        diag = ErrorDiagnostics()
        diag.record("truncate", OSError("x"))
        diag.reset()
        assert diag.total == 0
        assert diag.last_error is None
