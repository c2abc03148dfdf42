"""Shared pytest fixtures for crash logger tests."""

import pytest

from crashlog.config import CrashLogConfig, TruncationPolicy
from crashlog.diagnostics import ErrorDiagnostics
from crashlog.exception_logger import ExceptionLogger
from crashlog.implementations import FixedDirectory, StaticIdentity
from crashlog.mocks import MockClock, MockExceptionSource


@pytest.fixture
def clock():
    return MockClock()


@pytest.fixture
def exception_source():
    return MockExceptionSource()


@pytest.fixture
def make_logger(tmp_path, clock, exception_source):
    """Build ExceptionLoggers writing under tmp_path; all are unbound at teardown."""
    created = []

    def _make(instance_suffix=0, truncation=None, directory=None, diagnostics=None):
        config = CrashLogConfig(
            app_name="TestApp",
            log_dir=str(tmp_path),
            instance_suffix=instance_suffix,
            install_hooks=False,
            fsync=False,
            # Far enough out that the background loop never fires on its own.
            truncation=truncation or TruncationPolicy(poll_interval=60.0),
        )
        log = ExceptionLogger(
            config,
            clock=clock,
            directory=directory or FixedDirectory(str(tmp_path)),
            identity=StaticIdentity("1.2.3", "TestApp"),
            exception_source=exception_source,
            diagnostics=diagnostics or ErrorDiagnostics(),
        )
        created.append(log)
        return log

    yield _make

    for log in created:
        log.unbind()
