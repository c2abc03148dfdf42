"""
Exception Logger: lifecycle and lock discipline for the crash log files.

Ties the pieces together:

    callers ──append_message / append_error──┐
    crash hook ──append_error────────────────┼──> [lock] AppendWriter ──> files
    TruncationLoop ──truncate────────────────┘      (close, rewrite, reopen)

One lock serializes every append, every truncation pass and every
open/close of the file handles, so no caller ever sees a handle that is
closed while the logger still reports itself bound. Nothing here raises
into the host: failures are recorded in ErrorDiagnostics instead.
"""

from __future__ import annotations

import atexit
import logging
import threading
from typing import Any, Optional

from .append_writer import AppendWriter
from .config import CrashLogConfig
from .crash_hook import CrashCallback, CrashDataCallback, CrashHookAdapter
from .diagnostics import ErrorDiagnostics
from .frame_codec import LogRecord, format_error_record, format_message_record
from .implementations import (
    AppDataDirectory, EntryPointIdentity, FixedDirectory, RealClock, SysExceptHookSource,
)
from .interfaces import (
    AppIdentityInterface, ClockInterface, LogDirectoryInterface, LogKind, LogTarget,
    UnhandledExceptionSource, resolve_target,
)
from .truncation import TruncationLoop, truncate_file

logger = logging.getLogger(__name__)


class ExceptionLogger:
    """
    Process-local crash/event logger handle.

    Usage:
        with ExceptionLogger(CrashLogConfig(app_name="my-tool")) as log:
            log.append_message("started")
            try:
                ...
            except ValueError as e:
                log.append_error(e, "while parsing input")

    bind() and unbind() may also be called directly; both are idempotent
    and every append before bind() or after unbind() is a silent no-op.
    Collaborators default to the real implementations and can be replaced
    for testing.
    """

    def __init__(
        self,
        config: Optional[CrashLogConfig] = None,
        *,
        clock: Optional[ClockInterface] = None,
        directory: Optional[LogDirectoryInterface] = None,
        identity: Optional[AppIdentityInterface] = None,
        exception_source: Optional[UnhandledExceptionSource] = None,
        diagnostics: Optional[ErrorDiagnostics] = None,
    ):
        self._config = config or CrashLogConfig()
        self._config.validate()

        if directory is None:
            if self._config.log_dir:
                directory = FixedDirectory(self._config.log_dir)
            else:
                directory = AppDataDirectory(self._config.app_name)
        if exception_source is None and self._config.install_hooks:
            exception_source = SysExceptHookSource()

        self._clock = clock or RealClock()
        self._directory = directory
        self._identity = identity or EntryPointIdentity()
        self._exception_source = exception_source
        self._diagnostics = diagnostics or ErrorDiagnostics()
        self._crash_hook = CrashHookAdapter(self.append_error, self._diagnostics)

        self._lock = threading.Lock()
        # Serializes bind() against unbind(); never taken by the truncation pass.
        self._lifecycle_lock = threading.Lock()
        self._bound = False
        self._log_dir: Optional[str] = None
        self._instance_suffix = self._config.instance_suffix
        self._writer: Optional[AppendWriter] = None
        self._loop: Optional[TruncationLoop] = None
        self._hook_subscribed = False

    # ------------------------------------------------------------------
    # Properties

    @property
    def config(self) -> CrashLogConfig:
        return self._config

    @property
    def bound(self) -> bool:
        return self._bound

    @property
    def instance_suffix(self) -> int:
        return self._instance_suffix

    @property
    def diagnostics(self) -> ErrorDiagnostics:
        return self._diagnostics

    @property
    def crash_hook(self) -> CrashHookAdapter:
        return self._crash_hook

    @property
    def truncation_loop(self) -> Optional[TruncationLoop]:
        return self._loop

    @property
    def message_log_path(self) -> Optional[str]:
        writer = self._writer
        return writer.target(LogKind.APPLICATION_MESSAGE).path if writer else None

    @property
    def error_log_path(self) -> Optional[str]:
        writer = self._writer
        return writer.target(LogKind.APPLICATION_ERROR).path if writer else None

    # ------------------------------------------------------------------
    # Lifecycle

    def __enter__(self) -> "ExceptionLogger":
        self.bind()
        return self

    def __exit__(self, exc_type, exc_value, tb) -> bool:
        self.unbind()
        return False

    def bind(self, instance_suffix: Optional[int] = None) -> bool:
        """
        Open both logs, hook unhandled exceptions and start truncation.

        Returns True if the logger is bound afterwards (binding an already
        bound logger changes nothing). Returns False if the log files could
        not be opened; the logger then stays unbound. A bind() racing an
        unbind() waits for the teardown to finish and then binds afresh.
        """
        suffix = self._config.instance_suffix if instance_suffix is None else instance_suffix
        if suffix < 0:
            raise ValueError(f"instance_suffix must be non-negative, got {suffix}")

        with self._lifecycle_lock:
            with self._lock:
                if self._bound:
                    return True

                writer: Optional[AppendWriter] = None
                try:
                    log_dir = self._directory.resolve()
                    writer = AppendWriter(
                        self._targets(log_dir, suffix), self._diagnostics, fsync=self._config.fsync
                    )
                    writer.open()
                except Exception as exc:
                    if writer is not None:
                        writer.close()
                    self._diagnostics.record("open_streams", exc)
                    return False

                self._writer = writer
                self._log_dir = log_dir
                self._instance_suffix = suffix
                self._bound = True
                self._subscribe_hook()

                policy = self._config.truncation
                self._loop = TruncationLoop(
                    self._truncation_pass,
                    poll_interval=policy.poll_interval,
                    truncate_every=policy.truncate_every,
                )
                self._loop.start()

            atexit.register(self.unbind)
        logger.info("Crash logger bound to %s (instance %d)", log_dir, suffix)
        return True

    def unbind(self) -> None:
        """
        Stop truncation, release the exception hook and close both logs.

        Safe to call repeatedly, before bind(), and from atexit.
        """
        with self._lifecycle_lock:
            with self._lock:
                if not self._bound:
                    return
                loop, self._loop = self._loop, None

            # Joined outside the append lock: a pass in progress needs it to finish.
            if loop is not None:
                loop.stop()

            with self._lock:
                self._unsubscribe_hook()
                if self._writer is not None:
                    self._writer.close()
                self._writer = None
                self._bound = False

            atexit.unregister(self.unbind)
        logger.info("Crash logger unbound from %s", self._log_dir)

    # ------------------------------------------------------------------
    # Appending

    def append_message(self, message: str) -> bool:
        """Append an application message. Returns True if it was written."""
        with self._lock:
            if not self._bound:
                return False
            try:
                record = format_message_record(
                    str(message), self._clock.now(), self._identity.get_identity()
                )
            except Exception as exc:
                self._diagnostics.record("append_message", exc)
                return False
            return self._append_locked(record)

    def append_error(self, exception: BaseException, additional_message: Optional[str] = None) -> bool:
        """Append an exception with its traceback. Returns True if it was written."""
        with self._lock:
            if not self._bound:
                return False
            try:
                record = format_error_record(
                    exception, self._clock.now(), self._identity.get_identity(), additional_message
                )
            except Exception as exc:
                self._diagnostics.record("append_error", exc)
                return False
            return self._append_locked(record)

    def _append_locked(self, record: LogRecord) -> bool:
        writer = self._writer
        if writer is None:
            return False
        if not writer.is_open(record.kind):
            # A failed reopen after truncation; try again on this call.
            try:
                writer.open([record.kind])
            except Exception as exc:
                self._diagnostics.record("open_streams", exc)
                return False
        return writer.append(record)

    # ------------------------------------------------------------------
    # Truncation

    def truncate(self, max_lines: Optional[int] = None, instance_suffix: Optional[int] = None) -> bool:
        """
        Trim both logs to their newest whole records.

        Runs under the append lock with both handles closed, and reopens
        them afterwards even if the pass fails. The exception hook is
        released only while the error log is being handled. Returns True
        if either file was rewritten.
        """
        limit = self._config.truncation.max_lines if max_lines is None else max_lines

        with self._lock:
            if not self._bound or self._writer is None or self._log_dir is None:
                return False

            suffix = self._instance_suffix if instance_suffix is None else instance_suffix
            targets = {t.kind: t for t in self._targets(self._log_dir, suffix)}
            rewritten = False
            try:
                self._writer.close()
                if truncate_file(targets[LogKind.APPLICATION_MESSAGE].path, limit):
                    rewritten = True

                self._unsubscribe_hook()
                try:
                    if truncate_file(targets[LogKind.APPLICATION_ERROR].path, limit):
                        rewritten = True
                finally:
                    self._subscribe_hook()
            except Exception as exc:
                self._diagnostics.record("truncate", exc)
            finally:
                try:
                    self._writer.open()
                except Exception as exc:
                    self._diagnostics.record("open_streams", exc)
            return rewritten

    def _truncation_pass(self) -> None:
        self.truncate()

    # ------------------------------------------------------------------
    # Crash callbacks

    def add_crash_callback(self, callback: CrashCallback) -> None:
        self._crash_hook.add_crash_callback(callback)

    def remove_crash_callback(self, callback: CrashCallback) -> None:
        self._crash_hook.remove_crash_callback(callback)

    def add_crash_data_callback(self, callback: CrashDataCallback) -> None:
        self._crash_hook.add_crash_data_callback(callback)

    def remove_crash_data_callback(self, callback: CrashDataCallback) -> None:
        self._crash_hook.remove_crash_data_callback(callback)

    def notify_unhandled(self, exception: BaseException, is_terminating: bool = False, sender: Any = None) -> None:
        """Feed an unhandled exception from a host-specific hook into the logger."""
        self._crash_hook.handle(exception, is_terminating, sender)

    # ------------------------------------------------------------------
    # Internals

    def _targets(self, log_dir: str, suffix: int) -> list[LogTarget]:
        return [
            resolve_target(log_dir, self._config.message_log_name, LogKind.APPLICATION_MESSAGE, suffix),
            resolve_target(log_dir, self._config.error_log_name, LogKind.APPLICATION_ERROR, suffix),
        ]

    def _subscribe_hook(self) -> None:
        source = self._exception_source
        if source is None or self._hook_subscribed:
            return
        try:
            source.subscribe(self._crash_hook)
            self._hook_subscribed = True
        except Exception as exc:
            self._diagnostics.record("subscribe_hook", exc)

    def _unsubscribe_hook(self) -> None:
        source = self._exception_source
        if source is None or not self._hook_subscribed:
            return
        try:
            source.unsubscribe(self._crash_hook)
        except Exception as exc:
            self._diagnostics.record("subscribe_hook", exc)
        self._hook_subscribed = False


def open_logger(config: Optional[CrashLogConfig] = None, **collaborators: Any) -> ExceptionLogger:
    """Create an ExceptionLogger and bind it. Call unbind() (or use it as a context manager) when done."""
    log = ExceptionLogger(config, **collaborators)
    log.bind()
    return log


def default_log_dir(app_name: str) -> str:
    """Directory an ExceptionLogger for app_name writes to without log_dir set."""
    return AppDataDirectory(app_name).resolve()
