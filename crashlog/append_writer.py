"""
Append Writer for the crash logger.

Owns the open file handles for the message log and the error log of one
logger instance. All methods expect the caller to hold the logger's
process lock; the writer itself never takes it.
"""

from __future__ import annotations

import logging
import os
from typing import IO, Dict, Iterable, Optional

import portalocker

from .diagnostics import ErrorDiagnostics
from .frame_codec import LogRecord
from .interfaces import LogKind, LogTarget

logger = logging.getLogger(__name__)

_OPERATION_BY_KIND = {
    LogKind.APPLICATION_MESSAGE: "append_message",
    LogKind.APPLICATION_ERROR: "append_error",
}


class AppendWriter:
    """
    Appends framed records to per-kind log files.

    Features:
    - One append-mode handle per LogTarget, opened lazily by open()
    - Flush (and fsync) after every record so data survives a crash
    - Advisory portalocker lock around each write for cooperating tailers
    - Write failures are recorded in diagnostics, never raised
    """

    def __init__(
        self,
        targets: Iterable[LogTarget],
        diagnostics: Optional[ErrorDiagnostics] = None,
        fsync: bool = True,
    ):
        self._targets: Dict[LogKind, LogTarget] = {t.kind: t for t in targets}
        self._handles: Dict[LogKind, IO[str]] = {}
        self._diagnostics = diagnostics or ErrorDiagnostics()
        self._fsync = fsync

    @property
    def targets(self) -> Dict[LogKind, LogTarget]:
        return dict(self._targets)

    def target(self, kind: LogKind) -> LogTarget:
        return self._targets[kind]

    def is_open(self, kind: Optional[LogKind] = None) -> bool:
        """True if the handle for kind (or every handle) is open."""
        if kind is not None:
            return kind in self._handles
        return bool(self._targets) and all(k in self._handles for k in self._targets)

    def open(self, kinds: Optional[Iterable[LogKind]] = None) -> None:
        """
        Open append handles that are not open yet.

        Creates the log directory if absent. Raises OSError on failure;
        handles opened before the failure stay open.
        """
        for kind in kinds if kinds is not None else list(self._targets):
            if kind in self._handles:
                continue
            path = self._targets[kind].path
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._handles[kind] = open(path, "a", encoding="utf-8")
            logger.debug("Opened %s log at %s", kind.value, path)

    def close(self, kinds: Optional[Iterable[LogKind]] = None) -> None:
        """Close handles. Close errors are recorded and the handle dropped."""
        for kind in kinds if kinds is not None else list(self._handles):
            handle = self._handles.pop(kind, None)
            if handle is None:
                continue
            try:
                handle.close()
            except Exception as exc:
                self._diagnostics.record("close_streams", exc)

    def append(self, record: LogRecord) -> bool:
        """
        Write record to its log and flush.

        Returns True if the record reached the file. A missing handle or an
        I/O error returns False after recording the failure.
        """
        operation = _OPERATION_BY_KIND[record.kind]
        handle = self._handles.get(record.kind)
        if handle is None:
            logger.debug("No open %s handle, dropping record", record.kind.value)
            return False

        try:
            self._write_locked(handle, record.serialize())
            return True
        except Exception as exc:
            self._diagnostics.record(operation, exc)
            return False

    def _write_locked(self, handle: IO[str], data: str) -> None:
        locked = False
        try:
            portalocker.lock(handle, portalocker.LOCK_EX | portalocker.LOCK_NB)
            locked = True
        except portalocker.exceptions.LockException:
            # Advisory only; another process holding it must not stall us.
            logger.debug("Log file busy in another process, writing unlocked")

        try:
            handle.write(data)
            handle.flush()
            if self._fsync:
                os.fsync(handle.fileno())
        finally:
            if locked:
                portalocker.unlock(handle)
