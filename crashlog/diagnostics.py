"""
Diagnostics for failures the logger deliberately suppresses.

The logger never raises into the host application. Instead every swallowed
exception is counted here per operation, kept as ``last_error`` and passed
to an optional ``on_error`` callback, so tests and hosts can still observe
what went wrong. The callback may run while the logger holds its lock, so
it must not call back into the logger.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]


class ErrorDiagnostics:
    """Thread-safe counters for suppressed errors."""

    def __init__(self, on_error: Optional[ErrorCallback] = None) -> None:
        self._on_error = on_error
        self._lock = threading.Lock()
        self._counts: Dict[str, int] = {}
        self._last_error: Optional[BaseException] = None
        self._last_operation: Optional[str] = None

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def last_operation(self) -> Optional[str]:
        return self._last_operation

    @property
    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())

    def count(self, operation: str) -> int:
        with self._lock:
            return self._counts.get(operation, 0)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def set_callback(self, on_error: Optional[ErrorCallback]) -> None:
        self._on_error = on_error

    def record(self, operation: str, exc: BaseException) -> None:
        """Record a suppressed failure. Never raises."""
        with self._lock:
            self._counts[operation] = self._counts.get(operation, 0) + 1
            self._last_error = exc
            self._last_operation = operation

        logger.warning("crashlog: %s failed: %s", operation, exc)
        logger.debug("crashlog: %s failure detail", operation, exc_info=exc)

        callback = self._on_error
        if callback is None:
            return
        try:
            callback(operation, exc)
        except Exception:
            logger.debug("crashlog: diagnostics callback raised", exc_info=True)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._last_error = None
            self._last_operation = None
