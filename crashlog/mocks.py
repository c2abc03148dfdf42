"""
Mock implementations for testing.

These classes implement the abstract interfaces with in-memory behavior
suitable for unit testing without touching interpreter-wide hooks.
"""

from typing import Any, Optional, List
from datetime import datetime, timedelta

from .interfaces import (
    ClockInterface, LogDirectoryInterface, UnhandledExceptionSource,
    UnhandledExceptionHandler
)


class MockClock(ClockInterface):
    """
    Controllable clock for testing.

    Time can be advanced manually for deterministic record timestamps.
    """

    def __init__(self, start_time: Optional[datetime] = None):
        self._current_time = start_time or datetime(2025, 1, 1, 0, 0, 0)

    def now(self) -> datetime:
        return self._current_time

    # Test helper methods

    def advance(self, seconds: float) -> None:
        """Advance time by specified seconds."""
        self._current_time += timedelta(seconds=seconds)

    def set_time(self, dt: datetime) -> None:
        """Set current time to specific datetime."""
        self._current_time = dt


class FailingDirectory(LogDirectoryInterface):
    """
    Directory resolver that always fails (for testing bind error handling).
    """

    def __init__(self, error: Optional[Exception] = None):
        self._error = error or PermissionError("log directory not writable")

    def resolve(self) -> str:
        raise self._error


class MockExceptionSource(UnhandledExceptionSource):
    """
    Exception source fired manually by tests.

    Records every subscribe/unsubscribe so tests can check the hook is
    released around truncation and on unbind.
    """

    def __init__(self):
        self._handlers: List[UnhandledExceptionHandler] = []
        self._history: List[tuple] = []

    def subscribe(self, handler: UnhandledExceptionHandler) -> None:
        self._history.append(("subscribe", handler))
        if not self.is_subscribed(handler):
            self._handlers.append(handler)

    def unsubscribe(self, handler: UnhandledExceptionHandler) -> None:
        self._history.append(("unsubscribe", handler))
        self._handlers = [h for h in self._handlers if h is not handler]

    def is_subscribed(self, handler: UnhandledExceptionHandler) -> bool:
        return any(h is handler for h in self._handlers)

    # Test helper methods

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def raise_unhandled(
        self,
        exception: BaseException,
        is_terminating: bool = True,
        sender: Any = None,
        args: Any = None,
    ) -> int:
        """Deliver exception to every subscriber. Returns how many were called."""
        handlers = list(self._handlers)
        for handler in handlers:
            handler(exception, is_terminating, sender, args=args)
        return len(handlers)

    def get_history(self) -> List[str]:
        """Get the sequence of 'subscribe'/'unsubscribe' calls."""
        return [action for action, _ in self._history]

    def clear_history(self) -> None:
        self._history.clear()
