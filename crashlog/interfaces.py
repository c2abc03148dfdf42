"""
Interfaces for the Crash Logger

Abstract base classes for everything the logger needs from its host:
the clock, the writable log directory, the application identity and the
runtime's unhandled-exception hook. Implementations are injected into
ExceptionLogger so tests can run without touching global interpreter state.
"""

from abc import ABC, abstractmethod
import os
from typing import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LogKind(Enum):
    """Which of the two log streams a record belongs to."""
    APPLICATION_MESSAGE = "app_messages"
    APPLICATION_ERROR = "trace_error"


@dataclass(frozen=True)
class LogTarget:
    """One logical log stream, resolved once at bind time."""
    kind: LogKind
    instance_suffix: int
    path: str


@dataclass(frozen=True)
class AppIdentity:
    """Application identity written into each record header."""
    version: str
    title: str
    name: str = ""
    product: str = ""
    company: str = ""
    description: str = ""


# handler(exception, is_terminating, sender, args=None)
UnhandledExceptionHandler = Callable[..., None]


class ClockInterface(ABC):
    """
    Abstract interface for time operations.

    Enables deterministic record timestamps in tests.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get current local datetime."""
        pass


class LogDirectoryInterface(ABC):
    """
    Abstract interface for resolving the writable log directory.

    Implementations:
    - AppDataDirectory: per-user local application data folder
    - FixedDirectory: an explicit path from configuration
    """

    @abstractmethod
    def resolve(self) -> str:
        """Return the absolute directory the log files live in."""
        pass


class AppIdentityInterface(ABC):
    """Abstract interface for the application's version and title."""

    @abstractmethod
    def get_identity(self) -> AppIdentity:
        """Return the identity used in record headers."""
        pass


class UnhandledExceptionSource(ABC):
    """
    Abstract interface for the host runtime's unhandled-exception hook.

    Implementations:
    - SysExceptHookSource: sys.excepthook / threading.excepthook
    - MockExceptionSource: fired manually from tests
    """

    @abstractmethod
    def subscribe(self, handler: UnhandledExceptionHandler) -> None:
        """Register handler. Subscribing the same handler twice is a no-op."""
        pass

    @abstractmethod
    def unsubscribe(self, handler: UnhandledExceptionHandler) -> None:
        """Remove handler. Unknown handlers are ignored."""
        pass

    @abstractmethod
    def is_subscribed(self, handler: UnhandledExceptionHandler) -> bool:
        """Check whether handler is currently registered."""
        pass


def format_suffix(instance_suffix: int) -> str:
    """Render the instance suffix appended to log file names (0 means none)."""
    return str(instance_suffix) if instance_suffix > 0 else ""


def resolve_target(directory: str, filename: str, kind: LogKind, instance_suffix: int) -> LogTarget:
    """Build the LogTarget for filename under directory."""
    path = os.path.join(os.path.abspath(directory), filename + format_suffix(instance_suffix))
    return LogTarget(kind=kind, instance_suffix=instance_suffix, path=path)


__all__ = [
    "LogKind",
    "LogTarget",
    "AppIdentity",
    "UnhandledExceptionHandler",
    "ClockInterface",
    "LogDirectoryInterface",
    "AppIdentityInterface",
    "UnhandledExceptionSource",
    "format_suffix",
    "resolve_target",
]
