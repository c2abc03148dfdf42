"""
Real implementations of interfaces for production use.

These classes wrap actual system resources (clock, per-user data folder,
installed package metadata, interpreter exception hooks) and implement the
abstract interfaces.
"""

from typing import Optional, List
from datetime import datetime
from pathlib import Path
import logging
import os
import sys
import threading

from .interfaces import (
    ClockInterface, LogDirectoryInterface, AppIdentityInterface,
    UnhandledExceptionSource, UnhandledExceptionHandler, AppIdentity
)

logger = logging.getLogger(__name__)

# Characters Windows refuses in file names; applied everywhere so a log
# directory name is portable.
_INVALID_FILENAME_CHARS = set('<>:"/\\|?*') | {chr(c) for c in range(32)}


def sanitize_app_name(name: str) -> str:
    """Replace characters that are not valid in a file name with '_'."""
    return "".join("_" if ch in _INVALID_FILENAME_CHARS else ch for ch in name)


def local_app_data_dir() -> str:
    """Per-user, non-roaming application data directory for this platform."""
    home = os.path.expanduser("~")
    if sys.platform.startswith("win"):
        return os.environ.get("LOCALAPPDATA") or os.path.join(home, "AppData", "Local")
    if sys.platform == "darwin":
        return os.path.join(home, "Library", "Application Support")
    return os.environ.get("XDG_DATA_HOME") or os.path.join(home, ".local", "share")


class RealClock(ClockInterface):
    """
    Real clock implementation using local system time.
    """

    def now(self) -> datetime:
        return datetime.now()


class FixedDirectory(LogDirectoryInterface):
    """
    Log directory given explicitly by the host or configuration.
    """

    def __init__(self, path: str):
        self._path = path

    def resolve(self) -> str:
        return os.path.abspath(os.path.expanduser(self._path))


class AppDataDirectory(LogDirectoryInterface):
    """
    <local app data>/<sanitized application name>
    """

    def __init__(self, app_name: str):
        self._app_name = app_name

    def resolve(self) -> str:
        return os.path.join(local_app_data_dir(), sanitize_app_name(self._app_name))


class StaticIdentity(AppIdentityInterface):
    """
    Identity supplied directly by the host.
    """

    def __init__(self, version: str, title: str, **extra: str):
        self._identity = AppIdentity(version=version, title=title, **extra)

    def get_identity(self) -> AppIdentity:
        return self._identity


class EntryPointIdentity(AppIdentityInterface):
    """
    Identity read from the installed distribution's metadata.

    The title falls back to the running script's name when not given;
    the version falls back to "0.0.0" when the distribution is unknown.
    """

    DEFAULT_VERSION = "0.0.0"

    def __init__(self, distribution: Optional[str] = None, title: Optional[str] = None):
        self._distribution = distribution
        self._title = title
        self._cached: Optional[AppIdentity] = None

    def get_identity(self) -> AppIdentity:
        if self._cached is None:
            self._cached = self._load()
        return self._cached

    def _load(self) -> AppIdentity:
        from importlib import metadata

        script = Path(sys.argv[0]).stem if sys.argv and sys.argv[0] else ""
        title = self._title or script or "python"

        if not self._distribution:
            return AppIdentity(version=self.DEFAULT_VERSION, title=title, name=script)

        try:
            meta = metadata.metadata(self._distribution)
        except metadata.PackageNotFoundError:
            logger.debug("Distribution %s not installed", self._distribution)
            return AppIdentity(version=self.DEFAULT_VERSION, title=title, name=self._distribution)

        return AppIdentity(
            version=meta.get("Version") or self.DEFAULT_VERSION,
            title=self._title or meta.get("Name") or title,
            name=meta.get("Name") or self._distribution,
            product=meta.get("Name") or "",
            company=meta.get("Author") or "",
            description=meta.get("Summary") or "",
        )


class SysExceptHookSource(UnhandledExceptionSource):
    """
    Unhandled-exception source backed by the interpreter's hooks.

    Installs wrappers on sys.excepthook (main thread, terminating) and
    threading.excepthook (worker threads, not terminating) when the first
    handler subscribes, and restores the previous hooks when the last one
    unsubscribes. Previous hooks are always chained after the handlers run.
    KeyboardInterrupt and SystemExit are passed through without notifying.

    A wrapper that someone else has since chained on top of cannot be taken
    out of their chain. It stays installed as a pass-through and is reused
    by the next subscribe instead of being installed a second time.
    """

    def __init__(self):
        self._handlers: List[UnhandledExceptionHandler] = []
        self._lock = threading.Lock()
        self._prev_sys_hook = None
        self._prev_thread_hook = None
        self._sys_installed = False
        self._thread_installed = False
        self._sys_hook = self._on_sys_exception
        self._thread_hook = self._on_thread_exception

    @property
    def installed(self) -> bool:
        return self._sys_installed or self._thread_installed

    def subscribe(self, handler: UnhandledExceptionHandler) -> None:
        with self._lock:
            if any(h is handler for h in self._handlers):
                return
            self._handlers.append(handler)
            self._install()

    def unsubscribe(self, handler: UnhandledExceptionHandler) -> None:
        with self._lock:
            self._handlers = [h for h in self._handlers if h is not handler]
            if not self._handlers:
                self._uninstall()

    def is_subscribed(self, handler: UnhandledExceptionHandler) -> bool:
        with self._lock:
            return any(h is handler for h in self._handlers)

    def _install(self) -> None:
        if not self._sys_installed:
            self._prev_sys_hook = sys.excepthook
            sys.excepthook = self._sys_hook
            self._sys_installed = True
            logger.debug("Installed sys.excepthook wrapper")
        if not self._thread_installed:
            self._prev_thread_hook = threading.excepthook
            threading.excepthook = self._thread_hook
            self._thread_installed = True
            logger.debug("Installed threading.excepthook wrapper")

    def _uninstall(self) -> None:
        # Only restore hooks nobody replaced after us.
        if self._sys_installed and sys.excepthook is self._sys_hook:
            sys.excepthook = self._prev_sys_hook
            self._prev_sys_hook = None
            self._sys_installed = False
            logger.debug("Removed sys.excepthook wrapper")
        if self._thread_installed and threading.excepthook is self._thread_hook:
            threading.excepthook = self._prev_thread_hook
            self._prev_thread_hook = None
            self._thread_installed = False
            logger.debug("Removed threading.excepthook wrapper")

    def _notify(self, exception: BaseException, is_terminating: bool, sender, args) -> None:
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(exception, is_terminating, sender, args=args)
            except Exception:
                logger.error("Unhandled-exception handler raised", exc_info=True)

    def _on_sys_exception(self, exc_type, exc_value, exc_tb) -> None:
        prev = self._prev_sys_hook or sys.__excepthook__
        if exc_value is not None and not issubclass(exc_type, (KeyboardInterrupt, SystemExit)):
            if exc_value.__traceback__ is None and exc_tb is not None:
                exc_value = exc_value.with_traceback(exc_tb)
            self._notify(exc_value, True, None, (exc_type, exc_value, exc_tb))
        prev(exc_type, exc_value, exc_tb)

    def _on_thread_exception(self, hook_args) -> None:
        prev = self._prev_thread_hook or threading.__excepthook__
        exc_value = hook_args.exc_value
        if exc_value is not None and not issubclass(hook_args.exc_type, (KeyboardInterrupt, SystemExit)):
            self._notify(exc_value, False, hook_args.thread, hook_args)
        prev(hook_args)
