"""
Crash Logger

Appends framed application messages and unhandled exceptions to
append-only log files and keeps them bounded in the background.
"""

from .interfaces import (
    LogKind,
    LogTarget,
    AppIdentity,
    ClockInterface,
    LogDirectoryInterface,
    AppIdentityInterface,
    UnhandledExceptionSource,
)

from .config import CrashLogConfig, TruncationPolicy, ConfigError, load_config
from .crash_hook import ApplicationCrashEventArgs, CrashHookAdapter
from .diagnostics import ErrorDiagnostics
from .exception_logger import ExceptionLogger, open_logger, default_log_dir
from .frame_codec import LogRecord, iter_frames
from .implementations import (
    AppDataDirectory,
    EntryPointIdentity,
    FixedDirectory,
    RealClock,
    StaticIdentity,
    SysExceptHookSource,
)
from .truncation import truncate_file

__all__ = [
    "LogKind",
    "LogTarget",
    "AppIdentity",
    "ClockInterface",
    "LogDirectoryInterface",
    "AppIdentityInterface",
    "UnhandledExceptionSource",
    "CrashLogConfig",
    "TruncationPolicy",
    "ConfigError",
    "load_config",
    "ApplicationCrashEventArgs",
    "CrashHookAdapter",
    "ErrorDiagnostics",
    "ExceptionLogger",
    "open_logger",
    "default_log_dir",
    "LogRecord",
    "iter_frames",
    "AppDataDirectory",
    "EntryPointIdentity",
    "FixedDirectory",
    "RealClock",
    "StaticIdentity",
    "SysExceptHookSource",
    "truncate_file",
]
