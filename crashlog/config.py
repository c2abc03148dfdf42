"""
Configuration for the crash logger.

Plain dataclasses with defaults that reproduce the library's fixed policy,
plus a YAML loader for hosts that keep settings in a file:

    app_name: my-tool
    log_dir: ~/.my-tool/logs
    instance_suffix: 2
    truncation:
      max_lines: 10000
      poll_interval: 1.0
      truncate_every: 3600
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, Union

import yaml

DEFAULT_MESSAGE_LOG = "app_messages.log"
DEFAULT_ERROR_LOG = "trace_error.log"


class ConfigError(ValueError):
    """Invalid crash logger configuration."""


def _default_app_name() -> str:
    if sys.argv and sys.argv[0]:
        return Path(sys.argv[0]).stem or "python"
    return "python"


@dataclass
class TruncationPolicy:
    """Configuration for the background truncation pass.

    Attributes:
        max_lines: Lines a log may hold before a pass trims it (default: 10000)
        poll_interval: Seconds between wake-ups of the loop (default: 1.0)
        truncate_every: Wake-ups between passes (default: 3600, about hourly)
    """
    max_lines: int = 10000
    poll_interval: float = 1.0
    truncate_every: int = 3600


@dataclass
class CrashLogConfig:
    """Configuration for one ExceptionLogger.

    Attributes:
        app_name: Names the per-user data folder when log_dir is not set
        log_dir: Explicit log directory (overrides the app data folder)
        instance_suffix: Appended to both file names when > 0
        message_log_name: File name of the application message log
        error_log_name: File name of the unhandled-exception log
        install_hooks: Subscribe to the interpreter's exception hooks on bind
        fsync: fsync after every record, not just flush
        truncation: Background truncation policy
    """
    app_name: str = field(default_factory=_default_app_name)
    log_dir: Optional[str] = None
    instance_suffix: int = 0
    message_log_name: str = DEFAULT_MESSAGE_LOG
    error_log_name: str = DEFAULT_ERROR_LOG
    install_hooks: bool = True
    fsync: bool = True
    truncation: TruncationPolicy = field(default_factory=TruncationPolicy)

    def validate(self) -> None:
        """Raise ConfigError if any value is out of range."""
        if not isinstance(self.instance_suffix, int) or self.instance_suffix < 0:
            raise ConfigError(f"instance_suffix must be a non-negative integer, got {self.instance_suffix!r}")
        if not self.message_log_name or not self.error_log_name:
            raise ConfigError("log file names must not be empty")
        if self.message_log_name == self.error_log_name:
            raise ConfigError("message and error logs must use different file names")
        policy = self.truncation
        if policy.max_lines <= 0:
            raise ConfigError(f"truncation.max_lines must be positive, got {policy.max_lines}")
        if policy.poll_interval <= 0:
            raise ConfigError(f"truncation.poll_interval must be positive, got {policy.poll_interval}")
        if policy.truncate_every <= 0:
            raise ConfigError(f"truncation.truncate_every must be positive, got {policy.truncate_every}")


def _check_keys(data: dict, cls: type, where: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown {where} key(s): {', '.join(unknown)}")


def config_from_dict(data: dict[str, Any]) -> CrashLogConfig:
    """Build and validate a CrashLogConfig from a parsed mapping."""
    if not isinstance(data, dict):
        raise ConfigError("Invalid config (expected mapping)")
    _check_keys(data, CrashLogConfig, "config")

    values = dict(data)
    truncation = values.pop("truncation", None) or {}
    if not isinstance(truncation, dict):
        raise ConfigError("Invalid 'truncation' section (expected mapping)")
    _check_keys(truncation, TruncationPolicy, "truncation")

    try:
        config = CrashLogConfig(truncation=TruncationPolicy(**truncation), **values)
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc
    config.validate()
    return config


def load_config(path: Union[str, os.PathLike]) -> CrashLogConfig:
    """Parse a YAML config file into a CrashLogConfig."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid config file (expected mapping): {path}")
    return config_from_dict(data)
