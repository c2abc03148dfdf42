"""Crash Hook Adapter: turns unhandled-exception notifications into log records and callbacks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .diagnostics import ErrorDiagnostics

logger = logging.getLogger(__name__)

CrashCallback = Callable[[], None]


@dataclass
class ApplicationCrashEventArgs:
    """Payload for crash-data subscribers.

    Attributes:
        exception: The exception that went unhandled
        is_terminating: Whether the runtime is going down because of it
        sender: The source of the notification (e.g. the failing thread)
        args: Raw arguments the runtime hook delivered, if any
        additional_data: Free-form list the host may fill before delivery
    """
    exception: BaseException
    is_terminating: bool
    sender: Any = None
    args: Any = None
    additional_data: List[Any] = field(default_factory=list)


CrashDataCallback = Callable[[ApplicationCrashEventArgs], None]


class CrashHookAdapter:
    """
    Receives unhandled exceptions from the host runtime.

    On each notification the exception is written to the error log first,
    then the no-argument crash callback runs, then the data-carrying one.
    Either callback may be absent. A failing callback is recorded in
    diagnostics and does not stop the other one.
    """

    def __init__(
        self,
        append_error: Callable[[BaseException], None],
        diagnostics: Optional[ErrorDiagnostics] = None,
    ):
        self._append_error = append_error
        self._diagnostics = diagnostics or ErrorDiagnostics()
        self._on_crash: Optional[CrashCallback] = None
        self._on_crash_data: Optional[CrashDataCallback] = None
        self._prepare_payload: Optional[Callable[[ApplicationCrashEventArgs], None]] = None

    @property
    def crash_callback(self) -> Optional[CrashCallback]:
        return self._on_crash

    @property
    def crash_data_callback(self) -> Optional[CrashDataCallback]:
        return self._on_crash_data

    def add_crash_callback(self, callback: CrashCallback) -> None:
        self._on_crash = callback

    def remove_crash_callback(self, callback: CrashCallback) -> None:
        if self._on_crash is callback:
            self._on_crash = None

    def add_crash_data_callback(self, callback: CrashDataCallback) -> None:
        self._on_crash_data = callback

    def remove_crash_data_callback(self, callback: CrashDataCallback) -> None:
        if self._on_crash_data is callback:
            self._on_crash_data = None

    def set_payload_builder(self, builder: Optional[Callable[[ApplicationCrashEventArgs], None]]) -> None:
        """Hook for the host to populate additional_data before delivery."""
        self._prepare_payload = builder

    def __call__(
        self,
        exception: BaseException,
        is_terminating: bool = False,
        sender: Any = None,
        args: Any = None,
    ) -> None:
        self.handle(exception, is_terminating, sender, args)

    def handle(
        self,
        exception: BaseException,
        is_terminating: bool = False,
        sender: Any = None,
        args: Any = None,
    ) -> None:
        logger.debug("Unhandled %s (terminating=%s)", type(exception).__name__, is_terminating)
        self._append_error(exception)

        on_crash = self._on_crash
        if on_crash is not None:
            try:
                on_crash()
            except Exception as exc:
                self._diagnostics.record("crash_callback", exc)

        on_crash_data = self._on_crash_data
        if on_crash_data is None:
            return

        payload = ApplicationCrashEventArgs(
            exception=exception,
            is_terminating=is_terminating,
            sender=sender,
            args=args,
        )
        try:
            if self._prepare_payload is not None:
                self._prepare_payload(payload)
            on_crash_data(payload)
        except Exception as exc:
            self._diagnostics.record("crash_callback", exc)
