"""
Truncation Engine for the crash logger.

Keeps each log file bounded to its newest whole records. The rewrite itself
is a plain function; TruncationLoop is the background thread that calls
back into the logger once per long interval.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from .file_utils import read_lines, write_lines
from .frame_codec import trim_to_frame_boundary

logger = logging.getLogger(__name__)


def truncate_file(path: str, max_lines: int) -> bool:
    """
    Rewrite path to keep at most max_lines lines, starting at a record.

    Files at or under the limit are left untouched. Returns True if the
    file was rewritten. Raises OSError if the file cannot be read or
    replaced; the caller decides what to do with that.
    """
    lines = read_lines(path)
    if len(lines) <= max_lines:
        return False

    kept = trim_to_frame_boundary(lines, max_lines)
    write_lines(path, kept)
    logger.info("Truncated %s from %d to %d lines", path, len(lines), len(kept))
    return True


class TruncationLoop:
    """
    Background thread that periodically triggers a truncation pass.

    Wakes every poll_interval seconds and calls on_truncate once every
    truncate_every wake-ups. stop() signals the thread and joins it; the
    wait is interrupted immediately rather than sleeping out the interval.

    Usage:
        loop = TruncationLoop(lambda: log.truncate(), poll_interval=1.0)
        loop.start()
        ...
        loop.stop()
    """

    def __init__(
        self,
        on_truncate: Callable[[], None],
        poll_interval: float = 1.0,
        truncate_every: int = 3600,
        name: str = "crashlog-truncation",
    ):
        self._on_truncate = on_truncate
        self._poll_interval = poll_interval
        self._truncate_every = truncate_every
        self._name = name
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._passes = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def passes(self) -> int:
        """Number of truncation passes triggered so far."""
        return self._passes

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop and wait for the thread to exit."""
        self._stop_event.set()
        thread = self._thread
        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        ticks = 0
        while not self._stop_event.wait(self._poll_interval):
            ticks += 1
            if ticks < self._truncate_every:
                continue
            ticks = 0
            self._passes += 1
            try:
                self._on_truncate()
            except Exception:
                # on_truncate is expected to swallow its own errors
                logger.exception("Truncation pass raised")
