"""
Frame codec for crash log records.

Each record is a block of text lines:

    MESSAGE BEGIN -------------------------------------------------...
    <header line>
    <one or more body lines>
    MESSAGE END ---------------------------------------------------...
    <blank line>

Header and body text are written verbatim. A line starting with
``MESSAGE BEGIN`` is the only thing the truncation pass looks for, so that
marker must not appear inside record text.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from .interfaces import AppIdentity, LogKind

BEGIN_MARKER = "MESSAGE BEGIN"
END_MARKER = "MESSAGE END"
DELIMITER_WIDTH = 107

BEGIN_LINE = f"{BEGIN_MARKER} ".ljust(DELIMITER_WIDTH, "-")
END_LINE = f"{END_MARKER} ".ljust(DELIMITER_WIDTH, "-")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"


def format_timestamp(when: datetime) -> str:
    """Format as yyyy-MM-dd HH:mm:ss.fff (millisecond precision)."""
    return when.strftime(TIMESTAMP_FORMAT)[:-3]


@dataclass
class LogRecord:
    """One framed entry, built per append call and discarded once written."""
    timestamp: datetime
    kind: LogKind
    header: str
    body: List[str] = field(default_factory=list)

    def lines(self) -> List[str]:
        return [BEGIN_LINE, self.header, *self.body, END_LINE, ""]

    def serialize(self) -> str:
        return "\n".join(self.lines()) + "\n"


@dataclass
class Frame:
    """A record located in an existing log file."""
    header: Optional[str]
    body: List[str]
    complete: bool
    start_line: int


def _header(label: str, when: datetime, identity: AppIdentity) -> str:
    return f"{label} [{format_timestamp(when)}] ({identity.version} / {identity.title})"


def format_message_record(message: str, when: datetime, identity: AppIdentity) -> LogRecord:
    """Build the record for an application message."""
    return LogRecord(
        timestamp=when,
        kind=LogKind.APPLICATION_MESSAGE,
        header=_header("Application Log  ", when, identity),
        body=[f"Message           [{message}]"],
    )


def stack_trace_lines(exception: BaseException) -> List[str]:
    """Traceback lines for exception, without the trailing message line.

    An exception that was never raised has no traceback and yields nothing.
    """
    lines: List[str] = []
    for chunk in traceback.format_tb(exception.__traceback__):
        lines.extend(chunk.rstrip("\n").split("\n"))
    return lines


def format_error_record(
    exception: BaseException,
    when: datetime,
    identity: AppIdentity,
    additional_message: Optional[str] = None,
) -> LogRecord:
    """Build the record for an exception, optionally with extra context."""
    body = [f"Error Message     [{exception}]"]
    if additional_message is not None:
        body.append(f"Additional data   [{additional_message}]")
    body.append("Stack trace:")
    body.extend(stack_trace_lines(exception))
    return LogRecord(
        timestamp=when,
        kind=LogKind.APPLICATION_ERROR,
        header=_header("Application Error", when, identity),
        body=body,
    )


def is_frame_start(line: str) -> bool:
    return line.startswith(BEGIN_MARKER)


def iter_frames(lines: Iterable[str]) -> Iterator[Frame]:
    """Locate records in a sequence of file lines.

    A record starts at a ``MESSAGE BEGIN`` line and runs to the following
    blank line. Frames cut short by another BEGIN line or by the end of the
    input are yielded with ``complete=False``. Lines outside any frame are
    skipped.
    """
    current: Optional[Frame] = None
    seen_end = False

    for index, line in enumerate(lines):
        if is_frame_start(line):
            if current is not None:
                yield current
            current = Frame(header=None, body=[], complete=False, start_line=index)
            seen_end = False
            continue

        if current is None:
            continue

        if seen_end:
            if line == "":
                current.complete = True
                yield current
                current = None
            else:
                yield current
                current = None
            continue

        if line.startswith(END_MARKER):
            seen_end = True
        elif current.header is None:
            current.header = line
        else:
            current.body.append(line)

    if current is not None:
        yield current


def trim_to_frame_boundary(lines: List[str], max_lines: int) -> List[str]:
    """Keep the newest lines of a log so it never starts mid-record.

    Files at or under max_lines are returned unchanged. Otherwise lines are
    dropped from the front until fewer than max_lines remain, then until
    the first remaining line starts a record.
    """
    if len(lines) <= max_lines:
        return lines

    start = len(lines) - max_lines + 1
    while start < len(lines) and not is_frame_start(lines[start]):
        start += 1
    return lines[start:]
