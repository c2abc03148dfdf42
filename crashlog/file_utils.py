"""Line-oriented file helpers shared by the writer and the truncation pass.

Lines are split on "\n" only (a CRLF terminator is accepted too), so form
feeds, Unicode line separators and the like inside a record survive a
rewrite unchanged. Undecodable bytes round-trip via surrogateescape.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, Sequence, Union

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


def read_lines(path: Union[str, Path]) -> List[str]:
    """Read *path* as a list of lines without line terminators.

    Raises ``OSError`` if the file is missing or unreadable.
    """
    with open(path, "r", encoding=_ENCODING, errors=_ERRORS, newline="") as f:
        text = f.read()
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def write_lines(path: Union[str, Path], lines: Sequence[str]) -> None:
    """Atomically replace *path* with *lines*, one terminator after each.

    Writes to a temporary file in the same directory and renames, so
    readers never see a half-written log.
    """
    p = Path(path)
    fd, tmp = tempfile.mkstemp(dir=str(p.parent), prefix=f".{p.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS) as f:
            for line in lines:
                f.write(line)
                f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, str(p))
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def tail_file(path: Union[str, Path], n: int = 20) -> list[str]:
    """Return the last *n* lines from *path*.

    Returns an empty list if the file is missing or unreadable.
    """
    try:
        lines = read_lines(path)
    except OSError:
        return []
    return lines[-n:]
