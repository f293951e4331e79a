"""Prompt detection over a growing output buffer.

Shells rarely end a prompt with a newline, so the scanner cannot wait for
whole lines.  Instead it cuts the stream at every delimiter byte (a space by
default) and hands the predicate only the part of the buffer that belongs to
the line being assembled: everything after the newest CR LF up to and
including the delimiter just received.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = ["LINE_BREAK", "LineScanner", "find_line_start", "scan_until"]

#: Line framing emitted by the remote systems.  Scanning backward from the end
#: of the buffer meets the LF first and the CR right after it.
LINE_BREAK = b"\r\n"

DEFAULT_DELIMITER = b" "


def find_line_start(buffer: bytes | bytearray, start: int = 0) -> int:
    """Return the offset just past the newest line break, or -1 if there is none.

    Only line breaks beginning at or after ``start`` are considered.
    """
    pos = buffer.rfind(LINE_BREAK, start)
    if pos == -1:
        return -1
    return pos + len(LINE_BREAK)


class LineScanner:
    """
    Accumulates application bytes and tracks where the current line starts.
    """

    def __init__(self, delimiter: bytes = DEFAULT_DELIMITER) -> None:
        if len(delimiter) != 1:
            raise ValueError(f"delimiter must be a single byte, got {delimiter!r}")

        self._delimiter = delimiter[0]
        self._output = bytearray()
        self._line_start = 0
        # everything before this offset has already been searched for line breaks
        self._searched = 0

    @property
    def output(self) -> bytes:
        return bytes(self._output)

    @property
    def line_start(self) -> int:
        return self._line_start

    def feed(self, char: int) -> bytes | None:
        """Append one byte.

        Returns the current line fragment when ``char`` is the delimiter,
        otherwise ``None``.
        """
        self._output.append(char)
        if char != self._delimiter:
            return None

        # a line break may straddle the previous search boundary
        pos = find_line_start(self._output, max(0, self._searched - 1))
        self._searched = len(self._output)
        if pos != -1:
            self._line_start = max(self._line_start, pos)

        return bytes(self._output[self._line_start :])

    def skip_line(self) -> None:
        """Start the current line at the end of the output.

        Used after a prompt has been answered so that later fragments of the
        same line no longer contain it.
        """
        self._line_start = len(self._output)


def scan_until(
    read_byte: Callable[[], int],
    predicate: Callable[[bytes], bool],
    delimiter: bytes = DEFAULT_DELIMITER,
) -> bytes:
    """Pull bytes from ``read_byte`` until ``predicate`` accepts a line fragment.

    Returns everything read, including the fragment that matched.  Exceptions
    raised by ``read_byte`` or ``predicate`` propagate and the partial output is
    dropped.  May block forever if the peer never produces a matching fragment;
    the transport timeout is what bounds the wait.
    """
    scanner = LineScanner(delimiter)
    while True:
        fragment = scanner.feed(read_byte())
        if fragment is not None and predicate(fragment):
            return scanner.output
