"""Bencode scanning for .torrent metadata.

Extracts the name, total size and file count from the ``info`` dictionary of a
torrent without building the decoded document. The scanner works on a
``memoryview`` of the caller's buffer; every length-prefixed read is checked
against the end of the current span before it is sliced, declared string
lengths are capped, and integers are limited to the signed 64-bit range.

Two operations share one grammar: typed reads (``read_int``, ``read_bytes``)
for values we want, and ``skip_value`` for everything else. Skipping is
iterative, so deeply nested input cannot exhaust the interpreter stack.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from transrpc.utils.exceptions import ParseError

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]

MAX_STRING_LENGTH = 100_000_000
INT64_MAX = (1 << 63) - 1
INT64_MIN = -(1 << 63)

_INT = ord("i")
_LIST = ord("l")
_DICT = ord("d")
_END = ord("e")
_COLON = ord(":")
_MINUS = ord("-")
_ZERO = ord("0")
_NINE = ord("9")


def _is_digit(byte: int) -> bool:
    return _ZERO <= byte <= _NINE


@dataclass(frozen=True)
class TorrentSummary:
    """Lightweight description of a torrent's content."""

    name: str
    total_size_bytes: int
    file_count: int


class BencodeScanner:
    """Bounds-checked cursor over a span of bencoded bytes."""

    def __init__(self, data: BytesLike, start: int = 0, end: int | None = None):
        """Initialize scanner.

        Args:
            data: Buffer to scan. It is wrapped, never copied.
            start: Offset of the first byte of the span.
            end: Offset one past the last byte of the span (defaults to buffer end).

        """
        self._view = memoryview(data).cast("B")
        self._end = len(self._view) if end is None else min(end, len(self._view))
        self._pos = start

    @property
    def position(self) -> int:
        """Current offset into the underlying buffer."""
        return self._pos

    def at_end(self) -> bool:
        """Return True when the span is exhausted."""
        return self._pos >= self._end

    def peek(self) -> int:
        """Return the next byte without consuming it."""
        if self._pos >= self._end:
            raise ParseError("Unexpected end of data", self._pos)
        return self._view[self._pos]

    def expect(self, byte: int) -> None:
        """Consume ``byte`` or fail."""
        if self.peek() != byte:
            raise ParseError(
                f"Expected {chr(byte)!r}, found {chr(self._view[self._pos])!r}",
                self._pos,
            )
        self._pos += 1

    def at_container_end(self) -> bool:
        """Return True if the next byte closes the current list or dict."""
        return self.peek() == _END

    def peek_is_string(self) -> bool:
        """Return True if the next value is a byte string."""
        return _is_digit(self.peek())

    def sub_scanner(self, start: int, end: int) -> BencodeScanner:
        """Return a scanner restricted to ``[start, end)`` of the same buffer."""
        if start < 0 or end > self._end or start > end:
            raise ParseError("Span outside of data", start)
        return BencodeScanner(self._view, start, end)

    def read_int(self) -> int:
        """Read ``i<digits>e`` with overflow-checked accumulation."""
        start = self._pos
        self.expect(_INT)
        negative = False
        if self.peek() == _MINUS:
            negative = True
            self._pos += 1
        limit = -INT64_MIN if negative else INT64_MAX
        value = 0
        digits = 0
        while True:
            byte = self.peek()
            if byte == _END:
                break
            if not _is_digit(byte):
                raise ParseError("Invalid digit in integer", self._pos)
            value = value * 10 + (byte - _ZERO)
            if value > limit:
                raise ParseError("Integer overflows 64 bits", start)
            digits += 1
            self._pos += 1
        if digits == 0:
            raise ParseError("Integer has no digits", start)
        self._pos += 1
        return -value if negative else value

    def _read_length(self) -> int:
        start = self._pos
        value = 0
        digits = 0
        while True:
            byte = self.peek()
            if byte == _COLON:
                break
            if not _is_digit(byte):
                raise ParseError("Invalid string length", self._pos)
            value = value * 10 + (byte - _ZERO)
            if value > MAX_STRING_LENGTH:
                raise ParseError("Declared string length exceeds limit", start)
            digits += 1
            self._pos += 1
        if digits == 0:
            raise ParseError("String length has no digits", start)
        self._pos += 1
        return value

    def read_bytes(self) -> memoryview:
        """Read ``<len>:<bytes>`` and return a view of the payload."""
        length = self._read_length()
        start = self._pos
        if length > self._end - start:
            raise ParseError("String runs past end of data", start)
        self._pos = start + length
        return self._view[start : self._pos]

    def enter_list(self) -> None:
        """Consume the opening ``l`` of a list."""
        self.expect(_LIST)

    def enter_dict(self) -> None:
        """Consume the opening ``d`` of a dictionary."""
        self.expect(_DICT)

    def leave_container(self) -> None:
        """Consume the closing ``e`` of a list or dictionary."""
        self.expect(_END)

    def skip_value(self) -> tuple[int, int]:
        """Step over one complete value without interpreting it.

        Returns:
            The ``(start, end)`` span of the skipped value.

        """
        start = self._pos
        # One frame per open container: [is_dict, expecting_key]
        frames: list[list[bool]] = []
        while True:
            byte = self.peek()
            if frames and byte == _END:
                frame = frames.pop()
                if frame[0] and not frame[1]:
                    raise ParseError("Dictionary key without value", self._pos)
                self._pos += 1
            else:
                if frames and frames[-1][0]:
                    frame = frames[-1]
                    if frame[1] and not _is_digit(byte):
                        raise ParseError("Dictionary key must be a string", self._pos)
                    frame[1] = not frame[1]
                if byte == _INT:
                    self.read_int()
                elif byte == _LIST:
                    self._pos += 1
                    frames.append([False, False])
                elif byte == _DICT:
                    self._pos += 1
                    frames.append([True, True])
                elif _is_digit(byte):
                    self.read_bytes()
                else:
                    raise ParseError(f"Unexpected byte {byte:#04x}", self._pos)
            if not frames:
                return start, self._pos


def _decode_name(raw: memoryview) -> str:
    data = raw.tobytes()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


class _SummaryExtractor:
    """Recursive-descent walk over the few keys a summary needs."""

    def __init__(self, data: BytesLike):
        self._scanner = BencodeScanner(data)

    def extract(self) -> TorrentSummary | None:
        info = self._locate_info(self._scanner)
        if info is None:
            return None
        return self._read_info(info)

    def _locate_info(self, scanner: BencodeScanner) -> BencodeScanner | None:
        if scanner.at_end() or scanner.peek() != _DICT:
            return None
        scanner.enter_dict()
        while not scanner.at_container_end():
            key = scanner.read_bytes()
            if key == b"info":
                start, end = scanner.skip_value()
                return scanner.sub_scanner(start, end)
            scanner.skip_value()
        return None

    def _read_info(self, scanner: BencodeScanner) -> TorrentSummary | None:
        if scanner.peek() != _DICT:
            return None
        scanner.enter_dict()

        name: str | None = None
        total: int | None = None
        count: int | None = None
        while not scanner.at_container_end():
            key = scanner.read_bytes()
            if key == b"name" and name is None and scanner.peek_is_string():
                name = _decode_name(scanner.read_bytes())
            elif key == b"length" and count is None and scanner.peek() == _INT:
                total = scanner.read_int()
                count = 1
            elif key == b"files" and count is None and scanner.peek() == _LIST:
                files_total, files_count = self._read_files(scanner)
                if files_count:
                    total, count = files_total, files_count
            else:
                scanner.skip_value()

            if name is not None and count is not None:
                break

        if name is None or total is None or count is None:
            return None
        return TorrentSummary(name=name, total_size_bytes=total, file_count=count)

    def _read_files(self, scanner: BencodeScanner) -> tuple[int, int]:
        scanner.enter_list()
        total = 0
        count = 0
        while not scanner.at_container_end():
            if scanner.peek() != _DICT:
                scanner.skip_value()
                continue
            scanner.enter_dict()
            while not scanner.at_container_end():
                key = scanner.read_bytes()
                if key == b"length" and scanner.peek() == _INT:
                    position = scanner.position
                    total += scanner.read_int()
                    if total > INT64_MAX or total < INT64_MIN:
                        raise ParseError("Total size overflows 64 bits", position)
                else:
                    scanner.skip_value()
            scanner.leave_container()
            count += 1
        scanner.leave_container()
        return total, count


def parse_torrent_summary(data: BytesLike) -> TorrentSummary | None:
    """Extract a summary from raw .torrent bytes.

    Returns None when the document has no top-level dictionary, no ``info``
    dictionary, no ``name``, or no resolvable size.

    Raises:
        ParseError: If the bytes are structurally invalid, truncated, declare
            an out-of-bounds length, or contain an overflowing integer.

    """
    return _SummaryExtractor(data).extract()


def summarize_torrent(data: BytesLike) -> TorrentSummary | None:
    """Extract a summary, returning None for malformed input instead of raising."""
    try:
        return parse_torrent_summary(data)
    except ParseError as e:
        logger.debug("Could not parse torrent metadata: %s", e)
        return None


def summarize_torrent_file(path: str | Path) -> TorrentSummary | None:
    """Read a .torrent file from disk and summarize it."""
    return summarize_torrent(Path(path).read_bytes())
