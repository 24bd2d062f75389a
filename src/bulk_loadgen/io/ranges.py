# bulk_loadgen/io/ranges.py
"""Positioned readers that yield the documents inside one worker's range."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

from bulk_loadgen.config import InputMode
from bulk_loadgen.io.framing import RecordFormatError, read_record
from bulk_loadgen.io.partition import BUFFER_SIZE, Range

logger = logging.getLogger(__name__)

__all__ = [
    "PrematureEndOfInput",
    "RangeReader",
    "LineRangeReader",
    "ByteRangeReader",
    "RecordRangeReader",
    "open_range_reader",
]


class PrematureEndOfInput(EOFError):
    """The file ended before the assigned range was consumed."""


class RangeReader:
    """
    Base class: opening the reader performs the seek, iterating yields docs.

    Readers are single-use and owned by one worker thread.
    """

    def __init__(self, path: str | Path, rng: Range):
        self.path = Path(path)
        self.range = rng
        self._fh: Optional[BinaryIO] = None

    def open(self) -> "RangeReader":
        self._fh = open(self.path, "rb", buffering=BUFFER_SIZE)
        try:
            self._seek(self._fh)
        except BaseException:
            self.close()
            raise
        logger.debug("Positioned %s at range start=%d length=%d",
                     self.path, self.range.start, self.range.length)
        return self

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self) -> "RangeReader":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    def __iter__(self) -> Iterator[bytes]:
        if self._fh is None:
            raise RuntimeError(f"{type(self).__name__} is not open")
        return self._iter_docs(self._fh)

    def _seek(self, fh: BinaryIO) -> None:
        raise NotImplementedError

    def _iter_docs(self, fh: BinaryIO) -> Iterator[bytes]:
        raise NotImplementedError


class LineRangeReader(RangeReader):
    """Range of ``length`` lines starting at line index ``start``."""

    def _seek(self, fh: BinaryIO) -> None:
        for skipped in range(self.range.start):
            if not fh.readline():
                raise PrematureEndOfInput(
                    f"{self.path} ended after {skipped} lines, "
                    f"before start line {self.range.start}"
                )

    def _iter_docs(self, fh: BinaryIO) -> Iterator[bytes]:
        for consumed in range(self.range.length):
            line = fh.readline()
            if not line:
                raise PrematureEndOfInput(
                    f"{self.path} ended after {consumed} of {self.range.length} "
                    f"lines starting at line {self.range.start}"
                )
            yield line.rstrip(b"\r\n")


class ByteRangeReader(RangeReader):
    """
    Lines whose first byte falls inside ``[start, end)``.

    A nonzero start seeks one byte back and discards through the next
    newline, so a line straddling the cut belongs to the previous range and a
    line beginning exactly at the cut belongs to this one.
    """

    _pos: int = 0

    def _seek(self, fh: BinaryIO) -> None:
        if self.range.start > 0:
            fh.seek(self.range.start - 1)
            fh.readline()
        self._pos = fh.tell()

    def _iter_docs(self, fh: BinaryIO) -> Iterator[bytes]:
        pos = self._pos
        end = self.range.end
        while pos < end:
            line = fh.readline()
            if not line:
                raise PrematureEndOfInput(
                    f"{self.path} ended at byte {pos}, before range end {end}"
                )
            pos += len(line)
            yield line.rstrip(b"\r\n")


class RecordRangeReader(RangeReader):
    """``length`` length-prefixed records starting at byte offset ``start``."""

    def _seek(self, fh: BinaryIO) -> None:
        fh.seek(self.range.start)

    def _iter_docs(self, fh: BinaryIO) -> Iterator[bytes]:
        for consumed in range(self.range.length):
            try:
                payload = read_record(fh)
            except RecordFormatError as exc:
                raise PrematureEndOfInput(
                    f"{self.path}: record {consumed} of range at offset "
                    f"{self.range.start} is truncated ({exc})"
                ) from exc
            if payload is None:
                raise PrematureEndOfInput(
                    f"{self.path} ended after {consumed} of {self.range.length} "
                    f"records starting at offset {self.range.start}"
                )
            yield payload


_READERS = {
    InputMode.LINES: LineRangeReader,
    InputMode.BYTES: ByteRangeReader,
    InputMode.RECORDS: RecordRangeReader,
}


def open_range_reader(mode: InputMode, path: str | Path, rng: Range) -> RangeReader:
    """Build the reader for ``mode``; use it as a context manager to seek."""
    return _READERS[InputMode(mode)](path, rng)
