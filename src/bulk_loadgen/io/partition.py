# bulk_loadgen/io/partition.py
"""Split an input file into one contiguous range per worker."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

from bulk_loadgen.io.framing import LENGTH_PREFIX, RecordFormatError

logger = logging.getLogger(__name__)

__all__ = [
    "Range",
    "count_lines",
    "scan_record_batches",
    "partition_lines",
    "partition_bytes",
    "partition_records",
]

# 1MB buffer for sequential scans.
BUFFER_SIZE = 1024 * 1024


@dataclass(frozen=True)
class Range:
    """A worker's exclusive slice of the input."""

    start: int
    """First line index (lines), byte offset (bytes) or record offset (records)"""

    length: int
    """Lines, bytes or records covered by this range"""

    @property
    def end(self) -> int:
        return self.start + self.length


def _check_workers(num_workers: int) -> None:
    if num_workers < 1:
        raise ValueError(f"num_workers must be >= 1, got {num_workers}")


def _split_evenly(total: int, num_workers: int) -> List[Range]:
    # Last range absorbs the remainder.
    per_worker, remainder = divmod(total, num_workers)
    ranges: List[Range] = []
    current = 0
    for i in range(num_workers):
        length = per_worker + (remainder if i == num_workers - 1 else 0)
        ranges.append(Range(current, length))
        current += length
    return ranges


def count_lines(path: str | Path) -> int:
    """Count lines, including a final line without a trailing newline."""
    with open(path, "rb", buffering=BUFFER_SIZE) as fh:
        return sum(1 for _ in fh)


def partition_lines(total_lines: int, num_workers: int) -> List[Range]:
    """
    Partition ``total_lines`` into ``num_workers`` line-count ranges.

    Every range gets ``total // n`` lines; the last one also takes
    ``total % n``.

    Example:
        >>> [r.length for r in partition_lines(1000, 4)]
        [250, 250, 250, 250]
        >>> [r.length for r in partition_lines(10, 3)]
        [3, 3, 4]
    """
    _check_workers(num_workers)
    if total_lines <= 0:
        raise ValueError(f"Cannot partition an empty input ({total_lines} lines)")
    return _split_evenly(total_lines, num_workers)


def partition_bytes(file_size: int, num_workers: int) -> List[Range]:
    """
    Partition ``file_size`` bytes into ``num_workers`` byte ranges.

    The cut points are approximate: they ignore line boundaries, and the
    range readers resolve lines that straddle a cut.
    """
    _check_workers(num_workers)
    if file_size <= 0:
        raise ValueError(f"Cannot partition an empty input ({file_size} bytes)")
    return _split_evenly(file_size, num_workers)


def scan_record_batches(path: str | Path, bulk_size: int) -> List[Tuple[int, int]]:
    """
    Walk a length-prefixed record file and group records into bulks.

    Only the 4-byte prefixes are read; payloads are skipped with seek.

    Returns
    -------
    [(start_offset, record_count), ...] with every count == bulk_size except
    possibly the last.
    """
    if bulk_size < 1:
        raise ValueError(f"bulk_size must be >= 1, got {bulk_size}")

    file_size = os.path.getsize(path)
    batches: List[Tuple[int, int]] = []

    with open(path, "rb") as fh:
        pos = 0
        while pos < file_size:
            batch_start = pos
            count = 0
            while pos < file_size and count < bulk_size:
                fh.seek(pos)
                prefix = fh.read(LENGTH_PREFIX.size)
                if len(prefix) < LENGTH_PREFIX.size:
                    raise RecordFormatError(f"Truncated length prefix at offset {pos}")
                (length,) = LENGTH_PREFIX.unpack(prefix)
                if length < 0:
                    raise RecordFormatError(
                        f"Negative record length {length} at offset {pos}"
                    )
                pos += LENGTH_PREFIX.size + length
                count += 1
            if pos > file_size:
                raise RecordFormatError(
                    f"Record in bulk starting at {batch_start} runs past end of file"
                )
            batches.append((batch_start, count))

    logger.debug("Scanned %d bulks of up to %d records in %s",
                 len(batches), bulk_size, path)
    return batches


def partition_records(
    batches: List[Tuple[int, int]],
    num_workers: int,
    *,
    file_size: int,
) -> List[Range]:
    """
    Hand contiguous blocks of pre-scanned bulks to each worker.

    The first ``len(batches) % n`` workers get one extra bulk. Each returned
    range starts at its first bulk's byte offset and counts records. A worker
    with no bulks gets an empty range positioned at ``file_size``.
    """
    _check_workers(num_workers)
    if not batches:
        raise ValueError("Cannot partition an empty input (0 records)")

    per_worker, remainder = divmod(len(batches), num_workers)
    ranges: List[Range] = []
    start = 0
    for i in range(num_workers):
        end = start + per_worker + (1 if i < remainder else 0)
        block = batches[start:end]
        if block:
            ranges.append(Range(block[0][0], sum(count for _, count in block)))
        else:
            ranges.append(Range(file_size, 0))
        start = end
    return ranges
