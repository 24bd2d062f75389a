# tests/io/test_ranges.py
from __future__ import annotations

from pathlib import Path

import pytest

from bulk_loadgen.config import InputMode
from bulk_loadgen.io.framing import encode_record
from bulk_loadgen.io.partition import Range, partition_bytes
from bulk_loadgen.io.ranges import (
    ByteRangeReader,
    LineRangeReader,
    PrematureEndOfInput,
    RecordRangeReader,
    open_range_reader,
)


def _ndjson(path: Path, n: int) -> list[bytes]:
    # Varying widths so byte cuts land mid-line and on boundaries.
    lines = [b'{"id":%d,"pad":"%s"}' % (i, b"x" * (i % 7)) for i in range(n)]
    path.write_bytes(b"".join(line + b"\n" for line in lines))
    return lines


# --- line ranges --------------------------------------------------------------


def test_line_reader_skips_to_start_and_yields_length(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    lines = _ndjson(path, 10)

    with LineRangeReader(path, Range(3, 4)) as reader:
        assert list(reader) == lines[3:7]


def test_line_reader_eof_while_seeking_raises_on_open(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    _ndjson(path, 3)

    reader = LineRangeReader(path, Range(5, 1))
    with pytest.raises(PrematureEndOfInput, match="before start line 5"):
        reader.open()


def test_line_reader_eof_inside_range_raises(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    lines = _ndjson(path, 5)

    got = []
    with pytest.raises(PrematureEndOfInput, match="2 of 4"):
        with LineRangeReader(path, Range(3, 4)) as reader:
            for doc in reader:
                got.append(doc)
    assert got == lines[3:5]


def test_line_reader_strips_crlf(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    path.write_bytes(b'{"a":1}\r\n{"b":2}')

    with LineRangeReader(path, Range(0, 2)) as reader:
        assert list(reader) == [b'{"a":1}', b'{"b":2}']


def test_iterating_unopened_reader_raises(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    _ndjson(path, 1)
    with pytest.raises(RuntimeError, match="not open"):
        iter(LineRangeReader(path, Range(0, 1)))


# --- byte ranges --------------------------------------------------------------


@pytest.mark.parametrize("workers", [1, 2, 3, 5, 7, 16])
def test_byte_ranges_yield_every_line_exactly_once(tmp_path: Path, workers):
    path = tmp_path / "docs.ndjson"
    lines = _ndjson(path, 50)

    collected = []
    for rng in partition_bytes(path.stat().st_size, workers):
        with ByteRangeReader(path, rng) as reader:
            collected.extend(reader)

    assert collected == lines


def test_byte_range_starting_on_line_boundary_keeps_that_line(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    path.write_bytes(b"aaa\nbbb\nccc\n")

    with ByteRangeReader(path, Range(0, 4)) as first:
        assert list(first) == [b"aaa"]
    with ByteRangeReader(path, Range(4, 8)) as second:
        assert list(second) == [b"bbb", b"ccc"]


def test_byte_range_discards_leading_partial_line(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    path.write_bytes(b"aaaa\nbbbb\ncccc\n")

    # Cut at byte 2 lands inside "aaaa": that line belongs to the first range.
    with ByteRangeReader(path, Range(0, 2)) as first:
        assert list(first) == [b"aaaa"]
    with ByteRangeReader(path, Range(2, 13)) as second:
        assert list(second) == [b"bbbb", b"cccc"]


def test_byte_range_inside_a_single_line_is_empty(tmp_path: Path):
    path = tmp_path / "docs.ndjson"
    path.write_bytes(b"a-very-long-line\nshort\n")

    with ByteRangeReader(path, Range(3, 4)) as reader:
        assert list(reader) == []


# --- record ranges ------------------------------------------------------------


def test_record_reader_reads_count_from_offset(tmp_path: Path):
    payloads = [b"zero", b"", b"two" * 100, b"three"]
    path = tmp_path / "docs.bin"
    path.write_bytes(b"".join(encode_record(p) for p in payloads))
    offset = len(encode_record(payloads[0]))

    with RecordRangeReader(path, Range(offset, 2)) as reader:
        assert list(reader) == [b"", b"two" * 100]


def test_record_reader_short_file_raises(tmp_path: Path):
    path = tmp_path / "docs.bin"
    path.write_bytes(encode_record(b"only"))

    with pytest.raises(PrematureEndOfInput, match="1 of 3"):
        with RecordRangeReader(path, Range(0, 3)) as reader:
            list(reader)


def test_record_reader_truncated_payload_raises(tmp_path: Path):
    path = tmp_path / "docs.bin"
    path.write_bytes(encode_record(b"0123456789")[:-4])

    with pytest.raises(PrematureEndOfInput, match="truncated"):
        with RecordRangeReader(path, Range(0, 1)) as reader:
            list(reader)


@pytest.mark.parametrize("mode,cls", [
    (InputMode.LINES, LineRangeReader),
    ("bytes", ByteRangeReader),
    (InputMode.RECORDS, RecordRangeReader),
])
def test_open_range_reader_dispatches_on_mode(tmp_path: Path, mode, cls):
    reader = open_range_reader(mode, tmp_path / "x", Range(0, 0))
    assert type(reader) is cls


def test_missing_file_raises_oserror(tmp_path: Path):
    with pytest.raises(OSError):
        LineRangeReader(tmp_path / "missing.ndjson", Range(0, 1)).open()
