# tests/io/test_framing.py
from __future__ import annotations

import io
import struct

import pytest

from bulk_loadgen.io.framing import (
    ActionKind,
    RecordFormatError,
    action_line,
    action_record,
    decode_record,
    encode_record,
    frame_line,
    frame_record,
    read_record,
)


# --- action headers -----------------------------------------------------------


def test_action_lines_are_ndjson_with_newline():
    assert action_line(ActionKind.INDEX) == b'{"index":{}}\n'
    assert action_line(ActionKind.CREATE) == b'{"create":{}}\n'
    assert action_line("create") == b'{"create":{}}\n'


@pytest.mark.parametrize("kind,name", [(ActionKind.INDEX, b"index"),
                                       (ActionKind.CREATE, b"create")])
def test_action_records_are_length_prefixed_smile(kind, name):
    blob = action_record(kind)
    payload, next_offset = decode_record(blob)

    assert next_offset == len(blob)
    assert payload.startswith(b":)\n\x01")  # Smile header
    assert payload[4] == 0xFA               # START_OBJECT
    assert payload[5] == 0x80 + len(name) - 1
    assert payload[6:6 + len(name)] == name
    assert payload.endswith(b"\xfa\xfb\xfb")


def test_for_target_picks_create_for_data_streams():
    assert ActionKind.for_target(True) is ActionKind.CREATE
    assert ActionKind.for_target(False) is ActionKind.INDEX


# --- framing ------------------------------------------------------------------


def test_frame_line_writes_header_line_and_newline():
    buf = bytearray()
    header = action_line(ActionKind.INDEX)
    frame_line(buf, header, b'{"a":1}')
    frame_line(buf, header, b'{"b":2}')
    assert bytes(buf) == (
        b'{"index":{}}\n{"a":1}\n'
        b'{"index":{}}\n{"b":2}\n'
    )


def test_frame_record_reemits_length_prefix():
    buf = bytearray()
    header = action_record(ActionKind.CREATE)
    frame_record(buf, header, b"hello")

    assert bytes(buf[: len(header)]) == header
    assert struct.unpack(">i", bytes(buf[len(header):len(header) + 4])) == (5,)
    assert bytes(buf[len(header) + 4:]) == b"hello"

    # The framed body is itself a valid record stream: action, document.
    action, off = decode_record(bytes(buf))
    doc, off = decode_record(bytes(buf), off)
    assert doc == b"hello"
    assert off == len(buf)


# --- record codec -------------------------------------------------------------


def test_records_of_mixed_sizes_decode_byte_exact():
    payloads = [bytes(range(10)), b"", bytes([7]) * 500_000]
    blob = b"".join(encode_record(p) for p in payloads)

    offset = 0
    decoded = []
    while offset < len(blob):
        payload, offset = decode_record(blob, offset)
        decoded.append(payload)

    assert [len(p) for p in decoded] == [10, 0, 500_000]
    assert decoded == payloads

    fh = io.BytesIO(blob)
    streamed = []
    while (payload := read_record(fh)) is not None:
        streamed.append(payload)
    assert streamed == payloads


def test_decode_record_rejects_truncated_payload():
    blob = encode_record(b"abcdef")[:-2]
    with pytest.raises(RecordFormatError):
        decode_record(blob)


def test_decode_record_rejects_negative_length():
    with pytest.raises(RecordFormatError):
        decode_record(struct.pack(">i", -1) + b"xx")


def test_decode_record_rejects_short_prefix():
    with pytest.raises(RecordFormatError):
        decode_record(b"\x00\x00", 0)


def test_read_record_clean_eof_returns_none():
    assert read_record(io.BytesIO(b"")) is None


def test_read_record_partial_prefix_raises():
    with pytest.raises(RecordFormatError):
        read_record(io.BytesIO(b"\x00\x00\x01"))


def test_read_record_partial_payload_raises():
    with pytest.raises(RecordFormatError):
        read_record(io.BytesIO(struct.pack(">i", 10) + b"abc"))
