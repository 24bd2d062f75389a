# bulk_loadgen/io/framing.py
"""Bulk body framing for line-delimited JSON and length-prefixed records."""
from __future__ import annotations

import struct
from enum import Enum
from typing import BinaryIO, Tuple

__all__ = [
    "ActionKind",
    "RecordFormatError",
    "LENGTH_PREFIX",
    "action_line",
    "action_record",
    "frame_line",
    "frame_record",
    "encode_record",
    "decode_record",
    "read_record",
]

# Signed 32-bit big-endian length preceding every binary record.
LENGTH_PREFIX = struct.Struct(">i")


class RecordFormatError(ValueError):
    """A length prefix is negative or the payload is truncated."""


class ActionKind(str, Enum):
    """Bulk action placed before every document."""

    INDEX = "index"
    CREATE = "create"

    @classmethod
    def for_target(cls, data_stream: bool) -> "ActionKind":
        """Data streams are append-only and only accept ``create``."""
        return cls.CREATE if data_stream else cls.INDEX


# {"index":{}} / {"create":{}} followed by the bulk line separator.
_ACTION_LINES = {
    ActionKind.INDEX: b'{"index":{}}\n',
    ActionKind.CREATE: b'{"create":{}}\n',
}

# Length-prefixed Smile encodings of the same two objects:
#   3A 29 0A 01      Smile header
#   FA               START_OBJECT
#   84|85 <ascii>    short field name "index" / "create"
#   FA FB            empty object value
#   FB               END_OBJECT
_ACTION_RECORDS = {
    ActionKind.INDEX: bytes([
        0x00, 0x00, 0x00, 0x0E,
        0x3A, 0x29, 0x0A, 0x01,
        0xFA,
        0x84, 0x69, 0x6E, 0x64, 0x65, 0x78,
        0xFA, 0xFB,
        0xFB,
    ]),
    ActionKind.CREATE: bytes([
        0x00, 0x00, 0x00, 0x0F,
        0x3A, 0x29, 0x0A, 0x01,
        0xFA,
        0x85, 0x63, 0x72, 0x65, 0x61, 0x74, 0x65,
        0xFA, 0xFB,
        0xFB,
    ]),
}


def action_line(kind: ActionKind) -> bytes:
    """Return the NDJSON action line (newline included) for ``kind``."""
    return _ACTION_LINES[ActionKind(kind)]


def action_record(kind: ActionKind) -> bytes:
    """Return the length-prefixed binary action record for ``kind``."""
    return _ACTION_RECORDS[ActionKind(kind)]


def frame_line(buf: bytearray, header: bytes, line: bytes) -> None:
    """Append ``header``, the raw ``line`` and a single newline to ``buf``."""
    buf += header
    buf += line
    buf += b"\n"


def frame_record(buf: bytearray, header: bytes, payload: bytes) -> None:
    """Append ``header`` and ``payload`` re-emitted with its length prefix."""
    buf += header
    buf += LENGTH_PREFIX.pack(len(payload))
    buf += payload


def encode_record(payload: bytes) -> bytes:
    """Encode one ``[int32 BE length][payload]`` record."""
    return LENGTH_PREFIX.pack(len(payload)) + payload


def decode_record(data: bytes, offset: int = 0) -> Tuple[bytes, int]:
    """
    Decode the record starting at ``offset`` in ``data``.

    Returns
    -------
    (payload, next_offset) where ``next_offset == offset + 4 + len(payload)``.
    """
    end_of_prefix = offset + LENGTH_PREFIX.size
    if end_of_prefix > len(data):
        raise RecordFormatError(f"Truncated length prefix at offset {offset}")

    (length,) = LENGTH_PREFIX.unpack_from(data, offset)
    if length < 0:
        raise RecordFormatError(f"Negative record length {length} at offset {offset}")

    end = end_of_prefix + length
    if end > len(data):
        raise RecordFormatError(
            f"Record at offset {offset} declares {length} bytes, "
            f"only {len(data) - end_of_prefix} available"
        )
    return bytes(data[end_of_prefix:end]), end


def read_record(fh: BinaryIO) -> bytes | None:
    """
    Read the next record from a binary stream.

    Returns None at a clean end of stream (no bytes left before the prefix).
    Raises RecordFormatError on a partial prefix or payload.
    """
    prefix = fh.read(LENGTH_PREFIX.size)
    if not prefix:
        return None
    if len(prefix) < LENGTH_PREFIX.size:
        raise RecordFormatError("Truncated length prefix at end of stream")

    (length,) = LENGTH_PREFIX.unpack(prefix)
    if length < 0:
        raise RecordFormatError(f"Negative record length {length}")

    payload = fh.read(length)
    if len(payload) < length:
        raise RecordFormatError(
            f"Truncated payload: expected {length} bytes, got {len(payload)}"
        )
    return payload
