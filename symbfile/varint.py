"""Protobuf-style variable length integers used by frames and payloads."""

from __future__ import annotations

from typing import BinaryIO, Optional, Tuple

from .errors import MalformedVarint, TruncatedRecord

UINT32_MAX = 0xFFFFFFFF
UINT64_MAX = 0xFFFFFFFFFFFFFFFF
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

VARINT32_MAX_BYTES = 5
VARINT64_MAX_BYTES = 10


def _encode(value: int, limit: int) -> bytes:
    if value < 0:
        raise ValueError("varint cannot encode negative values")
    if value > limit:
        raise ValueError(f"varint value {value} exceeds {limit:#x}")
    out = bytearray()
    while True:
        to_write = value & 0x7F
        value >>= 7
        if value:
            out.append(to_write | 0x80)
        else:
            out.append(to_write)
            break
    return bytes(out)


def encode_varint32(value: int) -> bytes:
    """Encode *value* as a 1-5 byte varint."""

    return _encode(value, UINT32_MAX)


def encode_varint64(value: int) -> bytes:
    """Encode *value* as a 1-10 byte varint."""

    return _encode(value, UINT64_MAX)


def _decode(buffer: bytes, offset: int, max_bytes: int, limit: int) -> Tuple[int, int]:
    shift = 0
    result = 0
    start = offset
    while True:
        if offset >= len(buffer):
            raise MalformedVarint("unterminated varint sequence", offset=start)
        if offset - start >= max_bytes:
            raise MalformedVarint(f"varint longer than {max_bytes} bytes", offset=start)
        byte = buffer[offset]
        result |= (byte & 0x7F) << shift
        offset += 1
        if not byte & 0x80:
            break
        shift += 7
    if result > limit:
        raise MalformedVarint(f"varint value exceeds {limit:#x}", offset=start)
    return result, offset


def decode_varint32(buffer: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a 32-bit varint at *offset*, returning ``(value, next_offset)``."""

    return _decode(buffer, offset, VARINT32_MAX_BYTES, UINT32_MAX)


def decode_varint64(buffer: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a 64-bit varint at *offset*, returning ``(value, next_offset)``."""

    return _decode(buffer, offset, VARINT64_MAX_BYTES, UINT64_MAX)


def read_varint32(handle: BinaryIO, *, offset: int = 0) -> Optional[Tuple[int, int]]:
    """Read a 32-bit varint from a binary stream.

    Returns ``(value, bytes_consumed)``, or ``None`` when the stream is
    exhausted before the first byte. Running dry inside the sequence raises
    :class:`TruncatedRecord`; *offset* is only used for error reporting.
    """

    shift = 0
    result = 0
    consumed = 0
    while True:
        if consumed >= VARINT32_MAX_BYTES:
            raise MalformedVarint(
                f"varint longer than {VARINT32_MAX_BYTES} bytes", offset=offset
            )
        chunk = handle.read(1)
        if not chunk:
            if consumed == 0:
                return None
            raise TruncatedRecord("stream ended inside a varint", offset=offset + consumed)
        byte = chunk[0]
        result |= (byte & 0x7F) << shift
        consumed += 1
        if not byte & 0x80:
            break
        shift += 7
    if result > UINT32_MAX:
        raise MalformedVarint("varint value exceeds 32 bits", offset=offset)
    return result, consumed


def zigzag_encode(value: int) -> int:
    """Map a signed 64-bit integer onto the unsigned zigzag space."""

    if not INT64_MIN <= value <= INT64_MAX:
        raise ValueError(f"sint64 value {value} out of range")
    return ((value << 1) ^ (value >> 63)) & UINT64_MAX


def zigzag_decode(value: int) -> int:
    return (value >> 1) ^ -(value & 1)


__all__ = [
    "UINT32_MAX",
    "UINT64_MAX",
    "INT64_MIN",
    "INT64_MAX",
    "encode_varint32",
    "encode_varint64",
    "decode_varint32",
    "decode_varint64",
    "read_varint32",
    "zigzag_encode",
    "zigzag_decode",
]
