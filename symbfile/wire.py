"""Protobuf wire format helpers for symbfile payloads.

Payloads are encoded exactly like the messages in ``symbfile.proto`` so files
stay interchangeable with producers generated from the schema. Only the subset
needed by the schema is written (varints, zigzag varints, length-delimited
strings/messages and packed repeated varints), but every wire type except the
deprecated groups can be skipped when it shows up as an unknown field.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Union

from .errors import MalformedPayload, MalformedVarint
from .varint import (
    UINT32_MAX,
    decode_varint64,
    encode_varint64,
    zigzag_decode,
    zigzag_encode,
)

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LEN = 2
WIRE_START_GROUP = 3
WIRE_END_GROUP = 4
WIRE_FIXED32 = 5

_MAX_FIELD_NUMBER = (1 << 29) - 1


@dataclass(frozen=True)
class WireField:
    """Single field as it appears on the wire."""

    number: int
    wire_type: int
    value: Union[int, bytes]
    raw: bytes

    def as_uint64(self) -> int:
        return int(self.value)

    def as_uint32(self) -> int:
        # protobuf truncates oversized uint32 varints instead of rejecting them
        return int(self.value) & UINT32_MAX

    def as_sint64(self) -> int:
        return zigzag_decode(int(self.value))

    def as_bytes(self) -> bytes:
        return bytes(self.value)  # type: ignore[arg-type]

    def as_string(self) -> str:
        try:
            return self.as_bytes().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedPayload(f"field {self.number} is not valid UTF-8") from exc

    def iter_uint32(self) -> Iterator[int]:
        """Yield the values of a repeated uint32 field, packed or not."""

        if self.wire_type == WIRE_VARINT:
            yield self.as_uint32()
            return
        data = self.as_bytes()
        offset = 0
        while offset < len(data):
            try:
                value, offset = decode_varint64(data, offset)
            except MalformedVarint as exc:
                raise MalformedPayload(
                    f"packed field {self.number} is corrupt: {exc.message}"
                ) from exc
            yield value & UINT32_MAX


def iter_fields(payload: bytes) -> Iterator[WireField]:
    """Yield the fields of an encoded message in wire order."""

    offset = 0
    length = len(payload)
    while offset < length:
        start = offset
        try:
            key, offset = decode_varint64(payload, offset)
        except MalformedVarint as exc:
            raise MalformedPayload(f"corrupt field key at payload offset {start}") from exc
        number = key >> 3
        wire_type = key & 0x7
        if number == 0 or number > _MAX_FIELD_NUMBER:
            raise MalformedPayload(f"invalid field number {number} at payload offset {start}")
        value: Union[int, bytes]
        if wire_type == WIRE_VARINT:
            try:
                value, offset = decode_varint64(payload, offset)
            except MalformedVarint as exc:
                raise MalformedPayload(f"corrupt varint in field {number}") from exc
        elif wire_type == WIRE_FIXED64:
            end = offset + 8
            if end > length:
                raise MalformedPayload(f"fixed64 field {number} truncated")
            value = int.from_bytes(payload[offset:end], "little")
            offset = end
        elif wire_type == WIRE_FIXED32:
            end = offset + 4
            if end > length:
                raise MalformedPayload(f"fixed32 field {number} truncated")
            value = int.from_bytes(payload[offset:end], "little")
            offset = end
        elif wire_type == WIRE_LEN:
            try:
                size, offset = decode_varint64(payload, offset)
            except MalformedVarint as exc:
                raise MalformedPayload(f"corrupt length in field {number}") from exc
            end = offset + size
            if end > length:
                raise MalformedPayload(f"length-delimited field {number} truncated")
            value = bytes(payload[offset:end])
            offset = end
        else:
            raise MalformedPayload(f"unsupported wire type {wire_type} in field {number}")
        yield WireField(number=number, wire_type=wire_type, value=value, raw=bytes(payload[start:offset]))


class FieldWriter:
    """Accumulates encoded fields for a single message."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def _key(self, number: int, wire_type: int) -> None:
        self._buffer.extend(encode_varint64((number << 3) | wire_type))

    def uint(self, number: int, value: int, *, always: bool = False) -> None:
        """Write a varint field; zero is skipped unless *always* is set."""

        if value == 0 and not always:
            return
        self._key(number, WIRE_VARINT)
        self._buffer.extend(encode_varint64(value))

    def sint64(self, number: int, value: int, *, always: bool = False) -> None:
        if value == 0 and not always:
            return
        self._key(number, WIRE_VARINT)
        self._buffer.extend(encode_varint64(zigzag_encode(value)))

    def bytes_field(self, number: int, value: bytes, *, always: bool = False) -> None:
        if not value and not always:
            return
        self._key(number, WIRE_LEN)
        self._buffer.extend(encode_varint64(len(value)))
        self._buffer.extend(value)

    def string(self, number: int, value: str, *, always: bool = False) -> None:
        self.bytes_field(number, value.encode("utf-8"), always=always)

    def packed_uint32(self, number: int, values: Iterable[int]) -> None:
        body = bytearray()
        for value in values:
            if not 0 <= value <= UINT32_MAX:
                raise ValueError(f"uint32 value {value} out of range in field {number}")
            body.extend(encode_varint64(value))
        self.bytes_field(number, bytes(body))

    def repeated_string(self, number: int, values: Iterable[str]) -> None:
        for value in values:
            self.string(number, value, always=True)

    def raw(self, data: bytes) -> None:
        self._buffer.extend(data)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)


def collect_unknown(fields: List[WireField]) -> bytes:
    return b"".join(field.raw for field in fields)


__all__ = [
    "WIRE_VARINT",
    "WIRE_FIXED64",
    "WIRE_LEN",
    "WIRE_FIXED32",
    "WireField",
    "FieldWriter",
    "iter_fields",
    "collect_unknown",
]
