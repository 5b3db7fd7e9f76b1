"""Binary framing for symbfile streams.

A stream is the magic ``b"symbfile"`` followed by frames of the form::

    varint(len(payload)) varint(message_type) payload

The framer never interprets payloads, so frames of message types it does not
know are handed up unchanged and can be skipped by length alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import BinaryIO, Iterator, Optional

from .errors import BadMagic, PayloadTooLarge, TruncatedRecord
from .resource_limits import DecodeBudget
from .varint import UINT32_MAX, encode_varint32, read_varint32

MAGIC = b"symbfile"
MAGIC_SIZE = len(MAGIC)


class MessageType(IntEnum):
    """Message type tags written after the length prefix."""

    # reserved so an uninitialised type field never aliases a real message
    INVALID = 0
    HEADER = 1
    RANGE_V1 = 2
    RETURN_PAD_V1 = 3
    STRING_TABLE_V1 = 4


KNOWN_MESSAGE_TYPES = frozenset(
    (
        MessageType.HEADER,
        MessageType.RANGE_V1,
        MessageType.RETURN_PAD_V1,
        MessageType.STRING_TABLE_V1,
    )
)


@dataclass(frozen=True)
class Frame:
    """Undecoded record: its type tag, payload and stream offset."""

    message_type: int
    payload: bytes
    offset: int

    @property
    def known(self) -> bool:
        return self.message_type in KNOWN_MESSAGE_TYPES


def encode_frame(message_type: int, payload: bytes) -> bytes:
    """Serialise a single frame."""

    if len(payload) > UINT32_MAX:
        raise PayloadTooLarge(
            f"payload of {len(payload)} bytes does not fit a 32-bit length prefix"
        )
    return encode_varint32(len(payload)) + encode_varint32(int(message_type)) + bytes(payload)


def write_magic(handle: BinaryIO) -> int:
    handle.write(MAGIC)
    return MAGIC_SIZE


def write_frame(handle: BinaryIO, message_type: int, payload: bytes) -> int:
    """Write a frame to *handle* and return the number of bytes written."""

    frame = encode_frame(message_type, payload)
    handle.write(frame)
    return len(frame)


class FrameReader:
    """Forward-only frame iterator over a binary stream."""

    def __init__(self, handle: BinaryIO, *, budget: Optional[DecodeBudget] = None) -> None:
        self._handle = handle
        self._budget = budget or DecodeBudget()
        self._offset = 0
        self._magic_checked = False

    @property
    def offset(self) -> int:
        """Number of bytes consumed so far."""

        return self._offset

    def _read_magic(self) -> None:
        preamble = b""
        # pipes and sockets may hand the magic over in pieces
        while len(preamble) < MAGIC_SIZE:
            chunk = self._handle.read(MAGIC_SIZE - len(preamble))
            if not chunk:
                break
            preamble += chunk
        if preamble != MAGIC:
            raise BadMagic(
                f"unexpected file magic {bytes(preamble)!r} (expected {MAGIC!r})", offset=0
            )
        self._offset = MAGIC_SIZE
        self._magic_checked = True

    def read_frame(self) -> Optional[Frame]:
        """Return the next frame, or ``None`` at a clean end of stream."""

        if not self._magic_checked:
            self._read_magic()
        start = self._offset
        length_info = read_varint32(self._handle, offset=start)
        if length_info is None:
            return None
        length, consumed = length_info
        self._offset += consumed

        type_info = read_varint32(self._handle, offset=self._offset)
        if type_info is None:
            raise TruncatedRecord("stream ended before the message type", offset=self._offset)
        message_type, consumed = type_info
        self._offset += consumed

        self._budget.ensure_payload_bytes(length)
        payload = self._read_exactly(length)
        return Frame(message_type=message_type, payload=payload, offset=start)

    def _read_exactly(self, length: int) -> bytes:
        chunks = []
        remaining = length
        while remaining:
            chunk = self._handle.read(remaining)
            if not chunk:
                raise TruncatedRecord(
                    f"stream ended {remaining} bytes short of a {length} byte payload",
                    offset=self._offset,
                )
            chunks.append(chunk)
            remaining -= len(chunk)
            self._offset += len(chunk)
        return b"".join(chunks)

    def __iter__(self) -> Iterator[Frame]:
        while True:
            frame = self.read_frame()
            if frame is None:
                return
            yield frame


__all__ = [
    "MAGIC",
    "MAGIC_SIZE",
    "MessageType",
    "KNOWN_MESSAGE_TYPES",
    "Frame",
    "FrameReader",
    "encode_frame",
    "write_frame",
    "write_magic",
]
