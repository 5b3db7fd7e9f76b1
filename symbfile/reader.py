"""Forward-only reader producing decoded symbfile records."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

from .address import AddressTracker
from .config import ReaderOptions
from .errors import FormatError, MissingHeader, SemanticError
from .format import Frame, FrameReader, MessageType
from .inline_tree import InlineScope
from .range_codec import RangeMessage, decode_range
from .records import Header, Record, StringTableRecord, UnknownRecord
from .resource_limits import ResourceBudgetExceeded
from .return_pad import ReturnPadMessage, decode_return_pad
from .string_table import StringTable, decode_string_table_payload
from .wire import collect_unknown, iter_fields

LOGGER = logging.getLogger(__name__)

ByteSource = Union[BinaryIO, bytes, bytearray, memoryview]


class Reader:
    """Decode a symbfile stream one record at a time.

    The reader keeps only the current string table, the address cursor and
    the ranges that are still open at each inline depth. String table records
    are installed before they are returned, so callers may ignore them.
    """

    def __init__(self, source: ByteSource, options: Optional[ReaderOptions] = None) -> None:
        if isinstance(source, (bytes, bytearray, memoryview)):
            source = io.BytesIO(bytes(source))
        self._options = options or ReaderOptions()
        self._frames = FrameReader(source, budget=self._options.budget)
        self.string_table = StringTable()
        self.addresses = AddressTracker(
            allow_delta_without_base=self._options.allow_delta_without_base
        )
        self.scope = InlineScope()
        self.records_read = 0
        self._failure: Optional[BaseException] = None
        self._finished = False

    @property
    def offset(self) -> int:
        return self._frames.offset

    # ------------------------------------------------------------------
    # Iteration

    def read_record(self) -> Optional[Record]:
        """Return the next record, or ``None`` once the stream has ended."""

        if self._failure is not None:
            raise self._failure
        if self._finished:
            return None
        try:
            frame = self._frames.read_frame()
        except (FormatError, ResourceBudgetExceeded) as exc:
            self._failure = exc
            raise
        if frame is None:
            self._finished = True
            LOGGER.debug("stream ended cleanly after %d records", self.records_read)
            return None
        if (
            self.records_read == 0
            and self._options.require_header
            and frame.message_type != MessageType.HEADER
        ):
            error = MissingHeader(
                f"first record has message type {frame.message_type}, expected a header",
                offset=frame.offset,
            )
            self._failure = error
            raise error
        self.records_read += 1
        try:
            return self._decode(frame)
        except SemanticError as exc:
            raise exc.at_offset(frame.offset)
        except ResourceBudgetExceeded as exc:
            self._failure = exc
            raise

    def __iter__(self) -> Iterator[Record]:
        return self

    def __next__(self) -> Record:
        record = self.read_record()
        if record is None:
            raise StopIteration
        return record

    # ------------------------------------------------------------------
    # Decoding

    def _decode(self, frame: Frame) -> Record:
        budget = self._options.budget
        message_type = frame.message_type
        if message_type == MessageType.HEADER:
            return Header(unknown_fields=collect_unknown(list(iter_fields(frame.payload))))
        if message_type == MessageType.STRING_TABLE_V1:
            strings, unknown = decode_string_table_payload(frame.payload)
            budget.ensure_string_table(len(strings))
            self.string_table.replace(strings)
            LOGGER.debug(
                "installed string table generation %d with %d entries at offset %d",
                self.string_table.generation,
                len(strings),
                frame.offset,
            )
            return StringTableRecord(strings=strings, unknown_fields=unknown)
        if message_type == MessageType.RANGE_V1:
            message = RangeMessage.from_bytes(frame.payload)
            budget.ensure_inline_depth(message.depth)
            if message.line_table is not None:
                budget.ensure_line_table(
                    max(len(message.line_table.offsets), len(message.line_table.line_numbers))
                )
            return decode_range(
                message, addresses=self.addresses, strings=self.string_table, scope=self.scope
            )
        if message_type == MessageType.RETURN_PAD_V1:
            pad = ReturnPadMessage.from_bytes(frame.payload)
            budget.ensure_inline_depth(len(pad.func))
            return decode_return_pad(pad, addresses=self.addresses, strings=self.string_table)
        LOGGER.debug(
            "passing through unknown message type %d (%d bytes) at offset %d",
            message_type,
            len(frame.payload),
            frame.offset,
        )
        return UnknownRecord(message_type=message_type, payload=frame.payload)


def open_reader(source: ByteSource, options: Optional[ReaderOptions] = None) -> Reader:
    return Reader(source, options)


def iter_path(path: Path, options: Optional[ReaderOptions] = None) -> Iterator[Record]:
    """Yield the records of the symbfile at *path*, closing it afterwards."""

    with Path(path).open("rb") as handle:
        yield from Reader(handle, options)


__all__ = ["ByteSource", "Reader", "iter_path", "open_reader"]
