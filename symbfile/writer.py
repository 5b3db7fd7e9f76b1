"""Writer emitting well-formed symbfile streams."""

from __future__ import annotations

import logging
from collections import Counter
from typing import BinaryIO, Dict, Iterable, List, Optional, Sequence

from .address import AddressField, AddressTracker
from .config import WriterConfig, get_writer_config
from .errors import WriterStateError
from .format import KNOWN_MESSAGE_TYPES, MessageType, write_frame, write_magic
from .range_codec import StringField, StringLiteral, StringRef, encode_range, validate_range
from .records import Header, Range, Record, ReturnPad, StringTableRecord, UnknownRecord
from .return_pad import encode_return_pad, validate_return_pad
from .string_table import StringTable, encode_string_table_payload

LOGGER = logging.getLogger(__name__)


class Writer:
    """Serialise symbol facts into a symbfile stream.

    The writer mirrors the reader state: it keeps the last written address so
    it can delta-code the next one, and the last published string table so it
    can reference strings instead of repeating them. When strings are moved
    into the table is a policy decision taken from :class:`WriterConfig`.
    """

    def __init__(self, sink: BinaryIO, config: Optional[WriterConfig] = None) -> None:
        self._sink = sink
        self._config = config or get_writer_config(None)
        self.string_table = StringTable()
        self.addresses = AddressTracker()
        self._seen: Counter[str] = Counter()
        self._pending: Dict[str, None] = {}
        # automatic interning; off while replaying tables taken from another stream
        self.interning = self._config.interning_enabled
        self._header_written = False
        self._finished = False
        self.bytes_written = 0
        self.records_written = 0

    @property
    def config(self) -> WriterConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context helpers

    def __enter__(self) -> "Writer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.finish()

    # ------------------------------------------------------------------
    # Public API

    def write_header(self) -> None:
        if self._finished:
            raise WriterStateError("writer already finished")
        if self._header_written:
            raise WriterStateError("header already written")
        self.bytes_written += write_magic(self._sink)
        self._emit(MessageType.HEADER, b"")
        self._header_written = True

    def write_string_table(self, strings: Iterable[str]) -> None:
        """Replace the reader's string table with exactly *strings*."""

        self._require_open()
        self._install_table(tuple(strings))

    def write_range(self, record: Range) -> None:
        self._require_open()
        validate_range(record)
        self._note_strings(
            value for value in (record.func, record.file, record.call_file) if value
        )
        previous = self.addresses.cursor
        try:
            address = self._encode_address(record.elf_va)
            message = encode_range(record, address=address, string_field=self._string_field)
            payload = message.to_bytes()
        except Exception:
            self.addresses.cursor = previous
            raise
        self._emit(MessageType.RANGE_V1, payload)

    def write_return_pad(self, record: ReturnPad) -> None:
        self._require_open()
        validate_return_pad(record)
        needed = (*record.functions, *record.files)
        if any(value not in self.string_table for value in needed):
            self._publish_pending(required=needed)
        previous = self.addresses.cursor
        try:
            address = self._encode_address(record.elf_va)
            message = encode_return_pad(
                record, address=address, string_index=self.string_table.index_for
            )
            payload = message.to_bytes()
        except Exception:
            self.addresses.cursor = previous
            raise
        self._emit(MessageType.RETURN_PAD_V1, payload)

    def write_unknown(self, message_type: int, payload: bytes) -> None:
        """Pass a frame of a message type this writer does not model through."""

        self._require_open()
        if message_type in KNOWN_MESSAGE_TYPES or message_type == MessageType.INVALID:
            raise ValueError(f"message type {message_type} cannot be written as unknown")
        self._emit(message_type, payload)

    def write_record(self, record: Record) -> None:
        if isinstance(record, Header):
            self.write_header()
        elif isinstance(record, StringTableRecord):
            self.write_string_table(record.strings)
        elif isinstance(record, Range):
            self.write_range(record)
        elif isinstance(record, ReturnPad):
            self.write_return_pad(record)
        elif isinstance(record, UnknownRecord):
            self.write_unknown(record.message_type, record.payload)
        else:
            raise TypeError(f"unsupported record {record!r}")

    def finish(self) -> None:
        """Flush the sink. Further writes are rejected."""

        if self._finished:
            return
        if not self._header_written:
            raise WriterStateError("cannot finish a stream without a header")
        flush = getattr(self._sink, "flush", None)
        if flush is not None:
            flush()
        self._finished = True
        LOGGER.debug(
            "finished stream with %d records in %d bytes", self.records_written, self.bytes_written
        )

    # ------------------------------------------------------------------
    # Internals

    def _require_open(self) -> None:
        if self._finished:
            raise WriterStateError("writer already finished")
        if not self._header_written:
            raise WriterStateError("write_header() must be called before any record")

    def _emit(self, message_type: int, payload: bytes) -> None:
        self.bytes_written += write_frame(self._sink, message_type, payload)
        self.records_written += 1

    def _encode_address(self, address: int) -> AddressField:
        force_absolute = self._config.address_mode == "absolute"
        return self.addresses.encode(address, force_absolute=force_absolute)

    def _string_field(self, value: str) -> StringField:
        if value in self.string_table:
            return StringRef(self.string_table.index_for(value))
        return StringLiteral(value)

    def _install_table(self, strings: Sequence[str]) -> None:
        self._emit(MessageType.STRING_TABLE_V1, encode_string_table_payload(strings))
        self.string_table.replace(strings)
        for value in strings:
            self._pending.pop(value, None)
            self._seen.pop(value, None)
        LOGGER.debug(
            "published string table generation %d with %d entries",
            self.string_table.generation,
            len(strings),
        )

    def _note_strings(self, values: Iterable[str]) -> None:
        if not self.interning:
            return
        for value in values:
            if value in self.string_table or value in self._pending:
                continue
            self._seen[value] += 1
            if self._seen[value] >= self._config.intern_threshold:
                del self._seen[value]
                self._pending[value] = None
        if len(self._pending) >= self._config.table_flush_batch:
            self._publish_pending()

    def _publish_pending(self, required: Sequence[str] = ()) -> None:
        """Publish queued strings, plus *required* ones, as a new table."""

        additions: List[str] = list(self._pending)
        for value in required:
            if value not in self.string_table and value not in self._pending:
                additions.append(value)
                self._pending[value] = None
        if not additions:
            return
        current = self.string_table.strings
        if len(current) + len(additions) > self._config.max_table_size:
            LOGGER.debug(
                "string table would exceed %d entries; starting a fresh table",
                self._config.max_table_size,
            )
            table = tuple(dict.fromkeys((*required, *additions)))
        else:
            table = current + tuple(additions)
        self._pending.clear()
        self._install_table(table)


def create_writer(sink: BinaryIO, config: Optional[WriterConfig] = None) -> Writer:
    """Return a writer for *sink* with the header already written."""

    writer = Writer(sink, config)
    writer.write_header()
    return writer


def transcode(
    records: Iterable[Record],
    sink: BinaryIO,
    config: Optional[WriterConfig] = None,
    *,
    keep_string_tables: bool = True,
) -> Writer:
    """Re-encode decoded *records* under *config*.

    Headers are regenerated and every other record (unknown ones included) is
    written in its original order. With *keep_string_tables* the input's
    string tables are replayed where they appeared and automatic interning
    stops at the first of them, so re-encoding a stream reproduces its tables.
    Otherwise they are dropped and the writer builds its own.
    """

    writer = create_writer(sink, config)
    for record in records:
        if isinstance(record, Header):
            continue
        if isinstance(record, StringTableRecord):
            if keep_string_tables:
                writer.interning = False
                writer.write_string_table(record.strings)
            continue
        writer.write_record(record)
    writer.finish()
    return writer


__all__ = ["Writer", "create_writer", "transcode"]
