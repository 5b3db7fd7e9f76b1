"""The currently active interned string table."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Tuple

from .errors import StringIndexOutOfRange
from .wire import WIRE_LEN, FieldWriter, WireField, collect_unknown, iter_fields

STRING_TABLE_FIELD_STRINGS = 1


class StringTable:
    """Ordered strings addressed by index, swapped wholesale on replacement.

    Readers replace the table whenever a ``StringTableV1`` record is decoded;
    writers keep a mirror of what they last emitted. Nothing is merged: a
    replacement discards every previous entry.
    """

    def __init__(self, strings: Iterable[str] = ()) -> None:
        self._strings: Tuple[str, ...] = ()
        self._index: Dict[str, int] = {}
        self.generation = 0
        self._install(strings)

    def _install(self, strings: Iterable[str]) -> None:
        self._strings = tuple(strings)
        index: Dict[str, int] = {}
        for position, value in enumerate(self._strings):
            # first occurrence wins so lookups stay stable for duplicates
            index.setdefault(value, position)
        self._index = index

    # ------------------------------------------------------------------
    # Mutation

    def replace(self, strings: Iterable[str]) -> None:
        self._install(strings)
        self.generation += 1

    # ------------------------------------------------------------------
    # Lookup helpers

    def __len__(self) -> int:
        return len(self._strings)

    def __iter__(self) -> Iterator[str]:
        return iter(self._strings)

    def __contains__(self, value: object) -> bool:
        return value in self._index

    @property
    def strings(self) -> Tuple[str, ...]:
        return self._strings

    def lookup(self, index: int) -> str:
        if not 0 <= index < len(self._strings):
            raise StringIndexOutOfRange(
                f"string index {index} out of range for table of {len(self._strings)} entries"
            )
        return self._strings[index]

    def index_for(self, value: str) -> int:
        try:
            return self._index[value]
        except KeyError as exc:
            raise KeyError(f"{value!r} is not present in the string table") from exc


# ----------------------------------------------------------------------
# StringTableV1 payloads: ``repeated string strings = 1;``


def encode_string_table_payload(strings: Iterable[str], unknown_fields: bytes = b"") -> bytes:
    writer = FieldWriter()
    writer.repeated_string(STRING_TABLE_FIELD_STRINGS, strings)
    writer.raw(unknown_fields)
    return writer.to_bytes()


def decode_string_table_payload(payload: bytes) -> Tuple[Tuple[str, ...], bytes]:
    """Return ``(strings, unknown_fields)`` from a ``StringTableV1`` payload."""

    strings: List[str] = []
    unknown: List[WireField] = []
    for field in iter_fields(payload):
        if field.number == STRING_TABLE_FIELD_STRINGS and field.wire_type == WIRE_LEN:
            strings.append(field.as_string())
        else:
            unknown.append(field)
    return tuple(strings), collect_unknown(unknown)


__all__ = ["StringTable", "decode_string_table_payload", "encode_string_table_payload"]
