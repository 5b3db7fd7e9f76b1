"""``ReturnPadV1`` payload codec.

Field numbers follow ``symbfile.proto``::

    oneof elfVA { sint64 deltaElfVA = 1; uint64 setElfVA = 5; }
    repeated uint32 func = 2;   // string table references
    repeated uint32 file = 3;   // string table references
    repeated uint32 line = 4;

The schema has no literal arm for return pads. Anything else that shows up in
the payload, such as a column sent with a fixed-width wire type, is kept as an
unknown field and otherwise ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .address import AddressField, AddressTracker, DeltaAddress
from .errors import ColumnLengthMismatch
from .range_codec import decode_address_arm, write_address_arm
from .records import ReturnPad
from .string_table import StringTable
from .varint import UINT32_MAX, UINT64_MAX
from .wire import WIRE_LEN, WIRE_VARINT, FieldWriter, WireField, collect_unknown, iter_fields

FIELD_DELTA_ELF_VA = 1
FIELD_FUNC = 2
FIELD_FILE = 3
FIELD_LINE = 4
FIELD_SET_ELF_VA = 5

_COLUMNS = {FIELD_FUNC: "func", FIELD_FILE: "file", FIELD_LINE: "line"}


@dataclass(frozen=True)
class ReturnPadMessage:
    """``ReturnPadV1`` exactly as stored, columns still holding indices."""

    elf_va: Optional[AddressField] = None
    func: Tuple[int, ...] = ()
    file: Tuple[int, ...] = ()
    line: Tuple[int, ...] = ()
    unknown_fields: bytes = b""

    def to_bytes(self) -> bytes:
        writer = FieldWriter()
        if self.elf_va is not None:
            write_address_arm(
                writer, self.elf_va, delta_number=FIELD_DELTA_ELF_VA, set_number=FIELD_SET_ELF_VA
            )
        writer.packed_uint32(FIELD_FUNC, self.func)
        writer.packed_uint32(FIELD_FILE, self.file)
        writer.packed_uint32(FIELD_LINE, self.line)
        writer.raw(self.unknown_fields)
        return writer.to_bytes()

    @classmethod
    def from_bytes(cls, payload: bytes) -> "ReturnPadMessage":
        elf_va: Optional[AddressField] = None
        columns: dict = {name: [] for name in _COLUMNS.values()}
        unknown: List[WireField] = []
        for field in iter_fields(payload):
            number = field.number
            if number in (FIELD_DELTA_ELF_VA, FIELD_SET_ELF_VA) and field.wire_type == WIRE_VARINT:
                elf_va = decode_address_arm(field, FIELD_DELTA_ELF_VA)
            elif number in _COLUMNS and field.wire_type in (WIRE_VARINT, WIRE_LEN):
                columns[_COLUMNS[number]].extend(field.iter_uint32())
            else:
                unknown.append(field)
        return cls(
            elf_va=elf_va,
            func=tuple(columns["func"]),
            file=tuple(columns["file"]),
            line=tuple(columns["line"]),
            unknown_fields=collect_unknown(unknown),
        )


def decode_return_pad(
    message: ReturnPadMessage, *, addresses: AddressTracker, strings: StringTable
) -> ReturnPad:
    elf_va = addresses.resolve(message.elf_va or DeltaAddress(0))
    if not len(message.func) == len(message.file) == len(message.line):
        raise ColumnLengthMismatch(
            "return pad columns differ in length: "
            f"func={len(message.func)} file={len(message.file)} line={len(message.line)}"
        )
    return ReturnPad(
        elf_va=elf_va,
        functions=tuple(strings.lookup(index) for index in message.func),
        files=tuple(strings.lookup(index) for index in message.file),
        lines=message.line,
        unknown_fields=message.unknown_fields,
    )


def encode_return_pad(
    record: ReturnPad, *, address: AddressField, string_index: Callable[[str], int]
) -> ReturnPadMessage:
    """Build the wire message; every string must already be in the table."""

    validate_return_pad(record)
    return ReturnPadMessage(
        elf_va=address,
        func=tuple(string_index(value) for value in record.functions),
        file=tuple(string_index(value) for value in record.files),
        line=tuple(record.lines),
        unknown_fields=record.unknown_fields,
    )


def validate_return_pad(record: ReturnPad) -> None:
    if not 0 <= record.elf_va <= UINT64_MAX:
        raise ValueError(f"address {record.elf_va:#x} is not a 64-bit unsigned value")
    for line in record.lines:
        if not 0 <= line <= UINT32_MAX:
            raise ValueError(f"line {line} does not fit 32 bits")
    for value in (*record.functions, *record.files):
        value.encode("utf-8")


__all__ = ["ReturnPadMessage", "decode_return_pad", "encode_return_pad", "validate_return_pad"]
