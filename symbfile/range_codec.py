"""``RangeV1`` payload codec.

Field numbers follow ``symbfile.proto``::

    oneof elfVA    { sint64 deltaElfVA = 1; uint64 setElfVA = 12; }
    uint64 length = 2;
    oneof func     { string funcStr = 3; uint32 funcRef = 9; }
    oneof file     { string fileStr = 4; uint32 fileRef = 10; }
    uint32 callLine = 5;
    oneof callFile { string callFileStr = 6; uint32 callFileRef = 11; }
    uint32 depth = 7;
    LineTable lineTable = 8;   // repeated uint32 offset = 1; lineNumber = 2;
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from .address import AbsoluteAddress, AddressField, AddressTracker, DeltaAddress
from .inline_tree import InlineScope
from .records import LineTable, Range
from .string_table import StringTable
from .varint import UINT32_MAX, UINT64_MAX
from .wire import WIRE_LEN, WIRE_VARINT, FieldWriter, WireField, collect_unknown, iter_fields

FIELD_DELTA_ELF_VA = 1
FIELD_LENGTH = 2
FIELD_FUNC_STR = 3
FIELD_FILE_STR = 4
FIELD_CALL_LINE = 5
FIELD_CALL_FILE_STR = 6
FIELD_DEPTH = 7
FIELD_LINE_TABLE = 8
FIELD_FUNC_REF = 9
FIELD_FILE_REF = 10
FIELD_CALL_FILE_REF = 11
FIELD_SET_ELF_VA = 12

LINE_TABLE_FIELD_OFFSET = 1
LINE_TABLE_FIELD_LINE_NUMBER = 2


@dataclass(frozen=True)
class StringLiteral:
    """String stored inline in the record."""

    value: str


@dataclass(frozen=True)
class StringRef:
    """Index into the string table current at this point of the stream."""

    index: int


StringField = Union[StringLiteral, StringRef]

# a zero callFile in either arm means the call happened in the parent's file
INHERIT_CALL_FILE = (StringRef(0), StringLiteral(""))


def resolve_string(field: StringField, strings: StringTable) -> str:
    if isinstance(field, StringLiteral):
        return field.value
    return strings.lookup(field.index)


def decode_address_arm(field: WireField, delta_number: int) -> AddressField:
    if field.number == delta_number:
        return DeltaAddress(field.as_sint64())
    return AbsoluteAddress(field.as_uint64())


def write_address_arm(
    writer: FieldWriter, address: AddressField, *, delta_number: int, set_number: int
) -> None:
    # a selected oneof arm is always written, even when its value is zero
    if isinstance(address, DeltaAddress):
        writer.sint64(delta_number, address.delta, always=True)
    else:
        writer.uint(set_number, address.value, always=True)


# ----------------------------------------------------------------------
# Wire messages


@dataclass(frozen=True)
class LineTableMessage:
    offsets: Tuple[int, ...] = ()
    line_numbers: Tuple[int, ...] = ()
    unknown_fields: bytes = b""

    def to_bytes(self) -> bytes:
        writer = FieldWriter()
        writer.packed_uint32(LINE_TABLE_FIELD_OFFSET, self.offsets)
        writer.packed_uint32(LINE_TABLE_FIELD_LINE_NUMBER, self.line_numbers)
        writer.raw(self.unknown_fields)
        return writer.to_bytes()

    @classmethod
    def from_bytes(cls, payload: bytes) -> "LineTableMessage":
        offsets: List[int] = []
        line_numbers: List[int] = []
        unknown: List[WireField] = []
        for field in iter_fields(payload):
            repeated = field.wire_type in (WIRE_VARINT, WIRE_LEN)
            if field.number == LINE_TABLE_FIELD_OFFSET and repeated:
                offsets.extend(field.iter_uint32())
            elif field.number == LINE_TABLE_FIELD_LINE_NUMBER and repeated:
                line_numbers.extend(field.iter_uint32())
            else:
                unknown.append(field)
        return cls(tuple(offsets), tuple(line_numbers), collect_unknown(unknown))


_STRING_ARMS = {
    FIELD_FUNC_STR: ("func", True),
    FIELD_FUNC_REF: ("func", False),
    FIELD_FILE_STR: ("file", True),
    FIELD_FILE_REF: ("file", False),
    FIELD_CALL_FILE_STR: ("call_file", True),
    FIELD_CALL_FILE_REF: ("call_file", False),
}


@dataclass(frozen=True)
class RangeMessage:
    """``RangeV1`` exactly as stored: oneof arms still unresolved."""

    elf_va: Optional[AddressField] = None
    length: int = 0
    func: Optional[StringField] = None
    file: Optional[StringField] = None
    call_line: int = 0
    call_file: Optional[StringField] = None
    depth: int = 0
    line_table: Optional[LineTableMessage] = None
    unknown_fields: bytes = b""

    def to_bytes(self) -> bytes:
        writer = FieldWriter()
        if self.elf_va is not None:
            write_address_arm(
                writer, self.elf_va, delta_number=FIELD_DELTA_ELF_VA, set_number=FIELD_SET_ELF_VA
            )
        writer.uint(FIELD_LENGTH, self.length)
        _write_string_arm(writer, self.func, FIELD_FUNC_STR, FIELD_FUNC_REF)
        _write_string_arm(writer, self.file, FIELD_FILE_STR, FIELD_FILE_REF)
        writer.uint(FIELD_CALL_LINE, self.call_line)
        _write_string_arm(writer, self.call_file, FIELD_CALL_FILE_STR, FIELD_CALL_FILE_REF)
        writer.uint(FIELD_DEPTH, self.depth)
        if self.line_table is not None:
            writer.bytes_field(FIELD_LINE_TABLE, self.line_table.to_bytes())
        writer.raw(self.unknown_fields)
        return writer.to_bytes()

    @classmethod
    def from_bytes(cls, payload: bytes) -> "RangeMessage":
        values: dict = {}
        unknown: List[WireField] = []
        for field in iter_fields(payload):
            number = field.number
            if number in (FIELD_DELTA_ELF_VA, FIELD_SET_ELF_VA) and field.wire_type == WIRE_VARINT:
                values["elf_va"] = decode_address_arm(field, FIELD_DELTA_ELF_VA)
            elif number == FIELD_LENGTH and field.wire_type == WIRE_VARINT:
                values["length"] = field.as_uint64()
            elif number == FIELD_CALL_LINE and field.wire_type == WIRE_VARINT:
                values["call_line"] = field.as_uint32()
            elif number == FIELD_DEPTH and field.wire_type == WIRE_VARINT:
                values["depth"] = field.as_uint32()
            elif number == FIELD_LINE_TABLE and field.wire_type == WIRE_LEN:
                values["line_table"] = LineTableMessage.from_bytes(field.as_bytes())
            elif number in _STRING_ARMS:
                name, literal = _STRING_ARMS[number]
                if literal and field.wire_type == WIRE_LEN:
                    values[name] = StringLiteral(field.as_string())
                elif not literal and field.wire_type == WIRE_VARINT:
                    values[name] = StringRef(field.as_uint32())
                else:
                    unknown.append(field)
            else:
                unknown.append(field)
        return cls(unknown_fields=collect_unknown(unknown), **values)


def _write_string_arm(
    writer: FieldWriter, value: Optional[StringField], literal_number: int, ref_number: int
) -> None:
    if value is None:
        return
    if isinstance(value, StringLiteral):
        writer.string(literal_number, value.value, always=True)
    else:
        writer.uint(ref_number, value.index, always=True)


# ----------------------------------------------------------------------
# Record conversion


def decode_range(
    message: RangeMessage,
    *,
    addresses: AddressTracker,
    strings: StringTable,
    scope: Optional[InlineScope] = None,
) -> Range:
    """Resolve *message* against the stream state into a :class:`Range`.

    When *scope* is given the record is pushed onto it, and a record whose
    call file is absent, ref 0 or an empty literal picks up the file of its enclosing range as ``parent_file``.
    """

    elf_va = addresses.resolve(message.elf_va or DeltaAddress(0))
    func = resolve_string(message.func, strings) if message.func is not None else ""
    file = resolve_string(message.file, strings) if message.file is not None else ""
    call_file_arm = message.call_file
    if call_file_arm in INHERIT_CALL_FILE:
        call_file_arm = None
    call_file = resolve_string(call_file_arm, strings) if call_file_arm is not None else None
    table = message.line_table or LineTableMessage()
    line_table = LineTable.from_offsets(elf_va, table.offsets, table.line_numbers)
    parent_file = None
    if call_file is None and scope is not None:
        parent = scope.parent_of(elf_va, message.length, message.depth)
        if parent is not None:
            parent_file = parent.file
    record = Range(
        elf_va=elf_va,
        length=message.length,
        func=func,
        file=file,
        call_line=message.call_line,
        call_file=call_file,
        depth=message.depth,
        line_table=line_table,
        parent_file=parent_file,
        unknown_fields=message.unknown_fields,
    )
    if scope is not None:
        scope.push(record)
    return record


def encode_range(
    record: Range,
    *,
    address: AddressField,
    string_field: Callable[[str], StringField],
) -> RangeMessage:
    """Build the wire message for *record*.

    *address* is the already chosen elfVA arm and *string_field* decides
    between a literal and a table reference for each string.
    """

    line_table = validate_range(record)
    call_file = None
    if record.call_file:
        call_file = string_field(record.call_file)
        if call_file in INHERIT_CALL_FILE:
            # index 0 would read back as "same file as the parent"
            call_file = StringLiteral(record.call_file)
    return RangeMessage(
        elf_va=address,
        length=record.length,
        func=string_field(record.func) if record.func else None,
        file=string_field(record.file) if record.file else None,
        call_line=record.call_line,
        call_file=call_file,
        depth=record.depth,
        line_table=line_table,
        unknown_fields=record.unknown_fields,
    )


def validate_range(record: Range) -> Optional[LineTableMessage]:
    """Reject values *record* cannot carry on the wire.

    Returns the encoded line table, or ``None`` when the range has none.
    """

    if not 0 <= record.elf_va <= UINT64_MAX or not 0 <= record.length <= UINT64_MAX:
        raise ValueError("elf_va and length must fit 64 bits")
    if not 0 <= record.call_line <= UINT32_MAX or not 0 <= record.depth <= UINT32_MAX:
        raise ValueError("call_line and depth must fit 32 bits")
    for value in (record.func, record.file, record.call_file or ""):
        value.encode("utf-8")
    if not record.line_table.rows:
        return None
    offsets, line_numbers = record.line_table.to_offsets(record.elf_va)
    return LineTableMessage(offsets, line_numbers)


__all__ = [
    "LineTableMessage",
    "RangeMessage",
    "StringField",
    "StringLiteral",
    "StringRef",
    "decode_range",
    "encode_range",
    "resolve_string",
    "validate_range",
]
