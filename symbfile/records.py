"""Decoded record types produced by the reader and consumed by the writer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple, Union

from .errors import ColumnLengthMismatch, LineTableLengthMismatch
from .format import MessageType
from .varint import UINT32_MAX


@dataclass(frozen=True)
class LineTableRow:
    """A source line that starts at an absolute address."""

    address: int
    line: int


@dataclass(frozen=True)
class LineMapping:
    """Half-open address interval ``[start, end)`` attributed to ``line``."""

    start: int
    end: int
    line: int


@dataclass(frozen=True)
class LineTable:
    """Line table of a range, with offsets already resolved to addresses."""

    rows: Tuple[LineTableRow, ...] = ()

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[LineTableRow]:
        return iter(self.rows)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, int]]) -> "LineTable":
        return cls(tuple(LineTableRow(address, line) for address, line in pairs))

    @classmethod
    def from_offsets(
        cls, base: int, offsets: Sequence[int], line_numbers: Sequence[int]
    ) -> "LineTable":
        """Rebuild rows from the wire form.

        The first offset is relative to *base*, every later offset is relative
        to the one before it.
        """

        if len(offsets) != len(line_numbers):
            raise LineTableLengthMismatch(
                f"line table has {len(offsets)} offsets but {len(line_numbers)} line numbers"
            )
        rows = []
        address = base
        for offset, line in zip(offsets, line_numbers):
            address += offset
            rows.append(LineTableRow(address, line))
        return cls(tuple(rows))

    def to_offsets(self, base: int) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        """Return ``(offsets, line_numbers)`` in wire form relative to *base*."""

        offsets = []
        lines = []
        previous = base
        for position, row in enumerate(self.rows):
            delta = row.address - previous
            if delta < 0 or (position and delta == 0):
                raise ValueError(
                    f"line table address {row.address:#x} does not follow {previous:#x}"
                )
            if delta > UINT32_MAX:
                raise ValueError(f"line table offset {delta:#x} does not fit 32 bits")
            if not 0 <= row.line <= UINT32_MAX:
                raise ValueError(f"line number {row.line} does not fit 32 bits")
            offsets.append(delta)
            lines.append(row.line)
            previous = row.address
        return tuple(offsets), tuple(lines)

    def mappings(self, end: int) -> Tuple[LineMapping, ...]:
        """Return the address intervals covered by each row up to *end*."""

        out = []
        for position, row in enumerate(self.rows):
            if position + 1 < len(self.rows):
                stop = self.rows[position + 1].address
            else:
                stop = end
            out.append(LineMapping(row.address, stop, row.line))
        return tuple(out)

    def line_for(self, address: int, end: int) -> Optional[int]:
        for mapping in self.mappings(end):
            if mapping.start <= address < mapping.end:
                return mapping.line
        return None


@dataclass(frozen=True)
class Header:
    """Stream header. Currently carries no fields."""

    unknown_fields: bytes = field(default=b"", compare=False, repr=False)

    message_type = MessageType.HEADER

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "header"}


@dataclass(frozen=True)
class Range:
    """One node of a flattened inline function tree."""

    elf_va: int
    length: int
    func: str
    file: str
    call_line: int = 0
    # ``None`` means the call happened in the parent range's file; an empty
    # string is written the same way
    call_file: Optional[str] = None
    depth: int = 0
    line_table: LineTable = field(default_factory=LineTable)
    parent_file: Optional[str] = field(default=None, compare=False)
    unknown_fields: bytes = field(default=b"", compare=False, repr=False)

    message_type = MessageType.RANGE_V1

    @property
    def end(self) -> int:
        return self.elf_va + self.length

    @property
    def effective_call_file(self) -> Optional[str]:
        if self.call_file is not None:
            return self.call_file
        return self.parent_file

    def contains(self, other: "Range") -> bool:
        return self.elf_va <= other.elf_va and other.end <= self.end

    def line_mappings(self) -> Tuple[LineMapping, ...]:
        return self.line_table.mappings(self.end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "range",
            "elf_va": self.elf_va,
            "length": self.length,
            "func": self.func,
            "file": self.file,
            "call_line": self.call_line,
            "call_file": self.effective_call_file,
            "depth": self.depth,
            "line_table": [[row.address, row.line] for row in self.line_table],
        }


@dataclass(frozen=True)
class InlineFrame:
    func: str
    file: str
    line: int


@dataclass(frozen=True)
class ReturnPad:
    """Inline stack at a call-return address, stored column by column.

    Index 0 is the outermost function. ``lines[i]`` is the call line at depth
    ``i`` except for the last entry, which is the line of the return pad itself.
    """

    elf_va: int
    functions: Tuple[str, ...] = ()
    files: Tuple[str, ...] = ()
    lines: Tuple[int, ...] = ()
    unknown_fields: bytes = field(default=b"", compare=False, repr=False)

    message_type = MessageType.RETURN_PAD_V1

    def __post_init__(self) -> None:
        if not len(self.functions) == len(self.files) == len(self.lines):
            raise ColumnLengthMismatch(
                "return pad columns differ in length: "
                f"func={len(self.functions)} file={len(self.files)} line={len(self.lines)}"
            )

    @classmethod
    def from_frames(cls, elf_va: int, frames: Iterable[InlineFrame]) -> "ReturnPad":
        frames = tuple(frames)
        return cls(
            elf_va=elf_va,
            functions=tuple(frame.func for frame in frames),
            files=tuple(frame.file for frame in frames),
            lines=tuple(frame.line for frame in frames),
        )

    @property
    def frames(self) -> Tuple[InlineFrame, ...]:
        return tuple(
            InlineFrame(func, file, line)
            for func, file, line in zip(self.functions, self.files, self.lines)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "return_pad",
            "elf_va": self.elf_va,
            "func": list(self.functions),
            "file": list(self.files),
            "line": list(self.lines),
        }


@dataclass(frozen=True)
class StringTableRecord:
    """Replacement string table, already installed by the reader."""

    strings: Tuple[str, ...] = ()
    unknown_fields: bytes = field(default=b"", compare=False, repr=False)

    message_type = MessageType.STRING_TABLE_V1

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "string_table", "strings": list(self.strings)}


@dataclass(frozen=True)
class UnknownRecord:
    """Frame of a message type this reader does not understand."""

    message_type: int
    payload: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "unknown",
            "message_type": self.message_type,
            "payload": self.payload.hex(),
        }


Record = Union[Header, Range, ReturnPad, StringTableRecord, UnknownRecord]


__all__ = [
    "Header",
    "InlineFrame",
    "LineMapping",
    "LineTable",
    "LineTableRow",
    "Range",
    "Record",
    "ReturnPad",
    "StringTableRecord",
    "UnknownRecord",
]
