"""Aggregate statistics over a decoded record stream."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Set

from .records import Header, Range, Record, ReturnPad, StringTableRecord, UnknownRecord


@dataclass
class StreamSummary:
    record_counts: Counter[str] = field(default_factory=Counter)
    unknown_types: Counter[int] = field(default_factory=Counter)
    string_table_swaps: int = 0
    largest_string_table: int = 0
    lowest_address: Optional[int] = None
    highest_address: Optional[int] = None
    max_inline_depth: int = 0
    line_table_rows: int = 0
    functions: Set[str] = field(default_factory=set)

    def observe(self, record: Record) -> None:
        if isinstance(record, Header):
            self.record_counts["header"] += 1
        elif isinstance(record, StringTableRecord):
            self.record_counts["string_table"] += 1
            self.string_table_swaps += 1
            self.largest_string_table = max(self.largest_string_table, len(record.strings))
        elif isinstance(record, Range):
            self.record_counts["range"] += 1
            self._observe_span(record.elf_va, record.end)
            self.max_inline_depth = max(self.max_inline_depth, record.depth)
            self.line_table_rows += len(record.line_table)
            self.functions.add(record.func)
        elif isinstance(record, ReturnPad):
            self.record_counts["return_pad"] += 1
            self._observe_span(record.elf_va, record.elf_va + 1)
            if record.functions:
                self.max_inline_depth = max(self.max_inline_depth, len(record.functions) - 1)
            self.functions.update(record.functions)
        elif isinstance(record, UnknownRecord):
            self.record_counts["unknown"] += 1
            self.unknown_types[record.message_type] += 1

    def _observe_span(self, start: int, end: int) -> None:
        if self.lowest_address is None or start < self.lowest_address:
            self.lowest_address = start
        if self.highest_address is None or end > self.highest_address:
            self.highest_address = end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "records": dict(sorted(self.record_counts.items())),
            "unknown_types": {str(key): value for key, value in sorted(self.unknown_types.items())},
            "string_table_swaps": self.string_table_swaps,
            "largest_string_table": self.largest_string_table,
            "address_span": (
                None
                if self.lowest_address is None
                else [hex(self.lowest_address), hex(self.highest_address or 0)]
            ),
            "max_inline_depth": self.max_inline_depth,
            "line_table_rows": self.line_table_rows,
            "distinct_functions": len(self.functions),
        }


def summarise(records: Iterable[Record]) -> StreamSummary:
    summary = StreamSummary()
    for record in records:
        summary.observe(record)
    return summary


__all__ = ["StreamSummary", "summarise"]
