"""Resource budgeting helpers for decoding untrusted symbfiles."""

from __future__ import annotations

from dataclasses import dataclass


class ResourceBudgetExceeded(RuntimeError):
    """Raised when a stream exceeds configured resource limits."""


@dataclass(frozen=True)
class DecodeBudget:
    """Declarative limits applied while reading a stream."""

    max_payload_bytes: int = 64_000_000
    max_string_table_entries: int = 10_000_000
    max_line_table_rows: int = 1_000_000
    max_inline_depth: int = 4096

    def ensure_payload_bytes(self, size: int) -> None:
        if size > self.max_payload_bytes:
            raise ResourceBudgetExceeded(
                f"payload of {size} bytes exceeds budgeted maximum {self.max_payload_bytes}"
            )

    def ensure_string_table(self, count: int) -> None:
        if count > self.max_string_table_entries:
            raise ResourceBudgetExceeded(
                f"string table with {count} entries exceeds budgeted maximum "
                f"{self.max_string_table_entries}"
            )

    def ensure_line_table(self, rows: int) -> None:
        if rows > self.max_line_table_rows:
            raise ResourceBudgetExceeded(
                f"line table with {rows} rows exceeds budgeted maximum {self.max_line_table_rows}"
            )

    def ensure_inline_depth(self, depth: int) -> None:
        if depth > self.max_inline_depth:
            raise ResourceBudgetExceeded(
                f"inline depth {depth} exceeds budgeted maximum {self.max_inline_depth}"
            )


__all__ = ["DecodeBudget", "ResourceBudgetExceeded"]
