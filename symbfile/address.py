"""Delta-or-absolute ELF virtual address resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from .errors import AddressOverflow, AddressUnderflow, MissingBaseAddress
from .varint import INT64_MAX, INT64_MIN, UINT64_MAX


@dataclass(frozen=True)
class AbsoluteAddress:
    """``setElfVA`` arm: replaces the cursor."""

    value: int


@dataclass(frozen=True)
class DeltaAddress:
    """``deltaElfVA`` arm: offset from the previous record's address."""

    delta: int


AddressField = Union[AbsoluteAddress, DeltaAddress]


class AddressTracker:
    """Holds the last resolved address of a single stream traversal."""

    def __init__(self, *, allow_delta_without_base: bool = False) -> None:
        self.cursor: Optional[int] = None
        self._allow_delta_without_base = allow_delta_without_base

    def reset(self) -> None:
        self.cursor = None

    def resolve(self, field: AddressField) -> int:
        """Apply *field* to the cursor and return the absolute address."""

        if isinstance(field, AbsoluteAddress):
            if not 0 <= field.value <= UINT64_MAX:
                raise AddressOverflow(f"absolute address {field.value:#x} exceeds 64 bits")
            self.cursor = field.value
            return field.value
        if isinstance(field, DeltaAddress):
            base = self.cursor
            if base is None:
                if not self._allow_delta_without_base:
                    raise MissingBaseAddress(
                        "delta address appears before any absolute address"
                    )
                base = 0
            address = base + field.delta
            if address < 0:
                raise AddressUnderflow(
                    f"delta {field.delta} moves address {base:#x} below zero"
                )
            if address > UINT64_MAX:
                raise AddressOverflow(
                    f"delta {field.delta} moves address {base:#x} past 64 bits"
                )
            self.cursor = address
            return address
        raise TypeError(f"unsupported address field {field!r}")

    def encode(self, address: int, *, force_absolute: bool = False) -> AddressField:
        """Choose the wire form for *address* and advance the cursor."""

        if not 0 <= address <= UINT64_MAX:
            raise ValueError(f"address {address:#x} is not a 64-bit unsigned value")
        field: AddressField
        if force_absolute or self.cursor is None:
            field = AbsoluteAddress(address)
        else:
            delta = address - self.cursor
            if INT64_MIN <= delta <= INT64_MAX:
                field = DeltaAddress(delta)
            else:
                field = AbsoluteAddress(address)
        self.cursor = address
        return field


__all__ = ["AbsoluteAddress", "DeltaAddress", "AddressField", "AddressTracker"]
