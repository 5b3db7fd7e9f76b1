"""Writer policy presets and reader options."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict

from .resource_limits import DecodeBudget

ADDRESS_MODES = ("delta", "absolute")


@dataclass(frozen=True)
class WriterConfig:
    """Policy knobs of the writer. None of them affect the wire contract.

    ``intern_threshold`` is the number of times a range string has to be seen
    before it moves into the string table (0 keeps range strings literal).
    Interned strings are published once ``table_flush_batch`` of them are
    queued; a table that would grow past ``max_table_size`` is swapped for a
    fresh one.
    """

    mode: str
    intern_threshold: int = 2
    table_flush_batch: int = 64
    max_table_size: int = 65536
    address_mode: str = "delta"
    description: str = ""

    def __post_init__(self) -> None:
        if self.intern_threshold < 0:
            raise ValueError("intern_threshold cannot be negative")
        if self.table_flush_batch <= 0:
            raise ValueError("table_flush_batch must be positive")
        if self.max_table_size <= 0:
            raise ValueError("max_table_size must be positive")
        if self.address_mode not in ADDRESS_MODES:
            raise ValueError(
                f"address_mode must be one of {', '.join(ADDRESS_MODES)}, got {self.address_mode!r}"
            )

    @property
    def interning_enabled(self) -> bool:
        return self.intern_threshold > 0

    def with_options(self, **changes: Any) -> "WriterConfig":
        return replace(self, **changes)


_PRESET_MODES: Dict[str, WriterConfig] = {
    "balanced": WriterConfig(
        mode="balanced",
        intern_threshold=2,
        table_flush_batch=64,
        max_table_size=65536,
        address_mode="delta",
        description="Intern repeated strings in batches and delta-code addresses.",
    ),
    "compact": WriterConfig(
        mode="compact",
        intern_threshold=1,
        table_flush_batch=1,
        max_table_size=1 << 20,
        address_mode="delta",
        description="Intern every string as soon as it is seen.",
    ),
    "literal": WriterConfig(
        mode="literal",
        intern_threshold=0,
        table_flush_batch=64,
        max_table_size=65536,
        address_mode="delta",
        description="Keep range strings inline; only return pads use the table.",
    ),
    "debug": WriterConfig(
        mode="debug",
        intern_threshold=0,
        table_flush_batch=64,
        max_table_size=65536,
        address_mode="absolute",
        description="Inline strings and absolute addresses for hex-dump inspection.",
    ),
}


def get_writer_config(mode: str | None) -> WriterConfig:
    if mode is None:
        return _PRESET_MODES["balanced"]
    try:
        return _PRESET_MODES[mode]
    except KeyError as exc:
        raise ValueError(f"Unknown writer mode: {mode}") from exc


def available_modes() -> Dict[str, str]:
    return {name: config.description for name, config in _PRESET_MODES.items()}


@dataclass(frozen=True)
class ReaderOptions:
    """Reader behaviour for streams from less careful producers."""

    require_header: bool = True
    allow_delta_without_base: bool = False
    budget: DecodeBudget = field(default_factory=DecodeBudget)


__all__ = [
    "ADDRESS_MODES",
    "ReaderOptions",
    "WriterConfig",
    "available_modes",
    "get_writer_config",
]
