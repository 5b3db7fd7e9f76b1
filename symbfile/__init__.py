"""Public API for the symbfile stream reader and writer."""

from __future__ import annotations

from .config import ReaderOptions, WriterConfig, available_modes, get_writer_config
from .errors import FormatError, SemanticError, SymbfileError, WriterStateError
from .format import MAGIC, MessageType
from .inline_tree import InlineNode, build_inline_tree
from .reader import Reader, iter_path, open_reader
from .records import (
    Header,
    InlineFrame,
    LineTable,
    LineTableRow,
    Range,
    Record,
    ReturnPad,
    StringTableRecord,
    UnknownRecord,
)
from .resource_limits import DecodeBudget, ResourceBudgetExceeded
from .summary import StreamSummary, summarise
from .writer import Writer, create_writer, transcode

__all__ = [
    "MAGIC",
    "MessageType",
    "Reader",
    "open_reader",
    "iter_path",
    "Writer",
    "create_writer",
    "transcode",
    "ReaderOptions",
    "WriterConfig",
    "available_modes",
    "get_writer_config",
    "DecodeBudget",
    "ResourceBudgetExceeded",
    "Header",
    "Range",
    "ReturnPad",
    "StringTableRecord",
    "UnknownRecord",
    "Record",
    "LineTable",
    "LineTableRow",
    "InlineFrame",
    "InlineNode",
    "build_inline_tree",
    "StreamSummary",
    "summarise",
    "SymbfileError",
    "FormatError",
    "SemanticError",
    "WriterStateError",
]
