"""Exception hierarchy shared by the symbfile reader and writer."""

from __future__ import annotations

from typing import Optional


class SymbfileError(Exception):
    """Base class for every error raised by the symbfile codec."""

    def __init__(self, message: str, *, offset: Optional[int] = None) -> None:
        self.message = message
        self.offset = offset
        super().__init__(self._render())

    def _render(self) -> str:
        if self.offset is None:
            return self.message
        return f"{self.message} (at byte offset {self.offset})"

    def at_offset(self, offset: int) -> "SymbfileError":
        """Attach *offset* unless a more precise one is already known."""

        if self.offset is None:
            self.offset = offset
            self.args = (self._render(),)
        return self


# ----------------------------------------------------------------------
# Stream level failures. The stream cannot be read any further.


class FormatError(SymbfileError, ValueError):
    """Raised when the byte stream itself is malformed."""


class BadMagic(FormatError):
    """Raised when the stream does not start with the ``symbfile`` preamble."""


class MalformedVarint(FormatError):
    """Raised when a varint is longer or wider than its declared width."""


class TruncatedRecord(FormatError):
    """Raised when the stream ends inside a frame."""


class PayloadTooLarge(FormatError):
    """Raised when a payload length does not fit the 32-bit length prefix."""


class MissingHeader(FormatError):
    """Raised when the first record of a stream is not a header."""


# ----------------------------------------------------------------------
# Record level failures. The frame was consumed, its content is unusable.


class SemanticError(SymbfileError, ValueError):
    """Raised when a well-framed record cannot be decoded."""


class MalformedPayload(SemanticError):
    """Raised when a known payload violates the wire encoding."""


class StringIndexOutOfRange(SemanticError, IndexError):
    """Raised when a string reference points past the current table."""


class LineTableLengthMismatch(SemanticError):
    """Raised when line table offsets and line numbers differ in length."""


class ColumnLengthMismatch(SemanticError):
    """Raised when return pad columns differ in length."""


class AddressUnderflow(SemanticError):
    """Raised when a negative delta moves the address cursor below zero."""


class AddressOverflow(SemanticError):
    """Raised when a delta moves the address cursor past 64 bits."""


class MissingBaseAddress(SemanticError):
    """Raised when a delta address appears before any absolute address."""


# ----------------------------------------------------------------------
# Writer misuse.


class WriterStateError(SymbfileError, RuntimeError):
    """Raised when writer calls arrive in an order the format cannot express."""


__all__ = [
    "SymbfileError",
    "FormatError",
    "BadMagic",
    "MalformedVarint",
    "TruncatedRecord",
    "PayloadTooLarge",
    "MissingHeader",
    "SemanticError",
    "MalformedPayload",
    "StringIndexOutOfRange",
    "LineTableLengthMismatch",
    "ColumnLengthMismatch",
    "AddressUnderflow",
    "AddressOverflow",
    "MissingBaseAddress",
    "WriterStateError",
]
