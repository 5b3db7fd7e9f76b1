import io

import pytest

from symbfile.errors import MalformedVarint, TruncatedRecord
from symbfile.varint import (
    INT64_MAX,
    INT64_MIN,
    UINT32_MAX,
    decode_varint32,
    decode_varint64,
    encode_varint32,
    encode_varint64,
    read_varint32,
    zigzag_decode,
    zigzag_encode,
)


@pytest.mark.parametrize(
    "value, encoded",
    [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
        (UINT32_MAX, b"\xff\xff\xff\xff\x0f"),
    ],
)
def test_varint32_known_encodings(value: int, encoded: bytes) -> None:
    assert encode_varint32(value) == encoded
    assert decode_varint32(encoded) == (value, len(encoded))


def test_varint32_rejects_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        encode_varint32(UINT32_MAX + 1)
    with pytest.raises(ValueError):
        encode_varint32(-1)


def test_varint64_uses_up_to_ten_bytes() -> None:
    encoded = encode_varint64((1 << 64) - 1)
    assert len(encoded) == 10
    assert decode_varint64(encoded) == ((1 << 64) - 1, 10)


def test_decode_varint32_honours_offset() -> None:
    buffer = b"\xff" + encode_varint32(300) + b"\x00"
    assert decode_varint32(buffer, 1) == (300, 3)


def test_decode_varint32_rejects_sixth_byte() -> None:
    with pytest.raises(MalformedVarint):
        decode_varint32(b"\x80\x80\x80\x80\x80\x01")


def test_decode_varint32_rejects_values_wider_than_32_bits() -> None:
    # five bytes, but the last group sets bit 32
    with pytest.raises(MalformedVarint):
        decode_varint32(b"\xff\xff\xff\xff\x1f")


def test_decode_varint_in_buffer_rejects_unterminated_sequence() -> None:
    with pytest.raises(MalformedVarint) as excinfo:
        decode_varint32(b"\x80\x80", 0)
    assert excinfo.value.offset == 0


def test_read_varint32_returns_none_at_clean_eof() -> None:
    assert read_varint32(io.BytesIO(b"")) is None


def test_read_varint32_reports_bytes_consumed() -> None:
    handle = io.BytesIO(b"\xac\x02\x05")
    assert read_varint32(handle) == (300, 2)
    assert read_varint32(handle) == (5, 1)
    assert read_varint32(handle) is None


def test_read_varint32_truncated_mid_sequence() -> None:
    with pytest.raises(TruncatedRecord) as excinfo:
        read_varint32(io.BytesIO(b"\x80\x80"), offset=10)
    assert excinfo.value.offset == 12


def test_read_varint32_stops_after_five_bytes() -> None:
    handle = io.BytesIO(b"\x80\x80\x80\x80\x80\x80\x01")
    with pytest.raises(MalformedVarint):
        read_varint32(handle)
    # the sixth byte is never consumed
    assert handle.tell() == 5


@pytest.mark.parametrize(
    "value, encoded",
    [(0, 0), (-1, 1), (1, 2), (-2, 3), (INT64_MAX, (1 << 64) - 2), (INT64_MIN, (1 << 64) - 1)],
)
def test_zigzag_mapping(value: int, encoded: int) -> None:
    assert zigzag_encode(value) == encoded
    assert zigzag_decode(encoded) == value


def test_zigzag_rejects_values_outside_int64() -> None:
    with pytest.raises(ValueError):
        zigzag_encode(INT64_MAX + 1)
