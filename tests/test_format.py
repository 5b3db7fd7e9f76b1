import io

import pytest

from symbfile.errors import BadMagic, PayloadTooLarge, TruncatedRecord
from symbfile.format import (
    MAGIC,
    Frame,
    FrameReader,
    MessageType,
    encode_frame,
    write_frame,
    write_magic,
)
from symbfile.resource_limits import DecodeBudget, ResourceBudgetExceeded


def _stream(*frames: bytes) -> bytes:
    return MAGIC + b"".join(frames)


def test_encode_frame_layout() -> None:
    assert encode_frame(MessageType.HEADER, b"") == b"\x00\x01"
    assert encode_frame(MessageType.RANGE_V1, b"abc") == b"\x03\x02abc"


def test_write_helpers_report_sizes() -> None:
    sink = io.BytesIO()
    assert write_magic(sink) == 8
    assert write_frame(sink, MessageType.STRING_TABLE_V1, b"\x0a\x01a") == 5
    assert sink.getvalue() == b"symbfile\x03\x04\x0a\x01a"


def test_frame_reader_yields_frames_with_offsets() -> None:
    data = _stream(encode_frame(1, b""), encode_frame(2, b"xy"), encode_frame(99, b"zzz"))
    frames = list(FrameReader(io.BytesIO(data)))
    assert frames == [
        Frame(message_type=1, payload=b"", offset=8),
        Frame(message_type=2, payload=b"xy", offset=10),
        Frame(message_type=99, payload=b"zzz", offset=14),
    ]
    assert frames[0].known
    assert not frames[2].known


def test_magic_only_stream_is_empty() -> None:
    reader = FrameReader(io.BytesIO(MAGIC))
    assert reader.read_frame() is None
    assert reader.offset == 8


@pytest.mark.parametrize("data", [b"", b"symb", b"notsymbf", b"SYMBFILE\x00\x01"])
def test_bad_magic(data: bytes) -> None:
    with pytest.raises(BadMagic) as excinfo:
        FrameReader(io.BytesIO(data)).read_frame()
    assert excinfo.value.offset == 0


def test_truncation_at_every_position() -> None:
    data = _stream(encode_frame(1, b""), encode_frame(2, b"payload"))
    boundaries = {8, 10, len(data)}
    for cut in range(8, len(data) + 1):
        reader = FrameReader(io.BytesIO(data[:cut]))
        if cut in boundaries:
            frames = list(reader)
            assert len(frames) == {8: 0, 10: 1, len(data): 2}[cut]
        else:
            with pytest.raises(TruncatedRecord):
                list(reader)


def test_truncated_payload_reports_offset() -> None:
    data = _stream(encode_frame(2, b"payload"))[:-3]
    with pytest.raises(TruncatedRecord) as excinfo:
        FrameReader(io.BytesIO(data)).read_frame()
    # magic, two varints and four payload bytes were consumed
    assert excinfo.value.offset == 14


def test_stream_ending_after_length_prefix() -> None:
    with pytest.raises(TruncatedRecord):
        FrameReader(io.BytesIO(MAGIC + b"\x05")).read_frame()


def test_unknown_message_type_is_skipped_by_length() -> None:
    data = _stream(encode_frame(99, b"\x00" * 300), encode_frame(1, b""))
    reader = FrameReader(io.BytesIO(data))
    unknown = reader.read_frame()
    assert unknown is not None and unknown.message_type == 99
    assert len(unknown.payload) == 300
    header = reader.read_frame()
    assert header is not None and header.message_type == MessageType.HEADER


def test_payload_budget_checked_before_reading() -> None:
    data = _stream(encode_frame(2, b"\x00" * 32))
    reader = FrameReader(io.BytesIO(data), budget=DecodeBudget(max_payload_bytes=16))
    with pytest.raises(ResourceBudgetExceeded):
        reader.read_frame()


class _Oversized(bytes):
    def __len__(self) -> int:
        return 1 << 32


def test_payload_over_32_bits_is_rejected() -> None:
    with pytest.raises(PayloadTooLarge):
        encode_frame(MessageType.RANGE_V1, _Oversized())
    with pytest.raises(PayloadTooLarge):
        write_frame(io.BytesIO(), MessageType.RANGE_V1, _Oversized())


def test_magic_delivered_in_pieces() -> None:
    class Chunked(io.BytesIO):
        def read(self, size=-1):
            return super().read(min(size, 3) if size and size > 0 else size)

    data = _stream(encode_frame(1, b""), encode_frame(2, b"abcdef"))
    frames = list(FrameReader(Chunked(data)))
    assert [frame.payload for frame in frames] == [b"", b"abcdef"]
