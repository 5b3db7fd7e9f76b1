import pytest

from symbfile.errors import StringIndexOutOfRange
from symbfile.string_table import (
    StringTable,
    decode_string_table_payload,
    encode_string_table_payload,
)


def test_replace_discards_previous_entries() -> None:
    table = StringTable(["a", "b"])
    assert table.lookup(1) == "b"
    assert table.generation == 0
    table.replace(["c", "d"])
    assert table.lookup(1) == "d"
    assert "a" not in table
    assert table.generation == 1


def test_lookup_out_of_range() -> None:
    table = StringTable(["only"])
    with pytest.raises(StringIndexOutOfRange):
        table.lookup(1)
    with pytest.raises(IndexError):
        StringTable().lookup(0)


def test_index_for_prefers_first_occurrence() -> None:
    table = StringTable(["x", "y", "x"])
    assert table.index_for("x") == 0
    assert len(table) == 3
    with pytest.raises(KeyError):
        table.index_for("z")


def test_payload_encoding_matches_repeated_string_field() -> None:
    payload = encode_string_table_payload(["a", "", "bc"])
    assert payload == b"\x0a\x01a\x0a\x00\x0a\x02bc"
    assert decode_string_table_payload(payload) == (("a", "", "bc"), b"")


def test_payload_keeps_unknown_fields() -> None:
    extra = b"\x10\x07"
    payload = encode_string_table_payload(["a"], unknown_fields=extra)
    strings, unknown = decode_string_table_payload(payload)
    assert strings == ("a",)
    assert unknown == extra
