import io
import json
import subprocess
import sys

import yaml

from symbfile.config import get_writer_config
from symbfile.reader import Reader
from symbfile.records import InlineFrame, Range, ReturnPad, UnknownRecord
from symbfile.summary import summarise
from symbfile.writer import transcode

RECORDS = [
    Range(elf_va=0x1000, length=0x40, func="main", file="main.c"),
    Range(elf_va=0x1010, length=0x10, func="helper", file="util.h", call_line=8, depth=1),
    ReturnPad.from_frames(0x1018, [InlineFrame("main", "main.c", 8), InlineFrame("helper", "util.h", 3)]),
    UnknownRecord(message_type=77, payload=b"\x00"),
]


def _write_sample(path, mode: str = "balanced") -> None:
    with path.open("wb") as sink:
        transcode(RECORDS, sink, get_writer_config(mode))


def _run(*args: str, check: bool = True) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "symbfile.cli", *args],
        check=check,
        capture_output=True,
        text=True,
    )


def test_summary_counts_records() -> None:
    sink = io.BytesIO()
    transcode(RECORDS, sink, get_writer_config("literal"))
    payload = summarise(Reader(sink.getvalue())).to_dict()
    assert payload["records"] == {
        "header": 1,
        "range": 2,
        "return_pad": 1,
        "string_table": 1,
        "unknown": 1,
    }
    assert payload["unknown_types"] == {"77": 1}
    assert payload["address_span"] == ["0x1000", "0x1040"]
    assert payload["max_inline_depth"] == 1
    assert payload["distinct_functions"] == 2


def test_cli_inspect_json_and_yaml(tmp_path) -> None:
    sample = tmp_path / "sample.symbfile"
    _write_sample(sample)

    as_json = json.loads(_run("inspect", str(sample), "--json").stdout)
    assert as_json["records"]["range"] == 2
    assert as_json["file"] == str(sample)

    as_yaml = yaml.safe_load(_run("inspect", str(sample), "--yaml").stdout)
    assert as_yaml == as_json

    text = _run("inspect", str(sample)).stdout
    assert "Address span: 0x1000..0x1040" in text


def test_cli_dump_limit(tmp_path) -> None:
    sample = tmp_path / "sample.symbfile"
    _write_sample(sample, "literal")
    lines = _run("dump", str(sample), "--limit", "2").stdout.splitlines()
    assert [json.loads(line)["type"] for line in lines] == ["header", "range"]
    full = [json.loads(line) for line in _run("dump", str(sample)).stdout.splitlines()]
    assert full[-1] == {"type": "unknown", "message_type": 77, "payload": "00"}
    assert full[2]["call_file"] == "main.c"


def test_cli_transcode(tmp_path) -> None:
    sample = tmp_path / "sample.symbfile"
    output = tmp_path / "debug.symbfile"
    _write_sample(sample)
    _run("transcode", str(sample), str(output), "--mode", "debug")
    assert [record for record in Reader(output.read_bytes()) if isinstance(record, Range)] == [
        RECORDS[0],
        RECORDS[1],
    ]


def test_cli_modes_json() -> None:
    modes = json.loads(_run("modes", "--json").stdout)
    assert "balanced" in modes


def test_cli_reports_errors(tmp_path) -> None:
    broken = tmp_path / "broken.symbfile"
    broken.write_bytes(b"notmagic")
    result = _run("inspect", str(broken), check=False)
    assert result.returncode == 1
    assert result.stderr.startswith("error: ")

    missing = _run("dump", str(tmp_path / "absent.symbfile"), check=False)
    assert missing.returncode == 1
    assert "does not exist" in missing.stderr

    bad_mode = _run("transcode", str(broken), str(tmp_path / "out"), "--mode", "turbo", check=False)
    assert bad_mode.returncode == 1
    assert "Unknown writer mode" in bad_mode.stderr


def test_cli_transcode_keep_tables(tmp_path) -> None:
    sample = tmp_path / "sample.symbfile"
    output = tmp_path / "copy.symbfile"
    _write_sample(sample)
    _run("transcode", str(sample), str(output), "--keep-tables")
    assert output.read_bytes() == sample.read_bytes()
