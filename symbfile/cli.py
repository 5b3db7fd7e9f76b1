"""Command line interface for inspecting and rewriting symbfile streams."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from itertools import islice
from pathlib import Path

import yaml

from .config import available_modes, get_writer_config
from .errors import SymbfileError
from .reader import iter_path
from .resource_limits import ResourceBudgetExceeded
from .summary import summarise
from .writer import transcode

LOGGER = logging.getLogger("symbfile.cli")


class CommandError(RuntimeError):
    """Raised when a CLI sub-command fails with a user facing error."""


def _require_file(path: str) -> Path:
    candidate = Path(path)
    if not candidate.is_file():
        raise CommandError(f"Input file '{path}' does not exist")
    return candidate


def inspect_command(args: argparse.Namespace) -> None:
    path = _require_file(args.file)
    summary = summarise(iter_path(path))
    payload = {"file": str(path), **summary.to_dict()}
    if args.yaml:
        print(yaml.safe_dump(payload, sort_keys=False))
        return
    if args.json:
        print(json.dumps(payload, indent=2))
        return
    print(f"File: {path}")
    for name, count in payload["records"].items():
        print(f"  {name}: {count}")
    for message_type, count in payload["unknown_types"].items():
        print(f"  unknown type {message_type}: {count}")
    print(f"String table swaps: {summary.string_table_swaps}")
    print(f"Largest string table: {summary.largest_string_table}")
    if payload["address_span"] is not None:
        low, high = payload["address_span"]
        print(f"Address span: {low}..{high}")
    print(f"Max inline depth: {summary.max_inline_depth}")
    print(f"Line table rows: {summary.line_table_rows}")
    print(f"Distinct functions: {len(summary.functions)}")


def dump_command(args: argparse.Namespace) -> None:
    path = _require_file(args.file)
    if args.limit is not None and args.limit < 0:
        raise CommandError("--limit cannot be negative")
    records = iter_path(path)
    if args.limit is not None:
        records = islice(records, args.limit)
    for record in records:
        print(json.dumps(record.to_dict(), sort_keys=False))


def transcode_command(args: argparse.Namespace) -> None:
    source = _require_file(args.source)
    try:
        config = get_writer_config(args.mode)
    except ValueError as exc:
        raise CommandError(str(exc)) from exc
    destination = Path(args.output)
    try:
        with destination.open("wb") as sink:
            writer = transcode(
                iter_path(source), sink, config, keep_string_tables=args.keep_tables
            )
    except OSError as exc:  # pragma: no cover - CLI guard
        raise CommandError(f"Failed to write '{destination}': {exc}") from exc
    LOGGER.info(
        "wrote %d records (%d bytes) to %s using mode %s",
        writer.records_written,
        writer.bytes_written,
        destination,
        config.mode,
    )


def modes_command(args: argparse.Namespace) -> None:
    modes = available_modes()
    if args.json:
        print(json.dumps(modes, indent=2))
    else:
        for name, description in modes.items():
            print(f"{name}: {description}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="symbfile", description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect_parser = subparsers.add_parser("inspect", help="Summarise a symbfile")
    inspect_parser.add_argument("file", help="Input symbfile")
    inspect_parser.add_argument("--json", action="store_true", help="Emit JSON")
    inspect_parser.add_argument("--yaml", action="store_true", help="Emit YAML")
    inspect_parser.set_defaults(func=inspect_command)

    dump_parser = subparsers.add_parser("dump", help="Print decoded records as JSON lines")
    dump_parser.add_argument("file", help="Input symbfile")
    dump_parser.add_argument("--limit", type=int, help="Stop after this many records")
    dump_parser.set_defaults(func=dump_command)

    transcode_parser = subparsers.add_parser(
        "transcode", help="Re-encode a symbfile with a different writer preset"
    )
    transcode_parser.add_argument("source", help="Input symbfile")
    transcode_parser.add_argument("output", help="Destination symbfile")
    transcode_parser.add_argument(
        "--mode",
        default="balanced",
        help=f"Writer preset ({', '.join(available_modes())})",
    )
    transcode_parser.add_argument(
        "--keep-tables",
        action="store_true",
        help="Replay the input's string tables instead of building new ones",
    )
    transcode_parser.set_defaults(func=transcode_command)

    modes_parser = subparsers.add_parser("modes", help="List writer presets")
    modes_parser.add_argument("--json", action="store_true", help="Emit JSON")
    modes_parser.set_defaults(func=modes_command)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except (SymbfileError, ResourceBudgetExceeded) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    except CommandError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
