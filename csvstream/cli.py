"""
csvstream: streaming CSV reader CLI

Commands:
  fields  Print the mapped field names, one per line.
  sniff   Print every format decision made while opening the file.
  dump    Print records as JSON lines (blank lines as ``null``).

Usage examples:
  csvstream fields --source data/products.csv
  csvstream sniff  --source data/export.csv.gz --verbose
  gunzip -c export.csv.gz | csvstream dump --source - --limit 10

``--source -`` reads standard input (a forward-only stream); a ``.gz``
suffix is decompressed on the fly.

Environment variables (also loaded from .env):
  CSVSTREAM_INTERNAL_ENCODING   Default for --internal-encoding
  CSVSTREAM_READ_CHUNK_SIZE     Bytes per underlying read
  CSVSTREAM_SNIFF_SAMPLE_SIZE   Bytes inspected during detection

Exit codes:
  0  Success
  1  Reader error (unreadable source, decode failure, bad header...)
  2  Configuration / argument error
"""

from __future__ import annotations

import argparse
import dataclasses
import gzip
import json
import logging
import sys
from typing import Any, BinaryIO

from dotenv import load_dotenv

from csvstream.configs.config import DECODE_ERROR_POLICIES, ReaderConfig
from csvstream.configs.exceptions import CSVReaderError, InvalidOptionError, SourceOpenError
from csvstream.discovery.byte_source import StreamByteSource
from csvstream.reader import CSVReader, open_reader

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        level=level,
        stream=sys.stdout,
    )


# ---------------------------------------------------------------------------
# Config builder from env + CLI overrides
# ---------------------------------------------------------------------------

def _build_config(args: argparse.Namespace) -> ReaderConfig:
    kwargs: dict[str, Any] = {"debug": args.verbose}
    if args.delimiter is not None:
        kwargs["delimiter"] = args.delimiter
    if args.enclosure is not None:
        kwargs["enclosure"] = args.enclosure
    if args.file_encoding:
        kwargs["file_encoding"] = args.file_encoding
    if args.internal_encoding:
        kwargs["internal_encoding"] = args.internal_encoding
    if args.line_separator:
        kwargs["line_separator"] = _unescape(args.line_separator)
    if args.skip_empty_lines:
        kwargs["skip_empty_lines"] = True
    if args.include:
        kwargs["include_fields"] = args.include
    if args.decode_errors:
        kwargs["decode_errors"] = args.decode_errors
    return ReaderConfig(**kwargs)


def _unescape(value: str) -> str:
    r"""Allow ``\r\n`` and ``\t`` to be typed literally on the command line."""
    return value.replace("\\r", "\r").replace("\\n", "\n").replace("\\t", "\t")


# ---------------------------------------------------------------------------
# Source opener
# ---------------------------------------------------------------------------

def _open_reader(args: argparse.Namespace, config: ReaderConfig) -> CSVReader:
    if args.source == "-":
        stdin: BinaryIO = sys.stdin.buffer
        return CSVReader(
            StreamByteSource(stdin, name="<stdin>", chunk_size=config.read_chunk_size),
            config,
        )
    if args.source.endswith(".gz"):
        try:
            stream = gzip.open(args.source, "rb")
        except OSError as e:
            raise SourceOpenError(f"Failed to open {args.source}: {e}", source=args.source) from e
        return open_reader(
            StreamByteSource(stream, name=args.source, owned=True, chunk_size=config.read_chunk_size),
            config,
        )
    return open_reader(args.source, config)


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------

def _cmd_fields(reader: CSVReader, args: argparse.Namespace) -> None:
    for name in reader.field_names():
        print(name)


def _cmd_sniff(reader: CSVReader, args: argparse.Namespace) -> None:
    for key, value in dataclasses.asdict(reader.profile).items():
        if isinstance(value, bytes):
            value = "0x" + value.hex()
        elif isinstance(value, str) and len(value) == 1:
            value = repr(value)
        print(f"{key:<18}: {value}")
    print(f"{'fields':<18}: {', '.join(reader.field_names())}")


def _cmd_dump(reader: CSVReader, args: argparse.Namespace) -> None:
    for count, record in enumerate(reader):
        if args.limit is not None and count >= args.limit:
            break
        print(json.dumps(record, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csvstream",
        description="Streaming, encoding-aware CSV reader",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    def _add_source_args(p):
        p.add_argument("--source", required=True, help="Path to the CSV file, or - for stdin")

    def _add_format_args(p):
        p.add_argument("--delimiter", default=None, help="Field delimiter (sniffed if omitted)")
        p.add_argument("--enclosure", default=None, help="Field enclosure; '' for none")
        p.add_argument("--file-encoding", default=None, dest="file_encoding")
        p.add_argument("--internal-encoding", default=None, dest="internal_encoding")
        p.add_argument("--line-separator", default=None, dest="line_separator",
                       help=r"Line separator, e.g. '\r\n'")
        p.add_argument("--skip-empty-lines", action="store_true", dest="skip_empty_lines")
        p.add_argument("--include", action="append", default=None,
                       help="Required field to keep (repeatable)")
        p.add_argument("--decode-errors", choices=DECODE_ERROR_POLICIES, default=None,
                       dest="decode_errors")

    p_fields = sub.add_parser("fields", help="Print field names")
    _add_source_args(p_fields)
    _add_format_args(p_fields)

    p_sniff = sub.add_parser("sniff", help="Print detected stream format")
    _add_source_args(p_sniff)
    _add_format_args(p_sniff)

    p_dump = sub.add_parser("dump", help="Print records as JSON lines")
    _add_source_args(p_dump)
    _add_format_args(p_dump)
    p_dump.add_argument("--limit", type=int, default=None, help="Stop after N records")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    handlers = {
        "fields": _cmd_fields,
        "sniff":  _cmd_sniff,
        "dump":   _cmd_dump,
    }

    try:
        config = _build_config(args)
    except InvalidOptionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    try:
        with _open_reader(args, config) as reader:
            handlers[args.command](reader, args)
    except InvalidOptionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except CSVReaderError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
