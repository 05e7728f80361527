"""RESP2 command-line interface.

Usage:
    printf '*1\r\n+OK\r\n' | python3 -m resp2 decode [--json]
    echo '["SET", "key", 42]' | python3 -m resp2 encode
    python3 -m resp2 decode --input reply.bin
    python3 -m resp2 version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import (
    ERR_IO,
    ERR_UNEXPECTED_TYPE,
    Array,
    BulkString,
    Error,
    Integer,
    Null,
    RespError,
    SimpleString,
    Value,
    __version__,
    decode,
    encode_json,
    value_to_json,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resp2",
        description="RESP2 — encode and decode Redis Serialization Protocol frames",
    )
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command")

    # ── decode ──
    dec_p = sub.add_parser("decode", help="Decode one RESP frame")
    dec_p.add_argument("--input", "-i", metavar="FILE",
                       help="Read RESP bytes from FILE instead of stdin")
    dec_p.add_argument("--json", action="store_true",
                       help="Print the decoded value as JSON")

    # ── encode ──
    enc_p = sub.add_parser("encode", help="Encode a JSON value as one RESP frame")
    enc_p.add_argument("--input", "-i", metavar="FILE",
                       help="Read JSON from FILE instead of stdin")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def _read_input(filepath: Optional[str]) -> bytes:
    """Read raw bytes from a file or stdin."""
    if filepath:
        try:
            with open(filepath, "rb") as f:
                return f.read()
        except OSError as e:
            raise RespError(ERR_IO, "cannot read {}: {}".format(filepath, e.strerror or e)) from e
    if sys.stdin.isatty():
        print("resp2: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.buffer.read()


def format_value(value: Value) -> List[str]:
    """Render a Value the way redis-cli prints replies."""
    if isinstance(value, SimpleString):
        return [value.text]
    if isinstance(value, Error):
        return ["(error) " + value.text]
    if isinstance(value, Integer):
        return ["(integer) {}".format(value.value)]
    if isinstance(value, BulkString):
        return [json.dumps(value.data.decode("utf-8", errors="backslashreplace"),
                           ensure_ascii=False)]
    if isinstance(value, Null):
        return ["(nil)"]
    if isinstance(value, Array):
        if not value.items:
            return ["(empty array)"]
        width = len(str(len(value.items)))
        lines: List[str] = []
        for n, item in enumerate(value.items, start=1):
            prefix = "{:>{}}) ".format(n, width)
            sub_lines = format_value(item)
            lines.append(prefix + sub_lines[0])
            lines.extend(" " * len(prefix) + line for line in sub_lines[1:])
        return lines
    raise RespError(ERR_UNEXPECTED_TYPE, "not a RESP value: {}".format(type(value).__name__))


def _cmd_decode(args: argparse.Namespace) -> None:
    raw = _read_input(args.input)
    logger.debug("decoding %d bytes", len(raw))
    value = decode(raw)
    if args.json:
        print(json.dumps(value_to_json(value), ensure_ascii=False))
    else:
        for line in format_value(value):
            print(line)


def _cmd_encode(args: argparse.Namespace) -> None:
    raw = _read_input(args.input)
    frame = encode_json(raw)
    logger.debug("encoded %d JSON bytes into a %d byte frame", len(raw), len(frame))
    sys.stdout.buffer.write(frame)
    sys.stdout.buffer.flush()


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "version":
        print(f"resp2 {__version__}")
        return

    try:
        if args.command == "decode":
            _cmd_decode(args)
        elif args.command == "encode":
            _cmd_encode(args)
    except RespError as e:
        print(f"resp2: error [{e.code}]: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
