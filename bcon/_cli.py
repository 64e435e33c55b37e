"""bcon command-line interface.

Streams are read as JSON (see bcon._json_adapter for the format).

Usage:
    echo '["foo", "bar", null]' | python3 -m bcon render
    echo '["bar", "baz", null]' | python3 -m bcon json --array
    python3 -m bcon bson --input stream.json
    python3 -m bcon version
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import sys
from typing import List, Optional

from . import (
    BconError,
    __version__,
    convert,
    parse_stream,
    render,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bcon",
        description="bcon: build BSON from flat BCON cell streams",
    )
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug output to stderr")
    sub = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("render", "Print the indented debug view of a stream"),
        ("bson", "Convert a stream and print the BSON bytes (base64)"),
        ("json", "Convert a stream and print it as extended JSON"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--input", "-i", metavar="FILE",
                       help="Read the JSON stream from FILE instead of stdin")
        p.add_argument("--array", action="store_true",
                       help="Treat the top-level stream as an array")

    sub.add_parser("version", help="Print version and exit")

    return parser


def _read_input(filepath: Optional[str]) -> bytes:
    """Read JSON bytes from a file or stdin."""
    if filepath:
        with open(filepath, "rb") as f:
            return f.read()
    if sys.stdin.isatty():
        print("bcon: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.buffer.read()


def _cmd_render(args: argparse.Namespace) -> None:
    cells = parse_stream(_read_input(args.input))
    sys.stdout.write(render(cells, is_array=args.array))


def _cmd_bson(args: argparse.Namespace) -> None:
    cells = parse_stream(_read_input(args.input))
    doc = convert(cells, is_array=args.array)
    # base64 keeps the terminal safe
    print(base64.b64encode(bytes(doc)).decode("ascii"))


def _cmd_json(args: argparse.Namespace) -> None:
    cells = parse_stream(_read_input(args.input))
    print(convert(cells, is_array=args.array).to_json(indent=2))


def main(argv: Optional[List[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "version":
        print(f"bcon {__version__}")
        return

    try:
        if args.command == "render":
            _cmd_render(args)
        elif args.command == "bson":
            _cmd_bson(args)
        elif args.command == "json":
            _cmd_json(args)
    except BconError as e:
        print(f"bcon: error [{e.code}]: {e}", file=sys.stderr)
        if e.diagnostic:
            sys.stderr.write(e.diagnostic)
        sys.exit(2)
    except json.JSONDecodeError as e:
        print(f"bcon: JSON parse error: {e}", file=sys.stderr)
        sys.exit(2)
    except UnicodeDecodeError as e:
        print(f"bcon: input is not valid UTF-8: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
