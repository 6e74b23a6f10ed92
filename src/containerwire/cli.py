"""containerwire command-line interface.

Usage:
    python -m containerwire to-text --input record.bin [--message-type T]
    python -m containerwire to-binary --input message.txt --output record.bin
    python -m containerwire inspect --input record.bin
    python -m containerwire inspect --text < message.txt
    python -m containerwire version
"""

from __future__ import annotations

import argparse
import base64
import json
import logging
import sys

from containerwire import __version__
from containerwire.error import ContainerError
from containerwire.record_codec import deserialize
from containerwire.values import Container, to_native
from containerwire.wire import (
    DEFAULT_MESSAGE_TYPE,
    DEFAULT_VERSION,
    WireHeader,
    deserialize_wire,
    serialize_wire,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="containerwire",
        description="Convert and inspect typed value containers",
    )
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log decoder diagnostics to stderr")
    sub = parser.add_subparsers(dest="command")

    # ── to-text ──
    text_p = sub.add_parser("to-text", help="Binary container record to text wire message")
    text_p.add_argument("--input", "-i", metavar="FILE",
                        help="Read the record from FILE instead of stdin")
    text_p.add_argument("--message-type", default=DEFAULT_MESSAGE_TYPE,
                        help="Header message type")
    text_p.add_argument("--version", dest="message_version", default=DEFAULT_VERSION,
                        help="Header message version")

    # ── to-binary ──
    bin_p = sub.add_parser("to-binary", help="Text wire message to binary container record")
    bin_p.add_argument("--input", "-i", metavar="FILE",
                       help="Read the message from FILE instead of stdin")
    bin_p.add_argument("--output", "-o", metavar="FILE",
                       help="Write the record to FILE (default: base64 on stdout)")

    # ── inspect ──
    inspect_p = sub.add_parser("inspect", help="Print a decoded value tree as JSON")
    inspect_p.add_argument("--input", "-i", metavar="FILE",
                           help="Read from FILE instead of stdin")
    inspect_p.add_argument("--text", action="store_true",
                           help="Input is a text wire message, not a binary record")

    # ── version ──
    sub.add_parser("version", help="Print version and exit")

    return parser


def _read_input(filepath: str | None) -> bytes:
    if filepath:
        with open(filepath, "rb") as f:
            return f.read()
    if sys.stdin.isatty():
        print("containerwire: reading from stdin (Ctrl-D to end)...", file=sys.stderr)
    return sys.stdin.buffer.read()


def _json_default(obj: object) -> str:
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def _cmd_to_text(args: argparse.Namespace) -> None:
    root = deserialize(_read_input(args.input))
    if not isinstance(root, Container):
        raise ContainerError(f"Root record is {root.type_tag.name}, expected CONTAINER")
    header = WireHeader(message_type=args.message_type, version=args.message_version)
    print(serialize_wire(root, header))


def _cmd_to_binary(args: argparse.Namespace) -> None:
    message = deserialize_wire(_read_input(args.input).decode("utf-8"))
    record = message.data.serialize()
    if args.output:
        with open(args.output, "wb") as f:
            f.write(record)
    else:
        print(base64.b64encode(record).decode("ascii"))


def _cmd_inspect(args: argparse.Namespace) -> None:
    raw = _read_input(args.input)
    if args.text:
        root = deserialize_wire(raw.decode("utf-8")).data
    else:
        root = deserialize(raw)
    tree = {"name": root.name, "type": root.type_tag.name, "value": to_native(root)}
    print(json.dumps(tree, indent=2, default=_json_default))


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "version":
        print(f"containerwire {__version__}")
        return

    try:
        if args.command == "to-text":
            _cmd_to_text(args)
        elif args.command == "to-binary":
            _cmd_to_binary(args)
        elif args.command == "inspect":
            _cmd_inspect(args)
    except ContainerError as e:
        print(f"containerwire: error [{e.code.value}]: {e}", file=sys.stderr)
        sys.exit(2)
    except UnicodeDecodeError as e:
        print(f"containerwire: input is not UTF-8 text: {e}", file=sys.stderr)
        sys.exit(2)
    except OSError as e:
        print(f"containerwire: error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
