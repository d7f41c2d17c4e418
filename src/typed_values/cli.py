"""Command-line inspector for type encodings and archived values."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from typed_values.archive import load_value, save_value
from typed_values.errors import TypedValueError
from typed_values.parsing import parse_encoding
from typed_values.types import RecordDescriptor, TypeDescriptor
from typed_values.values import MutableTypedValue, TypedValue


def format_value(value: Any, max_items: int = 10, max_width: int = 60) -> str:
    """Format an unpacked value for display.

    Args:
        value: The value to format
        max_items: Maximum number of array items to show before eliding
        max_width: Maximum character width before truncating
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, int):
        if value > 0xFFFFFFFF:
            return f"0x{value:x}"
        return str(value)
    elif isinstance(value, float):
        return f"{value:.6g}"
    elif isinstance(value, dict):
        parts = [f"{k}={format_value(v, max_items, max_width)}" for k, v in value.items()]
        result = "{" + ", ".join(parts) + "}"
    elif isinstance(value, (list, tuple)):
        formatted = []
        for i, v in enumerate(value):
            if i >= max_items:
                formatted.append(f"...+{len(value) - max_items} more")
                break
            formatted.append(format_value(v, max_items, max_width))
        if isinstance(value, tuple):
            result = "(" + ", ".join(formatted) + ")"
        else:
            result = "[" + ", ".join(formatted) + "]"
    else:
        result = str(value)

    if len(result) > max_width:
        return result[: max_width - 3] + "..."
    return result


def layout_rows(type_desc: TypeDescriptor) -> list[dict[str, Any]]:
    """Return one row per element or field: index, name, offset, size, encoding."""
    rows = []
    for i in range(type_desc.element_count):
        offset, sub = type_desc.locate(i)
        name = type_desc.fields[i].name if isinstance(type_desc, RecordDescriptor) else None
        rows.append({
            "index": i,
            "name": name or "",
            "offset": offset,
            "size": sub.size,
            "encoding": sub.encoding,
        })
    return rows


def print_table(columns: list[str], rows: list[dict[str, Any]]) -> None:
    """Print rows in a formatted table."""
    col_widths = {col: len(col) for col in columns}
    for row in rows:
        for col in columns:
            col_widths[col] = max(col_widths[col], len(str(row[col])))

    header = " | ".join(col.ljust(col_widths[col]) for col in columns)
    print(header)
    print("-" * len(header))
    for row in rows:
        print(" | ".join(str(row[col]).ljust(col_widths[col]) for col in columns))


def cmd_describe(args: argparse.Namespace) -> int:
    type_desc = parse_encoding(args.encoding)
    print(f"encoding:   {type_desc.encoding}")
    print(f"normalized: {type_desc.normalized_encoding}")
    print(f"size:       {type_desc.size}")
    print(f"alignment:  {type_desc.alignment}")
    rows = layout_rows(type_desc)
    if rows:
        print()
        # Arrays print every element; cap them like format_value does
        if type_desc.is_array and len(rows) > args.max_rows:
            rows = rows[: args.max_rows]
        print_table(["index", "name", "offset", "size", "encoding"], rows)
    return 0


def cmd_pack(args: argparse.Namespace) -> int:
    obj = json.loads(args.value)
    cls = MutableTypedValue if args.mutable else TypedValue
    value = cls.box(obj, args.encoding)
    if args.output:
        written = save_value(value, args.output)
        print(f"Wrote {args.output} ({written} bytes)")
    else:
        print(value.to_bytes().hex())
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    value = load_value(args.file)
    if args.index is not None:
        value = value.at(args.index)
    elif args.key is not None:
        value = value.for_key(args.key)
    if args.json:
        print(json.dumps(value.unpack()))
    else:
        kind = "mutable" if isinstance(value, MutableTypedValue) else "immutable"
        print(f"{value.encoding} ({value.size} bytes, {kind})")
        print(format_value(value.unpack()))
    return 0


def build_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(
        prog="tvi",
        description="Inspect type encodings and archived typed values",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = arg_parser.add_subparsers(dest="command", required=True)

    describe = subparsers.add_parser("describe", help="Show the layout of an encoding")
    describe.add_argument("encoding", help='Type encoding, e.g. \'{point="x"f"y"f}\'')
    describe.add_argument(
        "--max-rows",
        type=int,
        default=32,
        help="Maximum number of array elements to list",
    )
    describe.set_defaults(func=cmd_describe)

    pack = subparsers.add_parser("pack", help="Pack a JSON value with an encoding")
    pack.add_argument("encoding", help="Type encoding of the value")
    pack.add_argument("value", help="JSON value, e.g. '[1.0, 2.0]'")
    pack.add_argument(
        "-o", "--output",
        type=Path,
        help="Write an archive to this file instead of printing hex bytes",
    )
    pack.add_argument(
        "--mutable",
        action="store_true",
        help="Archive the value as mutable",
    )
    pack.set_defaults(func=cmd_pack)

    show = subparsers.add_parser("show", help="Print an archived value")
    show.add_argument("file", type=Path, help="Archive file (.gz for compressed)")
    address = show.add_mutually_exclusive_group()
    address.add_argument("--index", type=int, help="Show only the element or field at index")
    address.add_argument("--key", help="Show only the field with this name")
    show.add_argument("--json", action="store_true", help="Print the value as JSON")
    show.set_defaults(func=cmd_show)

    return arg_parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return args.func(args)
    except (TypedValueError, json.JSONDecodeError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
