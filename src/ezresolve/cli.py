from __future__ import annotations

import argparse
import sys
from collections import Counter
from dataclasses import replace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Sequence

from .colors import rgb_to_hex
from .convert import convert_file, read_dxf
from .dispatch import SUPPORTED_ENTITY_TYPES, resolve_drawing
from .errors import DiagnosticKind
from .logging_utils import setup_logging
from .options import ResolveOptions, load_options, parse_color


def _package_version() -> str:
    try:
        return version("ezresolve")
    except PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ezresolve",
        description="Resolve CAD drawing entities into flat geometry with final colors.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level for diagnostics on stderr (default: WARNING or $EZRESOLVE_LOG_LEVEL).",
    )
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Resolve a DXF file and report counts.")
    inspect_parser.add_argument("path", help="Path to DXF file.")
    inspect_parser.add_argument(
        "--types",
        default=None,
        help='Entity filter, e.g. "LINE ARC LWPOLYLINE".',
    )
    inspect_parser.add_argument(
        "--verbose",
        action="store_true",
        help="List every diagnostic instead of per-kind counts only.",
    )

    convert_parser = subparsers.add_parser(
        "convert",
        help="Resolve a DXF file and write flattened geometry to a new DXF file.",
    )
    convert_parser.add_argument("input_path", help="Path to input DXF file.")
    convert_parser.add_argument("output_path", help="Path to output DXF file.")
    convert_parser.add_argument(
        "--types",
        default=None,
        help='Entity filter, e.g. "LINE ARC LWPOLYLINE".',
    )
    convert_parser.add_argument(
        "--dxf-version",
        default="R2010",
        help="DXF version for ezdxf.new(), e.g. R2000/R2010/R2018.",
    )
    convert_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any entity cannot be resolved.",
    )
    convert_parser.add_argument(
        "--base-point-offset",
        action="store_true",
        help="Subtract block base points when composing block instance transforms.",
    )
    convert_parser.add_argument(
        "--monochrome",
        default=None,
        metavar="COLOR",
        help="Draw everything in one color (#RRGGBB, 0xRRGGBB or decimal).",
    )
    return parser


def _run_inspect(path: str, *, types: str | None = None, verbose: bool = False) -> int:
    file_path = Path(path)
    if not file_path.exists():
        print(f"error: file not found: {file_path}", file=sys.stderr)
        return 2

    try:
        drawing = read_dxf(str(file_path))
    except Exception as exc:
        print(f"error: failed to read DXF: {exc}", file=sys.stderr)
        return 2
    result = resolve_drawing(drawing, load_options(), types)

    counts = Counter(entity.dxftype for entity in drawing.query(types))
    print(f"file: {file_path}")
    print(f"layers: {len(drawing.layers)}")
    print(f"blocks: {len(drawing.blocks)}")
    print(f"total_entities: {result.total_entities}")
    for dxftype in SUPPORTED_ENTITY_TYPES:
        count = counts.get(dxftype, 0)
        if count > 0:
            print(f"{dxftype}: {count}")
    print(f"resolved_entities: {result.resolved_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    print(f"error_entities: {result.error_entities}")
    print(f"draw_records: {len(result.records)}")
    for dxftype, count in sorted(result.skipped_by_type.items()):
        print(f"skipped[{dxftype}]: {count}")
    colors = Counter(rgb_to_hex(record.color) for record in result.records)
    for color, count in sorted(colors.items()):
        print(f"color[{color}]: {count}")

    for kind in DiagnosticKind:
        found = result.diagnostics_of(kind)
        if found:
            print(f"diagnostics[{kind.value}]: {len(found)}")
    if verbose:
        for diagnostic in result.diagnostics:
            print(f"diagnostic: {diagnostic}")
    return 0


def _run_convert(
    input_path: str,
    output_path: str,
    *,
    types: str | None = None,
    dxf_version: str = "R2010",
    strict: bool = False,
    options: ResolveOptions | None = None,
) -> int:
    dxf_path = Path(input_path)
    if not dxf_path.exists():
        print(f"error: file not found: {dxf_path}", file=sys.stderr)
        return 2

    try:
        result = convert_file(
            str(dxf_path),
            output_path,
            types=types,
            dxf_version=dxf_version,
            strict=strict,
            options=options,
        )
    except Exception as exc:
        print(f"error: failed to convert DXF: {exc}", file=sys.stderr)
        return 2

    print(f"input: {result.source_path}")
    print(f"output: {result.output_path}")
    print(f"total_entities: {result.total_entities}")
    print(f"resolved_entities: {result.resolved_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    print(f"error_entities: {result.error_entities}")
    print(f"written_records: {result.written_records}")
    for dxftype, count in result.skipped_by_type.items():
        print(f"skipped[{dxftype}]: {count}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if args.command == "inspect":
        return _run_inspect(args.path, types=args.types, verbose=bool(args.verbose))
    if args.command == "convert":
        options = load_options()
        if args.base_point_offset:
            options = replace(options, apply_base_point_offset=True)
        if args.monochrome is not None:
            try:
                options = replace(options, monochrome_color=parse_color(args.monochrome))
            except ValueError as exc:
                print(f"error: invalid --monochrome color: {exc}", file=sys.stderr)
                return 2
        return _run_convert(
            args.input_path,
            args.output_path,
            types=args.types,
            dxf_version=args.dxf_version,
            strict=bool(args.strict),
            options=options,
        )

    parser.print_help()
    return 0
