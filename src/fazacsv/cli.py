"""Command-line interface for fazacsv."""

from __future__ import annotations

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

from .aggregator import UNIT_FACTORS, detect_unit, parse_text
from .models import FileFormat
from .pipeline import generate
from .record_parser import match_line, split_lines


def inspect_export(path: str, fmt: FileFormat) -> None:
    """Parse an export file and print what was recognized."""
    text = Path(path).read_text(encoding="utf-8", errors="replace")

    rule_counts: Counter[str] = Counter()
    skipped = 0
    for line in split_lines(text):
        fields = match_line(line, fmt)
        if fields is None:
            skipped += 1
        else:
            rule_counts[type(fields).__name__] += 1

    result = parse_text(text, fmt)
    unit, factor = detect_unit(text)

    print(f"Export file: {path}")
    print(f"Format:      {fmt.value}")
    print(f"Unit:        {unit} (factor {factor})")
    print()

    print("Matched lines:")
    for name in sorted(rule_counts):
        print(f"  {name:20s} {rule_counts[name]:6d}")
    print(f"  {'(skipped)':20s} {skipped:6d}")
    print()

    sides: Counter[str] = Counter(part.side or "?" for part in result.parts)
    print("Parts per side:")
    for side in sorted(sides):
        print(f"  {side:20s} {sides[side]:6d}")
    print()

    n_place = sum(len(part.placements) for part in result.parts)
    n_pads = sum(len(part.pads) for part in result.parts)
    print(f"Placements: {n_place}")
    print(f"Pads:       {n_pads}")
    print(f"Total parts: {len(result.parts)}")


# --- Subcommand handlers ---


def _print_progress(percent: int, message: str) -> None:
    print(f"[{percent:3d}%] {message}", file=sys.stderr)


def _cmd_generate(args: argparse.Namespace) -> None:
    """Handle the generate subcommand."""
    bom_path = Path(args.bom)
    if not bom_path.exists():
        print(f"Error: BOM file not found: {bom_path}", file=sys.stderr)
        sys.exit(1)

    pins_path = None
    if args.pins:
        pins_path = Path(args.pins)
        if not pins_path.exists():
            print(f"Error: PINS file not found: {pins_path}", file=sys.stderr)
            sys.exit(1)

    factor = args.factor
    if factor is None and args.unit:
        factor = UNIT_FACTORS[args.unit]

    result = generate(
        bom_path,
        pins_path,
        client=args.client,
        program=args.program,
        factor=factor,
        progress=None if args.quiet else _print_progress,
        output_dir=args.output_dir,
        workers=args.workers,
    )

    print(f"{result.message} ({result.elapsed_time:.3f}s)", file=sys.stderr)
    for path in result.paths:
        print(path)
    if not result.success:
        sys.exit(1)


def _cmd_inspect(args: argparse.Namespace) -> None:
    """Handle the inspect subcommand."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        sys.exit(1)

    inspect_export(str(input_path), FileFormat(args.format))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="fazacsv",
        description="Convert BOM/PINS exports into faza CSV files.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    # --- generate subcommand ---
    p_gen = subparsers.add_parser(
        "generate",
        help="Generate faza TOP/BOT CSV files from a BOM and optional PINS export.",
    )
    p_gen.add_argument(
        "bom",
        help="Path to the BOM (placement) export",
    )
    p_gen.add_argument(
        "--pins",
        help="Path to the PINS (pad) export; without it no BOT files are written",
    )
    p_gen.add_argument(
        "-p", "--program",
        required=True,
        help="Program/part number, used as the output file prefix",
    )
    p_gen.add_argument(
        "-c", "--client",
        default="",
        help="Client identifier (default: UNKNOWN_CLIENT)",
    )
    scale = p_gen.add_mutually_exclusive_group()
    scale.add_argument(
        "--factor",
        type=float,
        help="Coordinate multiplier (default: auto-detect from the BOM export)",
    )
    scale.add_argument(
        "--unit",
        choices=sorted(UNIT_FACTORS),
        help="Force unit interpretation instead of auto-detecting it",
    )
    p_gen.add_argument(
        "-o", "--output-dir",
        default=".",
        help="Directory for the generated CSV files (default: current directory)",
    )
    p_gen.add_argument(
        "--workers",
        type=int,
        help="Number of worker threads for line building",
    )
    p_gen.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Don't print progress lines",
    )
    p_gen.set_defaults(func=_cmd_generate)

    # --- inspect subcommand ---
    p_inspect = subparsers.add_parser(
        "inspect",
        help="Parse an export file and print a summary of recognized records.",
    )
    p_inspect.add_argument(
        "input",
        help="Path to the export file",
    )
    p_inspect.add_argument(
        "-f", "--format",
        choices=[f.value for f in FileFormat],
        default=FileFormat.PLACEMENT.value,
        help="Export format (default: BOM)",
    )
    p_inspect.set_defaults(func=_cmd_inspect)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)
