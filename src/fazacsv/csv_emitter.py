"""CSV line formatting, per-part worker fan-out, and output file writing.

Output files, per program number::

    {program}_faza1_TOP.csv   placements on side T
    {program}_faza2_TOP.csv   placements on side B
    {program}_faza1_BOT.csv   PINS pads of side T parts
    {program}_faza2_BOT.csv   PINS pads of side B parts
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, localcontext
from operator import itemgetter
from pathlib import Path
from typing import Callable, Sequence

from .cross_reference import PinsLookup, pair_pads
from .models import EMIT_SIDES, SIDE_BOTTOM, SIDE_TOP, PadPoint, PartRecord, PlacementPoint

log = logging.getLogger(__name__)

MISSING_LABEL = "MISSING_PART"
MISSING_DEVICE = "NO_CLIENT"
MISSING_PIN = "X"
PAD_DEVICE_TYPE = "THD"
# commas inside identifiers would shift the CSV columns
FIELD_SEPARATOR_SUBSTITUTE = "_"

KIND_TOP = "TOP"
KIND_BOT = "BOT"

# faza number per side code; fixed by the downstream equipment
SIDE_PHASES: dict[str, int] = {SIDE_TOP: 1, SIDE_BOTTOM: 2}

_CENTS = Decimal("0.01")

LineBuilder = Callable[[PartRecord], list[str]]


def format_fixed(value: float) -> str:
    """Format to two decimals, rounding half away from zero.

    Rounding is applied to the shortest decimal form of the float, so
    1.005 becomes "1.01" rather than the binary-exact "1.00".

    Raises:
        ValueError: ``value`` is infinite or NaN.
    """
    exact = Decimal(repr(float(value)))
    if not exact.is_finite():
        raise ValueError(f"Cannot format non-finite coordinate {value!r}")
    with localcontext() as ctx:
        # integer digits plus two decimals must fit
        ctx.prec = max(ctx.prec, exact.adjusted() + 3)
        rounded = exact.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if rounded == 0:
        rounded = abs(rounded)  # no "-0.00"
    return f"{rounded:.2f}"


def csv_field(text: str) -> str:
    """Make a free-text token safe for a comma-separated row."""
    return text.replace(",", FIELD_SEPARATOR_SUBSTITUTE)


def program_id(client: str, device: str) -> str:
    return csv_field(f"{client}-{device or MISSING_DEVICE}")


def placement_line(part: PartRecord, point: PlacementPoint, client: str, factor: float) -> str:
    pn = program_id(client, point.device)
    return ",".join([
        csv_field(part.part_id or MISSING_LABEL),
        format_fixed(point.x * factor),
        format_fixed(point.y * factor),
        format_fixed(point.rotation),
        pn,
        pn,
    ]) + "\n"


def pad_line(
    part: PartRecord, placement: PlacementPoint, pad: PadPoint, client: str, factor: float
) -> str:
    return ",".join([
        csv_field(f"{part.part_id}.{pad.pin_name or MISSING_PIN}"),
        format_fixed(pad.x * factor),
        format_fixed(pad.y * factor),
        "0",
        program_id(client, placement.device),
        PAD_DEVICE_TYPE,
    ]) + "\n"


def placement_lines(part: PartRecord, client: str, factor: float) -> list[str]:
    return [placement_line(part, p, client, factor) for p in part.placements]


def pad_lines(part: PartRecord, lookup: PinsLookup, client: str, factor: float) -> list[str]:
    return [
        pad_line(part, placement, pad, client, factor)
        for placement, pad in pair_pads(part, lookup)
    ]


def collect_lines(
    parts: Sequence[PartRecord],
    build: LineBuilder,
    workers: int | None = None,
) -> dict[str, list[str]]:
    """Build lines for every part in parallel, grouped by side code.

    Each worker formats one part into a private buffer and appends it to
    the shared per-side accumulator under a single lock.  Chunks are put
    back into source order once all workers have finished.
    """
    accumulators: dict[str, list[tuple[int, list[str]]]] = {side: [] for side in EMIT_SIDES}
    lock = threading.Lock()

    def work(index: int, part: PartRecord) -> None:
        if part.side not in accumulators:
            return
        lines = build(part)
        if lines:
            with lock:
                accumulators[part.side].append((index, lines))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(work, i, part) for i, part in enumerate(parts)]
        for future in as_completed(futures):
            future.result()

    return {
        side: [line for _, chunk in sorted(chunks, key=itemgetter(0)) for line in chunk]
        for side, chunks in accumulators.items()
    }


def output_path(output_dir: str | Path, program: str, side: str, kind: str) -> Path:
    return Path(output_dir) / f"{program}_faza{SIDE_PHASES[side]}_{kind}.csv"


def write_lines(path: Path, lines: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.writelines(lines)


@dataclass
class EmitReport:
    """Files written for one output kind (TOP or BOT)."""
    kind: str
    paths: list[str] = field(default_factory=list)
    line_counts: dict[str, int] = field(default_factory=dict)
    error: str = ""

    @property
    def success(self) -> bool:
        return bool(self.paths) and not self.error


def write_side_files(
    lines_by_side: dict[str, list[str]],
    program: str,
    kind: str,
    output_dir: str | Path = ".",
) -> EmitReport:
    """Write one file per side that produced lines; sides without lines are skipped."""
    report = EmitReport(kind=kind)
    for side in EMIT_SIDES:
        lines = lines_by_side.get(side, [])
        report.line_counts[side] = len(lines)
        if not lines:
            log.info("No %s lines for side %s, skipping file", kind, side)
            continue
        path = output_path(output_dir, program, side, kind)
        log.info("Writing %d lines to %s", len(lines), path)
        try:
            write_lines(path, lines)
        except OSError as exc:
            log.error("Failed to write %s: %s", path, exc)
            report.error = f"Error writing {path}: {exc}"
            return report
        report.paths.append(str(path))
    return report


def emit_top(
    bom_parts: Sequence[PartRecord],
    client: str,
    program: str,
    factor: float,
    output_dir: str | Path = ".",
    workers: int | None = None,
) -> EmitReport:
    lines = collect_lines(
        bom_parts, lambda part: placement_lines(part, client, factor), workers
    )
    return write_side_files(lines, program, KIND_TOP, output_dir)


def emit_bot(
    bom_parts: Sequence[PartRecord],
    lookup: PinsLookup,
    client: str,
    program: str,
    factor: float,
    output_dir: str | Path = ".",
    workers: int | None = None,
) -> EmitReport:
    lines = collect_lines(
        bom_parts, lambda part: pad_lines(part, lookup, client, factor), workers
    )
    return write_side_files(lines, program, KIND_BOT, output_dir)
