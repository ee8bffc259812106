"""Build the per-part, per-side model from recognized export records."""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path

from .models import FileFormat, PadPoint, ParseResult, PartRecord, PlacementPoint
from .record_parser import (
    PadFields,
    PadHeader,
    PlacementFields,
    match_line,
    resolve_format,
    resolve_layer,
    split_lines,
)

log = logging.getLogger(__name__)

# Unit name -> multiplier applied to exported coordinates
UNIT_FACTORS: dict[str, float] = {
    "cm": 1.0,
    "mm": 1.0,
    "inch": 25.4,
}
DEFAULT_UNIT = "cm"

_INCH_PATTERN = re.compile(r"\binch(es)?\b", re.IGNORECASE)


def detect_unit(text: str) -> tuple[str, float]:
    """Guess the export unit: the word "inch" or "inches" means inches."""
    if _INCH_PATTERN.search(text):
        return "inch", UNIT_FACTORS["inch"]
    return DEFAULT_UNIT, UNIT_FACTORS[DEFAULT_UNIT]


class PartAggregator:
    """Collects PartRecords for one file, keyed by (part_id, side)."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str], PartRecord] = {}
        self._current: PartRecord | None = None
        self.skipped = 0

    @property
    def records(self) -> list[PartRecord]:
        return list(self._records.values())

    def _bucket(self, part_id: str, side: str) -> PartRecord:
        key = (part_id, side)
        record = self._records.get(key)
        if record is None:
            record = PartRecord(part_id=part_id, side=side)
            self._records[key] = record
        return record

    def _find_part(self, part_id: str) -> PartRecord | None:
        for (pid, _), record in self._records.items():
            if pid == part_id:
                return record
        return None

    def add(self, fields: PlacementFields | PadHeader | PadFields) -> None:
        if isinstance(fields, PlacementFields):
            self.add_placement(fields)
        elif isinstance(fields, PadHeader):
            self._current = self._bucket(fields.part_id, fields.side)
        else:
            self.add_pad(fields)

    def add_placement(self, fields: PlacementFields) -> None:
        if not fields.retained:
            self.skipped += 1
            return
        record = self._bucket(fields.part_id, fields.side)
        record.add_placement(
            PlacementPoint(
                x=fields.x,
                y=fields.y,
                rotation=fields.rotation,
                grid=fields.grid,
                shape=fields.shape,
                device=fields.device,
                outline=fields.outline,
            )
        )

    def add_pad(self, fields: PadFields) -> None:
        if fields.part_id is not None:
            target = self._find_part(fields.part_id)
            if target is None:
                target = self._bucket(fields.part_id, fields.layer[:1])
        else:
            target = self._current
        if target is None:
            self.skipped += 1
            return

        layer = resolve_layer(fields.layer)
        if layer is None:
            log.debug("Dropping pad %s: unparseable layer %r", fields.pin_name, fields.layer)
            self.skipped += 1
            return
        target.add_pad(
            PadPoint(pin_name=fields.pin_name, x=fields.x, y=fields.y, layer=layer, net=fields.net)
        )


def parse_text(text: str, fmt: FileFormat | str) -> ParseResult:
    """Parse BOM or PINS export text into a ParseResult.

    Args:
        text: Full export contents.
        fmt: FileFormat, or its legacy name "BOM"/"PINS".

    Returns:
        ParseResult with the PartRecords in first-seen order.

    Raises:
        UnknownFormatError: ``fmt`` is not a known format.
    """
    file_format = resolve_format(fmt)
    start = time.perf_counter()

    aggregator = PartAggregator()
    for line in split_lines(text):
        fields = match_line(line, file_format)
        if fields is None:
            log.debug("Skipping unrecognized line: %s", line)
            aggregator.skipped += 1
            continue
        aggregator.add(fields)

    parts = tuple(aggregator.records)
    unit, factor = detect_unit(text)
    elapsed = time.perf_counter() - start

    if parts:
        message = f"Parsed {len(parts)} parts from {file_format.value} data"
    else:
        message = f"No records recognized in {file_format.value} data"
    log.info("%s (%d lines skipped, %.3fs)", message, aggregator.skipped, elapsed)

    return ParseResult(
        parts=parts,
        success=bool(parts),
        factor=factor,
        message=message,
        parse_time=elapsed,
        unit=unit,
        fmt=file_format,
    )


def parse_file(path: str | Path, fmt: FileFormat | str) -> ParseResult:
    """Read an export file and parse it; see parse_text()."""
    file_format = resolve_format(fmt)
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    log.info("Parsing %s file %s", file_format.value, path)
    return parse_text(text, file_format)
