"""Parse -> aggregate -> cross-reference -> emit, with progress reporting.

``generate`` is the single entry point used by front-ends.  It never
raises: every failure is reported through the returned GenerationResult.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Union

from .aggregator import parse_file, parse_text
from .cross_reference import build_pins_lookup
from .csv_emitter import emit_bot, emit_top
from .errors import ValidationError
from .models import FileFormat, GenerationResult, ParseResult, Stage

log = logging.getLogger(__name__)

DEFAULT_CLIENT = "UNKNOWN_CLIENT"
PINS_PLACEHOLDER = "Click to select PINS"

# Fixed progress checkpoints, in percent
PROGRESS: dict[str, int] = {
    "start": 0,
    "bom": 10,
    "pins": 30,
    "top": 50,
    "bot": 70,
    "done": 100,
}

ProgressCallback = Callable[[int, str], None]
Source = Union[ParseResult, Path, str]


def _no_progress(percent: int, message: str) -> None:
    pass


def load_source(source: Source, fmt: FileFormat) -> ParseResult:
    """Parse a source that is already parsed, a file path, or raw export text."""
    if isinstance(source, ParseResult):
        return source
    if isinstance(source, Path):
        return parse_file(source, fmt)
    if "\n" not in source:
        # single-line strings are paths; export text always spans lines
        return parse_file(source, fmt)
    return parse_text(source, fmt)


def has_pins(pins: Source | None) -> bool:
    if pins is None:
        return False
    if isinstance(pins, str):
        return bool(pins.strip()) and pins != PINS_PLACEHOLDER
    return True


class Pipeline:
    """One generation run; tracks the current stage and reports progress."""

    def __init__(self, progress: ProgressCallback | None = None) -> None:
        self.progress = progress or _no_progress
        self.stage = Stage.IDLE
        self.start_time = time.perf_counter()

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self.start_time

    def enter(self, stage: Stage, percent: int, message: str) -> None:
        log.debug("Stage %s -> %s (%d%%)", self.stage.value, stage.value, percent)
        self.stage = stage
        self.progress(percent, message)

    def fail(self, message: str) -> GenerationResult:
        self.stage = Stage.FAILED
        try:
            self.progress(0, "Error: CSV generation failed")
        except Exception:
            log.exception("Progress callback failed while reporting an error")
        return GenerationResult(
            success=False,
            top_success=False,
            bot_success=False,
            message=message,
            elapsed_time=self.elapsed,
            stage=Stage.FAILED,
        )

    def run(
        self,
        bom: Source,
        pins: Source | None,
        client: str,
        program: str,
        factor: float | None,
        output_dir: str | Path,
        workers: int | None,
    ) -> GenerationResult:
        self.enter(Stage.VALIDATING, PROGRESS["start"], "Starting CSV generation...")
        if not program:
            raise ValidationError("No part number provided")
        if not client:
            client = DEFAULT_CLIENT
            log.info("No client specified, using: %s", client)
        log.info("Starting CSV generation for client: %s, part: %s", client, program)

        self.enter(Stage.PARSING_BOM, PROGRESS["bom"], "Parsing BOM data...")
        bom_result = load_source(bom, FileFormat.PLACEMENT)
        if not bom_result.parts:
            raise ValidationError("No BOM data provided")
        if factor is None:
            factor = bom_result.factor
            log.info("Using detected BOM unit %s (factor %s)", bom_result.unit, factor)

        pins_result = None
        if has_pins(pins):
            self.enter(Stage.PARSING_PINS, PROGRESS["pins"], "Parsing PINS data...")
            pins_result = load_source(pins, FileFormat.PAD)

        self.enter(Stage.GENERATING, PROGRESS["top"], "Writing top-side CSV files...")
        top = emit_top(bom_result.parts, client, program, factor, output_dir, workers)
        if top.error:
            return self.fail(top.error)

        bot_paths: list[str] = []
        if pins_result is not None and pins_result.parts:
            self.progress(PROGRESS["bot"], "Writing bottom-side CSV files...")
            lookup = build_pins_lookup(pins_result.parts)
            bot = emit_bot(bom_result.parts, lookup, client, program, factor, output_dir, workers)
            if bot.error:
                return self.fail(bot.error)
            bot_paths = bot.paths
        else:
            log.info("No PINS data provided, skipping bottom-side CSV")

        top_ok = bool(top.paths)
        bot_ok = bool(bot_paths)
        if top_ok and bot_ok:
            message = "Successfully generated TOP and BOT CSV files"
        elif top_ok:
            message = "Successfully generated TOP CSV files only"
        elif bot_ok:
            message = "Successfully generated BOT CSV files only"
        else:
            message = "No CSV files were generated"

        self.enter(Stage.DONE, PROGRESS["done"], "CSV generation complete")
        elapsed = self.elapsed
        log.info("CSV generation completed in %.3f seconds", elapsed)
        return GenerationResult(
            success=top_ok or bot_ok,
            top_success=top_ok,
            bot_success=bot_ok,
            message=message,
            top_paths=tuple(top.paths),
            bot_paths=tuple(bot_paths),
            elapsed_time=elapsed,
            stage=Stage.DONE,
        )


def generate(
    bom: Source,
    pins: Source | None = None,
    client: str = "",
    program: str = "",
    factor: float | None = None,
    progress: ProgressCallback | None = None,
    output_dir: str | Path = ".",
    workers: int | None = None,
) -> GenerationResult:
    """Generate the faza CSV files for one BOM (and optional PINS) export.

    Args:
        bom: Parsed BOM data, a path to the BOM export, or its raw text
            (a str is read as text only when it spans several lines).
        pins: Same for the PINS export; None, "" or the UI placeholder
            skips the bottom-side (pad) files.
        client: Client identifier; empty means UNKNOWN_CLIENT.
        program: Program/part number, used in the file names. Required.
        factor: Coordinate multiplier (1.0 or 25.4). None uses the unit
            detected in the BOM export.
        progress: Called as ``progress(percent, message)`` at each stage.
        output_dir: Directory the CSV files are written to.
        workers: Thread count for line building (None = executor default).

    Returns:
        GenerationResult; failures are reported there, never raised.
    """
    pipeline = Pipeline(progress)
    try:
        return pipeline.run(bom, pins, client, program, factor, output_dir, workers)
    except ValidationError as exc:
        log.warning("Validation failed: %s", exc)
        return pipeline.fail(str(exc))
    except Exception as exc:
        log.exception("CSV generation failed")
        return pipeline.fail(f"Error generating CSV: {exc}")
