"""Data classes for parsed BOM/PINS exports and generation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Side codes as they appear in the export files
SIDE_TOP = "T"
SIDE_BOTTOM = "B"
EMIT_SIDES = (SIDE_TOP, SIDE_BOTTOM)


class FileFormat(Enum):
    """Input format selector."""
    PLACEMENT = "BOM"
    PAD = "PINS"


class Stage(Enum):
    """Pipeline states, in order of progression."""
    IDLE = "idle"
    VALIDATING = "validating"
    PARSING_BOM = "parsing_bom"
    PARSING_PINS = "parsing_pins"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class PlacementPoint:
    x: float
    y: float
    rotation: float  # degrees
    grid: str
    shape: str  # "PTH" or "RADIAL" once retained
    device: str
    outline: str

    @property
    def dedup_key(self) -> str:
        return f"{self.x}|{self.y}|{self.rotation}"


@dataclass(frozen=True)
class PadPoint:
    pin_name: str
    x: float
    y: float
    layer: int  # 1 = Top, 2 = Bottom, otherwise the numeric layer
    net: str


DataPoint = PlacementPoint | PadPoint


@dataclass
class PartRecord:
    """All data points for one part on one side."""
    part_id: str
    side: str  # side code, e.g. "T" or "B"
    points: list[DataPoint] = field(default_factory=list)
    _seen: set[str] = field(default_factory=set, repr=False, compare=False)

    @property
    def placements(self) -> list[PlacementPoint]:
        return [p for p in self.points if isinstance(p, PlacementPoint)]

    @property
    def pads(self) -> list[PadPoint]:
        return [p for p in self.points if isinstance(p, PadPoint)]

    def add_placement(self, point: PlacementPoint) -> bool:
        """Append a placement unless its (x, y, rotation) key was seen."""
        key = point.dedup_key
        if key in self._seen:
            return False
        self._seen.add(key)
        self.points.append(point)
        return True

    def add_pad(self, point: PadPoint) -> None:
        self.points.append(point)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one export file."""
    parts: tuple[PartRecord, ...]
    success: bool
    factor: float  # 1.0 native unit, 25.4 for inch
    message: str
    parse_time: float  # seconds
    unit: str = "cm"
    fmt: FileFormat = FileFormat.PLACEMENT

    def __len__(self) -> int:
        return len(self.parts)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one CSV generation call."""
    success: bool
    top_success: bool
    bot_success: bool
    message: str
    top_paths: tuple[str, ...] = ()
    bot_paths: tuple[str, ...] = ()
    elapsed_time: float = 0.0
    stage: Stage = Stage.DONE

    @property
    def paths(self) -> tuple[str, ...]:
        return self.top_paths + self.bot_paths

    @property
    def top_path(self) -> str:
        return self.top_paths[0] if self.top_paths else ""

    @property
    def bot_path(self) -> str:
        return self.bot_paths[0] if self.bot_paths else ""
