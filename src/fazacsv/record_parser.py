"""Line-level recognition of BOM (placement) and PINS (pad) export records.

Each input line is tried against the rules for its format in priority
order; the first rule that matches wins.  A line that matches nothing is
not an error: export files carry headers, banners and comments that are
simply skipped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Union

from .errors import UnknownFormatError
from .models import FileFormat

PLACEMENT_PATTERN = re.compile(
    r"^\s*(\S+)\s*,\s*([0-9.-]+),\s*([0-9.-]+),\s*([0-9.-]+),\s*(\S+)\s*,"
    r"\s*\((.)?\),\s*([0-9.-]+),\s*(\S+),\s*'([^']*)',\s*'([^']*)';"
)
PAD_HEADER_PATTERN = re.compile(r"^Part\s+(\S+)\s+\((\w+)\)")
PAD_DATA_PATTERN = re.compile(
    r"^\s*(\S+)\s+(\S+)\s+([0-9.-]+)\s+([0-9.-]+)\s+([0-9.-]+)\s+(\S+)$"
)
PAD_QUOTED_PATTERN = re.compile(
    r'^\s*"(\S+)","(\S+)","([0-9.-]+)","([0-9.-]+)","(\w+)","(\S+)","",""$'
)

RETAINED_SHAPES = frozenset({"PTH", "RADIAL"})
UNLOADED_DEVICES = frozenset({"NOT_LOADED", "NOT_LOAD", "NO_LOADED", "NO_LOAD"})

LAYER_NAMES = {"Top": 1, "Bottom": 2}


@dataclass(frozen=True)
class PlacementFields:
    part_id: str
    x: float
    y: float
    rotation: float
    grid: str
    side: str  # empty when the parentheses are empty
    size: float
    shape: str
    device: str
    outline: str

    @property
    def retained(self) -> bool:
        """Through-hole/radial parts that are actually loaded."""
        return self.shape in RETAINED_SHAPES and self.device not in UNLOADED_DEVICES


@dataclass(frozen=True)
class PadHeader:
    part_id: str
    side: str


@dataclass(frozen=True)
class PadFields:
    pin_name: str
    x: float
    y: float
    layer: str  # raw token, see resolve_layer()
    net: str = ""
    part_id: str | None = None  # set only by the quoted 8-field form


Fields = Union[PlacementFields, PadHeader, PadFields]
Rule = Callable[[str], "Fields | None"]


def _float(token: str) -> float | None:
    try:
        return float(token)
    except ValueError:
        return None


def resolve_format(fmt: FileFormat | str) -> FileFormat:
    """Accept a FileFormat or its name/value ("BOM", "PINS", "PLACEMENT", "PAD")."""
    if isinstance(fmt, FileFormat):
        return fmt
    if isinstance(fmt, str):
        key = fmt.strip().upper()
        for candidate in FileFormat:
            if key in (candidate.name, candidate.value):
                return candidate
    raise UnknownFormatError(f"Unknown file type: {fmt!r}")


def resolve_layer(token: str) -> int | None:
    """Map a layer token to its number: Top=1, Bottom=2, else an integer or None."""
    if token in LAYER_NAMES:
        return LAYER_NAMES[token]
    try:
        return int(token)
    except ValueError:
        return None


# --- Placement rules ---


def match_placement(line: str) -> PlacementFields | None:
    m = PLACEMENT_PATTERN.match(line)
    if m is None:
        return None
    part, x, y, rot, grid, side, size, shape, device, outline = m.groups()
    nums = [_float(t) for t in (x, y, rot, size)]
    if any(n is None for n in nums):
        return None
    return PlacementFields(
        part_id=part,
        x=nums[0],
        y=nums[1],
        rotation=nums[2],
        grid=grid,
        side=side or "",
        size=nums[3],
        shape=shape,
        device=device,
        outline=outline,
    )


# --- Pad rules ---


def match_pad_header(line: str) -> PadHeader | None:
    m = PAD_HEADER_PATTERN.match(line)
    if m is None:
        return None
    return PadHeader(part_id=m.group(1), side=m.group(2))


def match_pad_data(line: str) -> PadFields | None:
    """Whitespace-separated data line: pin, ignored, x, y, ignored, layer."""
    m = PAD_DATA_PATTERN.match(line)
    if m is None:
        return None
    pin, _, x, y, _, layer = m.groups()
    fx, fy = _float(x), _float(y)
    if fx is None or fy is None:
        return None
    return PadFields(pin_name=pin, x=fx, y=fy, layer=layer)


def match_pad_quoted(line: str) -> PadFields | None:
    """Quoted CSV data line: part, pin, x, y, layer, net, "", ""."""
    m = PAD_QUOTED_PATTERN.match(line)
    if m is None:
        return None
    part, pin, x, y, layer, net = m.groups()
    fx, fy = _float(x), _float(y)
    if fx is None or fy is None:
        return None
    return PadFields(pin_name=pin, x=fx, y=fy, layer=layer, net=net, part_id=part)


RULES: dict[FileFormat, tuple[Rule, ...]] = {
    FileFormat.PLACEMENT: (match_placement,),
    FileFormat.PAD: (match_pad_header, match_pad_data, match_pad_quoted),
}


def match_line(line: str, fmt: FileFormat | str) -> Fields | None:
    """Return the fields of the first rule for ``fmt`` that matches, or None."""
    for rule in RULES[resolve_format(fmt)]:
        fields = rule(line)
        if fields is not None:
            return fields
    return None


def split_lines(text: str) -> list[str]:
    """Split export text into stripped, non-empty lines."""
    lines = (line.strip() for line in re.split(r"\r?\n", text))
    return [line for line in lines if line]
