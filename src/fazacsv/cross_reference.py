"""Join BOM placements against PINS pads by part identifier and side."""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Iterator

from .models import PadPoint, PartRecord, PlacementPoint

PinsLookup = dict[str, dict[str, PartRecord]]


def build_pins_lookup(pins_parts: Iterable[PartRecord] | None) -> PinsLookup:
    """Index PINS parts by identifier, then by side code."""
    lookup: PinsLookup = defaultdict(dict)
    for part in pins_parts or ():
        lookup[part.part_id].setdefault(part.side, part)
    return dict(lookup)


def find_pins_part(bom_part: PartRecord, lookup: PinsLookup) -> PartRecord | None:
    return lookup.get(bom_part.part_id, {}).get(bom_part.side)


def pair_pads(
    bom_part: PartRecord, lookup: PinsLookup
) -> Iterator[tuple[PlacementPoint, PadPoint]]:
    """Yield every (placement, pad) pair for a BOM part.

    Parts without a same-side PINS counterpart yield nothing.
    """
    pins_part = find_pins_part(bom_part, lookup)
    if pins_part is None:
        return
    pads = pins_part.pads
    for placement in bom_part.placements:
        for pad in pads:
            yield placement, pad
