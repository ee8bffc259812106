"""Tests for the aggregator module."""

from __future__ import annotations

from pathlib import Path

import pytest

from fazacsv.aggregator import detect_unit, parse_file, parse_text
from fazacsv.errors import UnknownFormatError
from fazacsv.models import FileFormat, PadPoint, PlacementPoint

FIXTURES = Path(__file__).parent / "fixtures"


def _parts(result):
    return {(p.part_id, p.side): p for p in result.parts}


class TestPlacementAggregation:
    """Test building PartRecords from BOM text."""

    def test_fixture_parts(self):
        result = parse_file(FIXTURES / "board.bom", "BOM")
        assert result.success
        assert result.fmt is FileFormat.PLACEMENT
        assert [(p.part_id, p.side) for p in result.parts] == [
            ("R1", "T"), ("C1", "T"), ("U1", "B"),
        ]

    def test_duplicate_line_is_idempotent(self):
        line = "R1, 1.0, 2.0, 90.0, A1, (T), 0.5, PTH, 'RES_10K', 'AXIAL_400';"
        once = parse_text(line, "BOM")
        twice = parse_text(f"{line}\n{line}\n", "BOM")
        assert len(once.parts[0].placements) == 1
        assert len(twice.parts[0].placements) == 1
        assert twice.parts[0].placements == once.parts[0].placements

    def test_distinct_keys_kept_in_order(self):
        text = "\n".join([
            "R1, 1.0, 2.0, 0, A1, (T), 0.5, PTH, 'RES', 'AX';",
            "R1, 1.0, 2.0, 90, A1, (T), 0.5, PTH, 'RES', 'AX';",
            "R1, 1.0, 2.5, 0, A1, (T), 0.5, PTH, 'RES', 'AX';",
            "R1, 1.0, 2.0, 0, A2, (T), 0.5, RADIAL, 'OTHER', 'AX';",
        ])
        [part] = parse_text(text, "BOM").parts
        keys = [(p.x, p.y, p.rotation) for p in part.placements]
        assert keys == [(1.0, 2.0, 0.0), (1.0, 2.0, 90.0), (1.0, 2.5, 0.0)]
        assert len(set(keys)) == len(keys)

    def test_same_part_different_sides(self):
        text = "\n".join([
            "R1, 1.0, 2.0, 0, A1, (T), 0.5, PTH, 'RES', 'AX';",
            "R1, 1.0, 2.0, 0, A1, (B), 0.5, PTH, 'RES', 'AX';",
        ])
        parts = _parts(parse_text(text, "BOM"))
        assert set(parts) == {("R1", "T"), ("R1", "B")}

    def test_filtered_lines_create_no_parts(self):
        text = "\n".join([
            "R2, 0.5, 0.5, 0, A1, (T), 0.5, SMD, 'RES_1K', '0603';",
            "R3, 0.7, 0.7, 0, A1, (T), 0.5, PTH, 'NOT_LOADED', 'AX';",
            "R4, 0.7, 0.7, 0, A1, (T), 0.5, RADIAL, 'NO_LOAD', 'AX';",
        ])
        result = parse_text(text, "BOM")
        assert result.parts == ()
        assert not result.success
        assert "No records" in result.message

    def test_side_codes_are_not_normalized(self):
        text = "\n".join([
            "R1, 1.0, 2.0, 0, A1, (T), 0.5, PTH, 'RES', 'AX';",
            "R1, 3.0, 2.0, 0, A1, (t), 0.5, PTH, 'RES', 'AX';",
        ])
        assert set(_parts(parse_text(text, "BOM"))) == {("R1", "T"), ("R1", "t")}

    def test_point_fields(self):
        result = parse_file(FIXTURES / "board.bom", FileFormat.PLACEMENT)
        c1 = _parts(result)[("C1", "T")]
        assert c1.points == [
            PlacementPoint(
                x=3.5, y=-1.25, rotation=0.0, grid="B2",
                shape="RADIAL", device="CAP_100U", outline="RAD_200",
            )
        ]


class TestPadAggregation:
    """Test building PartRecords from PINS text."""

    def test_fixture_parts(self):
        result = parse_file(FIXTURES / "board.pins", "PINS")
        parts = _parts(result)
        assert list(parts) == [("R1", "T"), ("U1", "B"), ("C1", "T")]
        assert [p.pin_name for p in parts[("R1", "T")].pads] == ["1", "2"]
        assert parts[("U1", "B")].pads == [PadPoint(pin_name="1", x=4.0, y=4.0, layer=2, net="")]
        assert [p.net for p in parts[("C1", "T")].pads] == ["GND", "VCC"]

    def test_pads_are_not_deduplicated(self):
        text = "Part R1 (T)\n1 a 1.0 2.0 0 Top\n1 a 1.0 2.0 0 Top\n"
        [part] = parse_text(text, "PINS").parts
        assert len(part.pads) == 2

    def test_data_before_header_is_skipped(self):
        text = "1 a 1.0 2.0 0 Top\nPart R1 (T)\n2 b 1.0 2.0 0 Top\n"
        [part] = parse_text(text, "PINS").parts
        assert [p.pin_name for p in part.pads] == ["2"]

    def test_unparseable_layer_drops_point(self):
        text = "Part R1 (T)\n1 a 1.0 2.0 0 Inner\n2 b 1.0 2.0 0 3\n"
        [part] = parse_text(text, "PINS").parts
        assert [(p.pin_name, p.layer) for p in part.pads] == [("2", 3)]

    def test_repeated_header_reuses_part(self):
        text = "Part R1 (T)\n1 a 1.0 2.0 0 Top\nPart R1 (T)\n2 b 1.0 2.0 0 Top\n"
        [part] = parse_text(text, "PINS").parts
        assert [p.pin_name for p in part.pads] == ["1", "2"]

    def test_quoted_line_attaches_to_existing_part(self):
        text = 'Part R1 (T)\n1 a 1.0 2.0 0 Top\n"R1","2","1.4","2.0","Bottom","N1","",""\n'
        [part] = parse_text(text, "PINS").parts
        assert part.side == "T"
        assert [(p.pin_name, p.layer) for p in part.pads] == [("1", 1), ("2", 2)]

    def test_quoted_line_side_from_layer(self):
        text = '"Q1","1","0.0","0.0","Bottom","N1","",""\n'
        [part] = parse_text(text, "PINS").parts
        assert (part.part_id, part.side) == ("Q1", "B")


class TestParseResult:
    def test_unknown_format_raises(self):
        with pytest.raises(UnknownFormatError):
            parse_text("anything", "DXF")

    def test_inch_detection(self):
        result = parse_file(FIXTURES / "board.bom", "BOM")
        assert result.unit == "inch"
        assert result.factor == 25.4

    def test_default_unit(self):
        assert detect_unit("UNITS: MM") == ("cm", 1.0)
        assert detect_unit("Units: INCHES") == ("inch", 25.4)

    def test_inch_must_be_a_whole_word(self):
        assert detect_unit("Device: PINCH_VALVE") == ("cm", 1.0)
        line = "V1, 1.0, 2.0, 0, A1, (T), 0.5, PTH, 'PINCH_VALVE', 'AX';"
        result = parse_text(line, "BOM")
        assert (result.unit, result.factor) == ("cm", 1.0)

    def test_parse_time_recorded(self):
        result = parse_text("", "PINS")
        assert result.parse_time >= 0.0
        assert len(result) == 0

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            parse_file(tmp_path / "missing.bom", "BOM")
