"""Tests for docstruct.models: block kinds and dict round-trips."""

import json

import pytest
from conftest import make_fragment, make_image, make_list, make_paragraph, make_table

from docstruct.geometry import Rect
from docstruct.models import (
    BlockKind,
    DocumentBlock,
    ImageRegion,
    ListRegion,
    MarkerKind,
    Paragraph,
    ParagraphRegion,
    TableRegion,
    TextFragment,
)


class TestTextFragment:
    def test_bbox(self):
        assert make_fragment(10, 20, 30, 40, "x").bbox() == (10, 20, 40, 60)

    def test_round_trip(self):
        f = TextFragment(Rect(1.23456, 2, 3, 4), "word")
        restored = TextFragment.from_dict(f.to_dict())
        assert restored.text == "word"
        assert restored.bounds.min_x == pytest.approx(1.235)


class TestParagraph:
    def test_from_lines_joins_with_newline(self):
        block = make_paragraph([(0, 0, 100, 12, "one"), (0, 14, 80, 12, "two")])
        assert block.content.text == "one\ntwo"
        assert block.content.first_line().text == "one"
        assert block.content.last_line().text == "two"
        assert block.bounds == Rect(0, 0, 100, 26)

    def test_empty_paragraph_lines(self):
        p = Paragraph("")
        assert p.first_line() is None
        assert p.last_line() is None


class TestDocumentBlock:
    @pytest.mark.parametrize(
        "block, kind",
        [
            (make_paragraph([(0, 0, 10, 10, "p")]), BlockKind.paragraph),
            (make_list(["a", "b"]), BlockKind.list),
            (make_table([["a", "b"]]), BlockKind.table),
            (make_image(0, 0, 50, 50, "cap"), BlockKind.image),
        ],
    )
    def test_kind(self, block, kind):
        assert block.kind() == kind

    @pytest.mark.parametrize(
        "block",
        [
            make_paragraph([(0, 0, 100, 12, "one"), (0, 14, 80, 12, "two")]),
            make_list(["a", "b"], marker=MarkerKind.custom, marker_strings=["*", "*"]),
            make_table([["A1", ""], ["A2", "B2"]]),
            make_image(10, 20, 30, 40),
            make_image(10, 20, 30, 40, "A caption"),
        ],
    )
    def test_round_trip_through_json(self, block):
        data = json.loads(json.dumps(block.to_dict()))
        assert DocumentBlock.from_dict(data) == block

    def test_to_dict_shape(self):
        d = make_table([["A1", "B1"]]).to_dict()
        assert d["kind"] == "table"
        assert d["bounds"] == {"x": 50, "y": 300, "width": 200, "height": 20}
        cell = d["content"]["rows"][0][1]
        assert cell["row_range"] == [0, 0]
        assert cell["column_range"] == [1, 1]

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValueError):
            DocumentBlock.from_dict({"kind": "chart", "bounds": Rect.zero().to_dict()})


class TestRegions:
    def test_region_kinds(self):
        r = Rect(0, 0, 1, 1)
        assert ParagraphRegion(r).kind == BlockKind.paragraph
        assert ListRegion(r).kind == BlockKind.list
        assert TableRegion(r).kind == BlockKind.table
        assert ImageRegion(r).kind == BlockKind.image

    def test_list_region_default_marker(self):
        assert ListRegion(Rect.zero()).marker == MarkerKind.bullet
