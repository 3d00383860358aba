"""Tests for docstruct.export.transcript: plain-text rendering."""

import pytest
from conftest import make_image, make_list, make_paragraph, make_table

from docstruct.export.transcript import indent_continuation, render_transcript, resolve_marker
from docstruct.geometry import Rect
from docstruct.models import BlockLine, DocumentBlock, ListBlock, ListItem, MarkerKind, Paragraph


class TestResolveMarker:
    @pytest.mark.parametrize(
        "marker, index, expected",
        [
            (MarkerKind.bullet, 0, "-"),
            (MarkerKind.hyphen, 4, "-"),
            (MarkerKind.lowercase_latin, 1, "b."),
            (MarkerKind.uppercase_latin, 0, "A."),
            (MarkerKind.decimal, 2, "3."),
            (MarkerKind.decorative_decimal, 0, "1."),
            (MarkerKind.composite_decimal, 9, "10."),
            (MarkerKind.custom, 0, "-"),
        ],
    )
    def test_generated(self, marker, index, expected):
        assert resolve_marker(marker, index) == expected

    def test_custom_marker(self):
        assert resolve_marker(MarkerKind.custom, 3, custom="*") == "*"

    def test_explicit_marker_string_wins(self):
        assert resolve_marker(MarkerKind.decimal, 0, marker_string="iv)") == "iv)"

    def test_latin_wraps(self):
        assert resolve_marker(MarkerKind.lowercase_latin, 26) == "a."


class TestIndentContinuation:
    def test_single_line(self):
        assert indent_continuation("text", "- ") == "- text"

    def test_continuation_lines_aligned(self):
        assert indent_continuation("one\ntwo", "10. ") == "10. one\n    two"


class TestRenderTranscript:
    def test_mixed_blocks(self):
        blocks = [
            make_paragraph([(50, 50, 300, 12, "First paragraph.")]),
            make_list(["First item", "Second item"]),
            make_table([["A1", "B1"], ["A2", "B2"]]),
            make_image(300, 500, 100, 80, "Sample image"),
        ]
        assert render_transcript(blocks) == (
            "First paragraph.\n\n"
            "1. First item\n2. Second item\n\n"
            "A1 | B1\nA2 | B2\n\n"
            "[Image: Sample image]"
        )

    def test_multiline_list_item(self):
        r = Rect(50, 100, 200, 26)
        item = ListItem(
            "line one\nline two",
            "",
            r,
            (BlockLine(" line one ", Rect(50, 100, 200, 12)), BlockLine("line two", Rect(50, 114, 200, 12))),
        )
        block = DocumentBlock(r, ListBlock(MarkerKind.bullet, (item,)))
        assert render_transcript([block]) == "- line one\n  line two"

    def test_item_text_fallback(self):
        item = ListItem("from text", "", Rect(0, 0, 10, 10))
        block = DocumentBlock(Rect(0, 0, 10, 10), ListBlock(MarkerKind.decimal, (item,)))
        assert render_transcript([block]) == "1. from text"

    def test_paragraph_lines_trimmed(self):
        block = make_paragraph([(0, 0, 100, 12, "  padded "), (0, 14, 100, 12, "   ")])
        assert render_transcript([block]) == "padded"

    def test_empty_blocks_skipped(self):
        empty = DocumentBlock(Rect(0, 0, 10, 10), Paragraph(""))
        image = make_image(0, 0, 50, 50)
        assert render_transcript([empty, image]) == "[Image]"

    def test_empty_cell_placeholder(self):
        assert render_transcript([make_table([["A", ""]])]) == "A |  "

    def test_no_blocks(self):
        assert render_transcript([]) == ""
