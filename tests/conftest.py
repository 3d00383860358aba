"""Shared test fixtures for docstruct."""

from typing import Optional

import pytest

from docstruct.config import ReconstructionConfig
from docstruct.geometry import Rect, Size
from docstruct.models import (
    BlockLine,
    DocumentBlock,
    ImageContent,
    ListBlock,
    ListItem,
    MarkerKind,
    Paragraph,
    Table,
    TableCell,
    TextFragment,
    TextLine,
)

PAGE = Size(600.0, 800.0)

# ── Helpers ────────────────────────────────────────────────────────────


def make_fragment(
    x: float, y: float, w: float, h: float, text: str = ""
) -> TextFragment:
    """Create a TextFragment from ``(x, y, width, height)``."""
    return TextFragment(bounds=Rect(x, y, w, h), text=text)


def make_line(*fragments: tuple) -> TextLine:
    """Build a TextLine from ``(x, y, w, h, text)`` tuples."""
    frags = sorted((make_fragment(*f) for f in fragments), key=lambda f: f.bounds.min_x)
    return TextLine(tuple(frags))


def make_block_line(x: float, y: float, w: float, h: float, text: str) -> BlockLine:
    return BlockLine(text=text, bounds=Rect(x, y, w, h))


def make_paragraph(lines: list[tuple[float, float, float, float, str]]) -> DocumentBlock:
    """Paragraph block from ``(x, y, w, h, text)`` line tuples."""
    block_lines = [make_block_line(*ln) for ln in lines]
    bounds = block_lines[0].bounds
    for ln in block_lines[1:]:
        bounds = bounds.union(ln.bounds)
    return DocumentBlock(bounds=bounds, content=Paragraph.from_lines(block_lines))


def make_list(
    items: list[str],
    marker: MarkerKind = MarkerKind.decimal,
    x: float = 50.0,
    y: float = 100.0,
    marker_strings: Optional[list[str]] = None,
) -> DocumentBlock:
    """List block with one single-line item per text, 20 units apart."""
    list_items = []
    for i, text in enumerate(items):
        r = Rect(x, y + 20 * i, 200, 12)
        ms = marker_strings[i] if marker_strings else ""
        list_items.append(ListItem(text, ms, r, (BlockLine(text, r),)))
    bounds = Rect(x, y, 200, 20 * len(items))
    return DocumentBlock(bounds=bounds, content=ListBlock(marker, tuple(list_items)))


def make_table(cells: list[list[str]], x: float = 50.0, y: float = 300.0) -> DocumentBlock:
    """Table block laid out on a 100 x 20 grid."""
    rows = []
    for r, row in enumerate(cells):
        out = []
        for c, text in enumerate(row):
            rect = Rect(x + 100 * c, y + 20 * r, 100, 20)
            lines = (BlockLine(text, rect),) if text else ()
            out.append(TableCell((r, r), (c, c), text, rect, lines))
        rows.append(tuple(out))
    bounds = Rect(x, y, 100 * max(len(r) for r in cells), 20 * len(cells))
    return DocumentBlock(bounds=bounds, content=Table(tuple(rows)))


def make_image(x: float, y: float, w: float, h: float, caption=None) -> DocumentBlock:
    return DocumentBlock(bounds=Rect(x, y, w, h), content=ImageContent(caption))


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> ReconstructionConfig:
    """Return a default ReconstructionConfig."""
    return ReconstructionConfig()


@pytest.fixture
def page_size() -> Size:
    return PAGE


@pytest.fixture
def hello_world_fragments() -> list[TextFragment]:
    """Two words on one row and a wider line below.

    Layout:
        "Hello" (0,0)   "World" (60,0)
        "Second line" (0,20)
    All fragments have height 12.
    """
    return [
        make_fragment(0, 0, 50, 12, "Hello"),
        make_fragment(60, 0, 50, 12, "World"),
        make_fragment(0, 20, 100, 12, "Second line"),
    ]


@pytest.fixture
def two_paragraph_fragments() -> list[TextFragment]:
    """Two paragraphs of two lines each separated by a 60-unit gap."""
    return [
        make_fragment(50, 100, 300, 12, "The quick brown fox jumps"),
        make_fragment(50, 114, 280, 12, "over the lazy dog again."),
        make_fragment(50, 200, 300, 12, "A second paragraph starts"),
        make_fragment(50, 214, 200, 12, "further down the page."),
    ]
