from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from .geometry import Rect, union_all


class BlockKind(str, Enum):
    """Tag of a :class:`DocumentBlock` (and of the region it came from)."""

    paragraph = "paragraph"
    list = "list"
    table = "table"
    image = "image"


class MarkerKind(str, Enum):
    """List marker style reported by the region recognizer."""

    bullet = "bullet"
    hyphen = "hyphen"
    lowercase_latin = "lowercase_latin"
    uppercase_latin = "uppercase_latin"
    decimal = "decimal"
    decorative_decimal = "decorative_decimal"
    composite_decimal = "composite_decimal"
    custom = "custom"


def _range_to_list(r: Tuple[int, int]) -> list:
    return [int(r[0]), int(r[1])]


# ── Recognized text ────────────────────────────────────────────────────


@dataclass(frozen=True)
class TextFragment:
    """Smallest unit: a recognized word or run with its bounding rectangle."""

    bounds: Rect
    text: str

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return self.bounds.bbox()

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {"bounds": self.bounds.to_dict(), "text": self.text}

    @classmethod
    def from_dict(cls, d: dict) -> "TextFragment":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(bounds=Rect.from_dict(d["bounds"]), text=d.get("text", ""))


@dataclass(frozen=True)
class TextLine:
    """Fragments judged to share one visual row, ordered left to right."""

    fragments: Tuple[TextFragment, ...] = ()

    def combined_text(self) -> str:
        """Fragment texts joined with a tab (column delimiter)."""
        return "\t".join(f.text for f in self.fragments)

    def top_position(self) -> float:
        """Smallest ``min_y`` over the fragments (0 when empty)."""
        if not self.fragments:
            return 0.0
        return min(f.bounds.min_y for f in self.fragments)

    def bounds(self) -> Rect:
        """Union of the fragment bounds."""
        return union_all((f.bounds for f in self.fragments), Rect.zero())

    def height(self) -> float:
        """Tallest fragment height."""
        return max((f.bounds.height for f in self.fragments), default=0.0)

    def to_dict(self) -> dict:
        return {"fragments": [f.to_dict() for f in self.fragments]}

    @classmethod
    def from_dict(cls, d: dict) -> "TextLine":
        return cls(tuple(TextFragment.from_dict(f) for f in d.get("fragments", [])))


# ── Block content ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class BlockLine:
    """One line of text as it appears inside a composed block."""

    text: str
    bounds: Rect

    def width(self) -> float:
        return self.bounds.width

    def height(self) -> float:
        return self.bounds.height

    def to_dict(self) -> dict:
        return {"text": self.text, "bounds": self.bounds.to_dict()}

    @classmethod
    def from_dict(cls, d: dict) -> "BlockLine":
        return cls(text=d.get("text", ""), bounds=Rect.from_dict(d["bounds"]))


def _lines_text(lines: Tuple[BlockLine, ...]) -> str:
    return "\n".join(line.text for line in lines)


def _lines_from_dicts(items: list) -> Tuple[BlockLine, ...]:
    return tuple(BlockLine.from_dict(x) for x in items)


@dataclass(frozen=True)
class Paragraph:
    """Paragraph content; ``text`` is the line texts joined by newlines."""

    text: str
    lines: Tuple[BlockLine, ...] = ()

    @classmethod
    def from_lines(cls, lines) -> "Paragraph":
        lines = tuple(lines)
        return cls(text=_lines_text(lines), lines=lines)

    def first_line(self) -> Optional[BlockLine]:
        return self.lines[0] if self.lines else None

    def last_line(self) -> Optional[BlockLine]:
        return self.lines[-1] if self.lines else None

    def to_dict(self) -> dict:
        return {"text": self.text, "lines": [ln.to_dict() for ln in self.lines]}

    @classmethod
    def from_dict(cls, d: dict) -> "Paragraph":
        return cls(text=d.get("text", ""), lines=_lines_from_dicts(d.get("lines", [])))


@dataclass(frozen=True)
class ListItem:
    """A single list entry with its (possibly empty) explicit marker string."""

    text: str
    marker_string: str
    bounds: Rect
    lines: Tuple[BlockLine, ...] = ()

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "marker_string": self.marker_string,
            "bounds": self.bounds.to_dict(),
            "lines": [ln.to_dict() for ln in self.lines],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ListItem":
        return cls(
            text=d.get("text", ""),
            marker_string=d.get("marker_string", ""),
            bounds=Rect.from_dict(d["bounds"]),
            lines=_lines_from_dicts(d.get("lines", [])),
        )


@dataclass(frozen=True)
class ListBlock:
    """List content.  ``custom_marker`` is used only with ``MarkerKind.custom``."""

    marker: MarkerKind
    items: Tuple[ListItem, ...] = ()
    custom_marker: str = ""

    def to_dict(self) -> dict:
        return {
            "marker": self.marker.value,
            "custom_marker": self.custom_marker,
            "items": [it.to_dict() for it in self.items],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ListBlock":
        return cls(
            marker=MarkerKind(d.get("marker", MarkerKind.bullet.value)),
            items=tuple(ListItem.from_dict(x) for x in d.get("items", [])),
            custom_marker=d.get("custom_marker", ""),
        )


@dataclass(frozen=True)
class TableCell:
    """Table cell; ranges are inclusive ``(first, last)`` to allow spans."""

    row_range: Tuple[int, int]
    column_range: Tuple[int, int]
    text: str
    bounds: Rect
    lines: Tuple[BlockLine, ...] = ()

    def to_dict(self) -> dict:
        return {
            "row_range": _range_to_list(self.row_range),
            "column_range": _range_to_list(self.column_range),
            "text": self.text,
            "bounds": self.bounds.to_dict(),
            "lines": [ln.to_dict() for ln in self.lines],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TableCell":
        return cls(
            row_range=tuple(d["row_range"]),
            column_range=tuple(d["column_range"]),
            text=d.get("text", ""),
            bounds=Rect.from_dict(d["bounds"]),
            lines=_lines_from_dicts(d.get("lines", [])),
        )


@dataclass(frozen=True)
class Table:
    rows: Tuple[Tuple[TableCell, ...], ...] = ()

    def cells(self):
        """Iterate cells in row-major order."""
        for row in self.rows:
            yield from row

    def to_dict(self) -> dict:
        return {"rows": [[c.to_dict() for c in row] for row in self.rows]}

    @classmethod
    def from_dict(cls, d: dict) -> "Table":
        return cls(
            rows=tuple(
                tuple(TableCell.from_dict(c) for c in row) for row in d.get("rows", [])
            )
        )


@dataclass(frozen=True)
class ImageContent:
    caption: Optional[str] = None

    def to_dict(self) -> dict:
        return {"caption": self.caption}

    @classmethod
    def from_dict(cls, d: dict) -> "ImageContent":
        return cls(caption=d.get("caption"))


BlockContent = Union[Paragraph, ListBlock, Table, ImageContent]

_CONTENT_KINDS = {
    Paragraph: BlockKind.paragraph,
    ListBlock: BlockKind.list,
    Table: BlockKind.table,
    ImageContent: BlockKind.image,
}
_KIND_CONTENT = {kind: cls for cls, kind in _CONTENT_KINDS.items()}


@dataclass(frozen=True)
class DocumentBlock:
    """A structured unit of page content with its geometry."""

    bounds: Rect
    content: BlockContent

    def kind(self) -> BlockKind:
        return _CONTENT_KINDS[type(self.content)]

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return self.bounds.bbox()

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "kind": self.kind().value,
            "bounds": self.bounds.to_dict(),
            "content": self.content.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "DocumentBlock":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        content_cls = _KIND_CONTENT[BlockKind(d["kind"])]
        return cls(
            bounds=Rect.from_dict(d["bounds"]),
            content=content_cls.from_dict(d.get("content", {})),
        )


# ── Semantic region hints (recognizer input) ───────────────────────────
#
# Region geometry is expressed in the recognizer's raster space, which may
# differ from the page space of the fragments.  Nested ``lines`` share the
# region's coordinate space.


@dataclass(frozen=True)
class ParagraphRegion:
    bounds: Rect
    transcript: str = ""
    lines: Tuple[BlockLine, ...] = ()

    kind = BlockKind.paragraph


@dataclass(frozen=True)
class ListItemRegion:
    bounds: Rect
    marker_string: str = ""
    transcript: str = ""
    lines: Tuple[BlockLine, ...] = ()


@dataclass(frozen=True)
class ListRegion:
    bounds: Rect
    marker: MarkerKind = MarkerKind.bullet
    items: Tuple[ListItemRegion, ...] = ()
    custom_marker: str = ""

    kind = BlockKind.list


@dataclass(frozen=True)
class TableCellRegion:
    bounds: Rect
    row_range: Tuple[int, int]
    column_range: Tuple[int, int]
    transcript: str = ""
    lines: Tuple[BlockLine, ...] = ()


@dataclass(frozen=True)
class TableRegion:
    bounds: Rect
    rows: Tuple[Tuple[TableCellRegion, ...], ...] = ()

    kind = BlockKind.table


@dataclass(frozen=True)
class ImageRegion:
    bounds: Rect
    caption: Optional[str] = None

    kind = BlockKind.image


SemanticRegion = Union[ParagraphRegion, ListRegion, TableRegion, ImageRegion]
