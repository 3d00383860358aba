"""Plain-text transcript rendering of an ordered block list."""

from __future__ import annotations

from typing import Iterable, List, Sequence

from ..models import (
    BlockLine,
    DocumentBlock,
    ImageContent,
    ListBlock,
    MarkerKind,
    Paragraph,
    Table,
)

_DECIMAL_MARKERS = (
    MarkerKind.decimal,
    MarkerKind.decorative_decimal,
    MarkerKind.composite_decimal,
)


def resolve_marker(
    marker: MarkerKind, index: int, marker_string: str = "", custom: str = ""
) -> str:
    """Marker text for the item at *index*; an explicit *marker_string* wins."""
    if marker_string:
        return marker_string
    if marker in (MarkerKind.bullet, MarkerKind.hyphen):
        return "-"
    if marker == MarkerKind.lowercase_latin:
        return chr(ord("a") + index % 26) + "."
    if marker == MarkerKind.uppercase_latin:
        return chr(ord("A") + index % 26) + "."
    if marker in _DECIMAL_MARKERS:
        return f"{index + 1}."
    return custom or "-"


def indent_continuation(content: str, prefix: str) -> str:
    """Prefix the first line; indent the rest to the prefix width."""
    first, *rest = content.split("\n")
    pad = " " * len(prefix)
    return "\n".join([prefix + first] + [pad + line for line in rest])


def normalized_lines(lines: Sequence[BlockLine], fallback: str) -> str:
    """Trimmed non-empty line texts, or the trimmed *fallback*."""
    texts = [ln.text.strip() for ln in lines]
    texts = [t for t in texts if t]
    if not texts:
        return fallback.strip()
    return "\n".join(texts)


def _format_list(content: ListBlock) -> str:
    rendered: List[str] = []
    for idx, item in enumerate(content.items):
        marker = resolve_marker(
            content.marker, idx, item.marker_string, content.custom_marker
        )
        rendered.append(
            indent_continuation(normalized_lines(item.lines, item.text), marker + " ")
        )
    return "\n".join(rendered)


def _format_table(content: Table) -> str:
    rows = []
    for row in content.rows:
        cells = [normalized_lines(c.lines, c.text) or " " for c in row]
        rows.append(" | ".join(cells))
    return "\n".join(rows)


def _format_image(content: ImageContent) -> str:
    caption = (content.caption or "").strip()
    return f"[Image: {caption}]" if caption else "[Image]"


def transcript_fragment(block: DocumentBlock) -> str:
    """Plain-text rendering of a single block."""
    content = block.content
    if isinstance(content, Paragraph):
        return normalized_lines(content.lines, content.text)
    if isinstance(content, ListBlock):
        return _format_list(content)
    if isinstance(content, Table):
        return _format_table(content)
    if isinstance(content, ImageContent):
        return _format_image(content)
    return ""


def render_transcript(blocks: Iterable[DocumentBlock]) -> str:
    """Join block renderings with a blank line, skipping empty ones."""
    fragments = [transcript_fragment(b) for b in blocks]
    return "\n\n".join(f for f in fragments if f)
