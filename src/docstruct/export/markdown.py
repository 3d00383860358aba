"""Markdown rendering of an ordered block list.

Images are emitted as ``![Image](path)``.  Paths come from a caller
supplied resolver; :class:`ImagePathResolver` is the stock implementation
that matches blocks to saved image files by their rounded bounds.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, Dict, Iterable, List, Optional, Tuple

from ..geometry import Rect
from ..models import DocumentBlock, ImageContent, ListBlock, Paragraph, Table
from .transcript import indent_continuation, normalized_lines, resolve_marker

ImageResolver = Callable[[DocumentBlock], Optional[str]]

BoundsKey = Tuple[int, int, int, int]


def bounds_key(rect: Rect) -> BoundsKey:
    """Rounded ``(x, y, width, height)`` used to match images to files."""
    return (round(rect.min_x), round(rect.min_y), round(rect.width), round(rect.height))


class ImagePathResolver:
    """Resolve image blocks to file paths registered under their bounds.

    Several images may share (near-)identical bounds; each lookup claims
    the first path registered for the key that has not been handed out
    yet, so repeated calls yield distinct paths in registration order.
    """

    def __init__(self) -> None:
        self._paths: Dict[BoundsKey, Deque[str]] = {}

    def register(self, bounds: Rect, path: str) -> None:
        self._paths.setdefault(bounds_key(bounds), deque()).append(path)

    def __len__(self) -> int:
        """Number of registered paths not yet claimed."""
        return sum(len(q) for q in self._paths.values())

    def __call__(self, block: DocumentBlock) -> Optional[str]:
        if not isinstance(block.content, ImageContent):
            return None
        queue = self._paths.get(bounds_key(block.bounds))
        if not queue:
            return None
        return queue.popleft()


def escape_cell(text: str) -> str:
    return text.replace("|", "\\|")


def _format_list(content: ListBlock) -> str:
    rendered: List[str] = []
    for idx, item in enumerate(content.items):
        marker = resolve_marker(
            content.marker, idx, item.marker_string, content.custom_marker
        )
        rendered.append(indent_continuation(item.text.strip(), marker + " "))
    return "\n".join(rendered)


def _format_table(content: Table) -> str:
    rows: List[str] = []
    for idx, row in enumerate(content.rows):
        cells = [escape_cell(c.text.strip()) or " " for c in row]
        rows.append("| " + " | ".join(cells) + " |")
        if idx == 0 and row:
            rows.append("| " + " | ".join("---" for _ in row) + " |")
    return "\n".join(rows)


def _format_image(path: Optional[str]) -> str:
    return f"![Image]({path})" if path else "![Image]()"


def markdown_fragment(
    block: DocumentBlock, image_resolver: Optional[ImageResolver] = None
) -> str:
    """Markdown rendering of a single block."""
    content = block.content
    if isinstance(content, Paragraph):
        return normalized_lines(content.lines, content.text)
    if isinstance(content, ListBlock):
        return _format_list(content)
    if isinstance(content, Table):
        return _format_table(content)
    if isinstance(content, ImageContent):
        return _format_image(image_resolver(block) if image_resolver else None)
    return ""


def render_markdown(
    blocks: Iterable[DocumentBlock],
    image_resolver: Optional[ImageResolver] = None,
) -> str:
    """Join block renderings with a blank line, skipping empty ones."""
    fragments = [markdown_fragment(b, image_resolver) for b in blocks]
    return "\n\n".join(f for f in fragments if f)
