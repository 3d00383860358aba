"""Serialization helpers for reconstructed pages.

``serialize_page`` converts the ordered block list of one page into a
JSON-friendly dict; ``deserialize_page`` rebuilds the blocks from it.

JSON layout
-----------
::

    {
      "version": 1,
      "page": 0,
      "page_width": 612.0,
      "page_height": 792.0,
      "lines": [ {TextLine.to_dict()}, ... ],
      "blocks": [ {DocumentBlock.to_dict()}, ... ]
    }
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ..geometry import Size
from ..models import DocumentBlock, TextLine

FORMAT_VERSION = 1

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def serialize_page(
    page: int,
    page_size: Size,
    blocks: Sequence[DocumentBlock],
    lines: Optional[Sequence[TextLine]] = None,
) -> dict[str, Any]:
    """Serialize a single page's blocks (and optionally lines) to a dict."""
    return {
        "version": FORMAT_VERSION,
        "page": page,
        "page_width": round(page_size.width, 3),
        "page_height": round(page_size.height, 3),
        "lines": [ln.to_dict() for ln in (lines or [])],
        "blocks": [b.to_dict() for b in blocks],
    }


def deserialize_page(
    data: dict[str, Any],
) -> tuple[list[DocumentBlock], list[TextLine], Size]:
    """Deserialize a page dict produced by :func:`serialize_page`.

    Returns
    -------
    blocks : list[DocumentBlock]
    lines : list[TextLine]
    page_size : Size

    Raises
    ------
    ValueError
        If the dict was written by an unsupported format version.
    """
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported page data version: {version}")
    blocks = [DocumentBlock.from_dict(b) for b in data["blocks"]]
    lines = [TextLine.from_dict(ln) for ln in data.get("lines", [])]
    return blocks, lines, Size(data["page_width"], data["page_height"])
