"""Duplicate-block removal and final ordering.

Recognizers occasionally report the same text twice: once inside a region
hint and again as a stray block, or a large block partially re-recognized
elsewhere on the page.  Blocks are compared through a normalized
"comparable" key; images have no key and are never dropped.
"""

from __future__ import annotations

import logging
import re
import string
import unicodedata
from typing import List, Optional, Sequence

from .config import ReconstructionConfig
from .geometry import Size, sort_in_reading_order
from .models import DocumentBlock, ListBlock, Paragraph, Table
from .refine import refine_paragraphs

log = logging.getLogger(__name__)

_ORDINAL_PREFIX_RE = re.compile(r"^[0-9]+[.)\s]+")
_WS_RE = re.compile(r"\s+")
_TRADEMARKS = "®™"


def _is_punct(ch: str) -> bool:
    return ch in string.punctuation or unicodedata.category(ch).startswith("P")


def comparable_text(text: str) -> str:
    """Lower-cased text with ordinals, punctuation and spacing normalized."""
    text = _ORDINAL_PREFIX_RE.sub("", text.strip(), count=1)
    text = "".join(
        " " if _is_punct(ch) else ch for ch in text if ch not in _TRADEMARKS
    )
    return _WS_RE.sub(" ", text).strip().lower()


def block_comparable_text(block: DocumentBlock) -> Optional[str]:
    """Comparable key of *block*, or ``None`` for images."""
    content = block.content
    if isinstance(content, Paragraph):
        return comparable_text(content.text)
    if isinstance(content, ListBlock):
        return comparable_text("\n".join(item.text for item in content.items))
    if isinstance(content, Table):
        return comparable_text("\n".join(cell.text for cell in content.cells()))
    return None


def deduplicate_blocks(
    blocks: Sequence[DocumentBlock], cfg: Optional[ReconstructionConfig] = None
) -> List[DocumentBlock]:
    """Drop exact and contained duplicates, keeping the first occurrence.

    A block whose key is longer than ``dedup_contained_min_length`` is a
    contained duplicate when it occurs inside an already kept key that is
    more than ``dedup_contained_margin`` characters longer.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    seen: List[str] = []
    seen_set = set()
    result: List[DocumentBlock] = []
    for block in blocks:
        key = block_comparable_text(block)
        if key:
            if key in seen_set:
                log.debug("Dropping exact duplicate block %r", key[:40])
                continue
            if len(key) > cfg.dedup_contained_min_length and any(
                len(existing) > len(key) + cfg.dedup_contained_margin and key in existing
                for existing in seen
            ):
                log.debug("Dropping contained duplicate block %r", key[:40])
                continue
            seen.append(key)
            seen_set.add(key)
        result.append(block)
    return result


def order_blocks(
    blocks: Sequence[DocumentBlock],
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Sort blocks top-to-bottom, left-to-right in page-normalized space."""
    if cfg is None:
        cfg = ReconstructionConfig()
    return sort_in_reading_order(blocks, page_size, cfg.reading_order_tolerance)


def post_process_blocks(
    blocks: Sequence[DocumentBlock],
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Order, split, merge, deduplicate and order again."""
    if cfg is None:
        cfg = ReconstructionConfig()
    refined = refine_paragraphs(blocks, page_size, cfg)
    return order_blocks(deduplicate_blocks(refined, cfg), page_size, cfg)
