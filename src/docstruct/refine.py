"""Paragraph split and merge passes.

Region hints and standalone grouping both make mistakes at paragraph
granularity: a short intro line glued onto the paragraph below it, or a
single paragraph broken into several blocks.  The split pass runs first so
the merge pass sees the corrected neighbours.  Both passes build new
blocks; inputs are never modified.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import ReconstructionConfig
from .geometry import Size, sort_in_reading_order, union_all
from .models import BlockLine, DocumentBlock, Paragraph

log = logging.getLogger(__name__)


def _paragraph_block(lines: Sequence[BlockLine], fallback) -> DocumentBlock:
    bounds = union_all((ln.bounds for ln in lines), fallback)
    return DocumentBlock(bounds=bounds, content=Paragraph.from_lines(lines))


# -----------------------------------------------------------------------------
# Split pass
# -----------------------------------------------------------------------------


def _is_split_point(
    prev: BlockLine, cur: BlockLine, cfg: ReconstructionConfig
) -> bool:
    """Large gap after a narrow intro line."""
    gap = cur.bounds.min_y - prev.bounds.max_y()
    if gap <= 0:
        return False
    line_height = max(prev.height(), cur.height())
    if gap <= max(line_height * cfg.split_gap_mult, cfg.split_min_gap):
        return False
    width_ratio = prev.width() / max(cur.width(), 1.0)
    return width_ratio < cfg.split_width_ratio


def split_paragraph(
    block: DocumentBlock, cfg: Optional[ReconstructionConfig] = None
) -> List[DocumentBlock]:
    """Cut a paragraph after a narrow intro line followed by a large gap.

    A cut is only considered while the current segment holds a single
    line, so a run of widely spaced lines is not shredded line by line.
    Non-paragraph blocks and single-line paragraphs are returned as is.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    if not isinstance(block.content, Paragraph) or len(block.content.lines) < 2:
        return [block]

    segments: List[List[BlockLine]] = []
    current: List[BlockLine] = []
    for line in block.content.lines:
        if len(current) == 1 and _is_split_point(current[0], line, cfg):
            segments.append(current)
            current = []
        current.append(line)
    if current:
        segments.append(current)

    if len(segments) <= 1:
        return [block]
    log.debug(
        "Split paragraph %r into %d segments",
        block.content.text[:40],
        len(segments),
    )
    return [_paragraph_block(seg, block.bounds) for seg in segments]


def split_paragraphs(
    blocks: Sequence[DocumentBlock], cfg: Optional[ReconstructionConfig] = None
) -> List[DocumentBlock]:
    """Apply :func:`split_paragraph` to every block, preserving order."""
    result: List[DocumentBlock] = []
    for block in blocks:
        result.extend(split_paragraph(block, cfg))
    return result


# -----------------------------------------------------------------------------
# Merge pass
# -----------------------------------------------------------------------------


def is_heading_like(text: str, max_chars: int = 30) -> bool:
    """True when the first line reads like a short heading ending in ``:``.

    >>> is_heading_like("Summary:")
    True
    >>> is_heading_like("the end:")
    False
    """
    stripped = text.strip()
    first_line = stripped.splitlines()[0].strip() if stripped else ""
    if not first_line.endswith(":"):
        return False
    heading = first_line[:-1]
    if not heading or len(heading) > max_chars:
        return False
    return heading[0].isupper()


def should_merge(
    prev: DocumentBlock,
    cur: DocumentBlock,
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> bool:
    """Decide whether *cur* continues the paragraph *prev*.

    Both must be paragraphs, neither may open with a heading, the line gap
    must lie within the overlap / gap allowances derived from the smaller
    line height, and the left edges must line up.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    p, c = prev.content, cur.content
    if not isinstance(p, Paragraph) or not isinstance(c, Paragraph):
        return False
    if is_heading_like(p.text, cfg.heading_max_chars) or is_heading_like(
        c.text, cfg.heading_max_chars
    ):
        return False

    last, first = p.last_line(), c.first_line()
    last_rect = last.bounds if last is not None else prev.bounds
    first_rect = first.bounds if first is not None else cur.bounds
    gap = first_rect.min_y - last_rect.max_y()
    h = min(last_rect.height, first_rect.height)

    allowed_gap = max(min(h * cfg.merge_gap_mult, h + cfg.merge_gap_pad), cfg.merge_gap_floor)
    overlap_allowance = -max(h * cfg.merge_overlap_mult, cfg.merge_overlap_floor)
    if not (overlap_allowance <= gap <= allowed_gap):
        return False

    left_delta = abs(
        cur.bounds.normalized(page_size).min_x - prev.bounds.normalized(page_size).min_x
    )
    max_left_delta = max(
        cfg.merge_left_delta_ratio, cfg.merge_left_delta_px / max(page_size.width, 1.0)
    )
    return left_delta <= max_left_delta


def merge_paragraphs(
    blocks: Sequence[DocumentBlock],
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Single forward pass merging consecutive continuation paragraphs.

    Each paragraph is only compared with the most recent output block;
    a non-paragraph block breaks the chain.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    result: List[DocumentBlock] = []
    for block in blocks:
        if result and should_merge(result[-1], block, page_size, cfg):
            prev = result[-1]
            lines = prev.content.lines + block.content.lines
            result[-1] = DocumentBlock(
                bounds=prev.bounds.union(block.bounds),
                content=Paragraph.from_lines(lines),
            )
            log.debug("Merged paragraph %r into previous", block.content.text[:40])
            continue
        result.append(block)
    return result


def refine_paragraphs(
    blocks: Sequence[DocumentBlock],
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Reading-order sort, then split pass, then merge pass."""
    if cfg is None:
        cfg = ReconstructionConfig()
    ordered = sort_in_reading_order(blocks, page_size, cfg.reading_order_tolerance)
    return merge_paragraphs(split_paragraphs(ordered, cfg), page_size, cfg)
