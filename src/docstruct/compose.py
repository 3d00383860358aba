"""Compose assembled lines and semantic region hints into document blocks.

Region hints come from an external layout recognizer and only carry
geometry (plus optional nested text).  Each region claims the unassigned
lines that fall inside it; whatever no region claims is grouped into
standalone paragraphs so every line ends up in exactly one block.

Region geometry may be expressed at a different raster size than the
lines, so all matching happens in normalized page coordinates.  Output
blocks are in page coordinates and unordered.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Set

from .config import ReconstructionConfig
from .geometry import NormalizedRect, Rect, Size, sort_in_reading_order, union_all
from .models import (
    BlockLine,
    DocumentBlock,
    ImageContent,
    ImageRegion,
    ListBlock,
    ListItem,
    ListRegion,
    Paragraph,
    ParagraphRegion,
    SemanticRegion,
    Table,
    TableCell,
    TableRegion,
    TextLine,
)

log = logging.getLogger(__name__)

_NUMERIC_PREFIX_RE = re.compile(r"^[0-9]+[.)\s]+")


@dataclass(frozen=True)
class LineInfo:
    """An assembled line prepared for region matching."""

    id: int
    text: str
    bounds: Rect
    normalized: NormalizedRect

    def to_block_line(self) -> BlockLine:
        return BlockLine(text=self.text, bounds=self.bounds)


@dataclass
class LineAssignment:
    """Set of line ids already claimed by a block."""

    assigned: Set[int] = field(default_factory=set)

    def claim(self, info: LineInfo) -> None:
        self.assigned.add(info.id)

    def is_assigned(self, info: LineInfo) -> bool:
        return info.id in self.assigned

    def unassigned(self, infos: Iterable[LineInfo]) -> List[LineInfo]:
        return [i for i in infos if i.id not in self.assigned]


def make_line_infos(lines: Sequence[TextLine], page_size: Size) -> List[LineInfo]:
    """Skip lines with empty text or zero-area bounds; normalize the rest."""
    infos: List[LineInfo] = []
    for idx, line in enumerate(lines):
        if not line.fragments:
            continue
        bounds = line.bounds()
        if bounds.is_empty():
            continue
        text = line.combined_text().strip()
        if not text:
            continue
        infos.append(LineInfo(idx, text, bounds, bounds.normalized(page_size)))
    return infos


def consume_lines(
    region: NormalizedRect,
    infos: Sequence[LineInfo],
    assignment: LineAssignment,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[LineInfo]:
    """Claim every unassigned line that falls inside *region*.

    A line matches when its vertical centre lies within the region's
    vertical span and its horizontal extent overlaps the region's, both
    grown by ``max(region height * ratio, floor)``.  Matches are returned
    in reading order.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    tol = max(region.height * cfg.region_tolerance_ratio, cfg.region_tolerance_floor)
    matches: List[LineInfo] = []
    for info in infos:
        if assignment.is_assigned(info):
            continue
        n = info.normalized
        cy = n.mid_y()
        if not (region.min_y - tol <= cy <= region.max_y() + tol):
            continue
        if n.max_x() < region.min_x - tol or n.min_x > region.max_x() + tol:
            continue
        assignment.claim(info)
        matches.append(info)
    return sort_in_reading_order(
        matches, tolerance=cfg.line_order_tolerance, key=lambda i: i.bounds
    )


def clean_list_item_text(text: str, marker_string: str = "") -> str:
    """Strip a leading list marker from *text*.

    An explicit *marker_string* is matched case-insensitively and only
    counts when followed by ``.``, ``)``, whitespace or the end of the
    text, so ``"A."`` never eats the first letter of ``"Apple"``.  Text
    that does not start with the given marker is returned as is.  Without
    a marker, a generic numeric prefix such as ``"1."`` or ``"2)"`` is
    removed.
    """
    text = text.strip()
    core = marker_string.strip().rstrip(".)").strip()
    if core:
        pattern = re.compile("^" + re.escape(core) + r"(?:[.)\s]+|$)", re.IGNORECASE)
        stripped, n = pattern.subn("", text, count=1)
        return stripped.strip() if n else text
    return _NUMERIC_PREFIX_RE.sub("", text, count=1).strip()


# ── Region composition ─────────────────────────────────────────────────


@dataclass
class _Frames:
    """Page and region coordinate spaces for one composition run."""

    page: Size
    region: Size

    def region_to_page(self, rect: Rect) -> Rect:
        if self.region == self.page:
            return rect
        return rect.normalized(self.region).scaled(self.page)

    def normalize_region(self, rect: Rect) -> NormalizedRect:
        return rect.normalized(self.region)


def _fallback_lines(
    lines: Sequence[BlockLine], transcript: str, bounds: Rect, frames: _Frames
) -> List[BlockLine]:
    """Region-supplied text, used when no assembled line matched."""
    usable = [
        BlockLine(ln.text.strip(), frames.region_to_page(ln.bounds))
        for ln in lines
        if ln.text.strip()
    ]
    if usable:
        return usable
    transcript = transcript.strip()
    if transcript:
        return [BlockLine(transcript, frames.region_to_page(bounds))]
    return []


def _region_lines(
    bounds: Rect,
    lines: Sequence[BlockLine],
    transcript: str,
    infos: Sequence[LineInfo],
    assignment: LineAssignment,
    frames: _Frames,
    cfg: ReconstructionConfig,
) -> tuple:
    """Return ``(block_lines, matched)`` for one region or sub-region."""
    matched = consume_lines(frames.normalize_region(bounds), infos, assignment, cfg)
    if matched:
        return [m.to_block_line() for m in matched], True
    return _fallback_lines(lines, transcript, bounds, frames), False


def _compose_paragraph(region, infos, assignment, frames, cfg) -> Optional[DocumentBlock]:
    lines, matched = _region_lines(
        region.bounds, region.lines, region.transcript, infos, assignment, frames, cfg
    )
    if not lines:
        return None
    if matched:
        bounds = union_all((ln.bounds for ln in lines))
    else:
        bounds = frames.region_to_page(region.bounds)
    return DocumentBlock(bounds=bounds, content=Paragraph.from_lines(lines))


def _compose_list(region, infos, assignment, frames, cfg) -> Optional[DocumentBlock]:
    items: List[ListItem] = []
    for item in region.items:
        lines, _ = _region_lines(
            item.bounds, item.lines, item.transcript, infos, assignment, frames, cfg
        )
        if lines:
            first = lines[0]
            lines[0] = BlockLine(clean_list_item_text(first.text, item.marker_string), first.bounds)
            lines = [ln for ln in lines if ln.text]
        if not lines:
            continue
        items.append(
            ListItem(
                text="\n".join(ln.text for ln in lines),
                marker_string=item.marker_string,
                bounds=frames.region_to_page(item.bounds),
                lines=tuple(lines),
            )
        )
    if not items:
        return None
    content = ListBlock(
        marker=region.marker, items=tuple(items), custom_marker=region.custom_marker
    )
    return DocumentBlock(bounds=frames.region_to_page(region.bounds), content=content)


def _compose_table(region, infos, assignment, frames, cfg) -> Optional[DocumentBlock]:
    rows = []
    for row in region.rows:
        cells = []
        for cell in row:
            lines, _ = _region_lines(
                cell.bounds, cell.lines, cell.transcript, infos, assignment, frames, cfg
            )
            cells.append(
                TableCell(
                    row_range=cell.row_range,
                    column_range=cell.column_range,
                    text="\n".join(ln.text for ln in lines),
                    bounds=frames.region_to_page(cell.bounds),
                    lines=tuple(lines),
                )
            )
        rows.append(tuple(cells))
    if not any(rows):
        return None
    return DocumentBlock(
        bounds=frames.region_to_page(region.bounds), content=Table(rows=tuple(rows))
    )


def _compose_region(
    region: SemanticRegion,
    infos: Sequence[LineInfo],
    assignment: LineAssignment,
    frames: _Frames,
    cfg: ReconstructionConfig,
) -> Optional[DocumentBlock]:
    if isinstance(region, ParagraphRegion):
        return _compose_paragraph(region, infos, assignment, frames, cfg)
    if isinstance(region, ListRegion):
        return _compose_list(region, infos, assignment, frames, cfg)
    if isinstance(region, TableRegion):
        return _compose_table(region, infos, assignment, frames, cfg)
    if isinstance(region, ImageRegion):
        return DocumentBlock(
            bounds=frames.region_to_page(region.bounds),
            content=ImageContent(caption=region.caption),
        )
    raise TypeError(f"Unsupported region type: {type(region).__name__}")


# ── Leftover lines ─────────────────────────────────────────────────────


def attach_trailing_lines(
    blocks: List[DocumentBlock],
    leftovers: Sequence[LineInfo],
    assignment: LineAssignment,
    cfg: ReconstructionConfig,
) -> List[DocumentBlock]:
    """Append leftover lines sitting just below a composed paragraph.

    A line joins the nearest paragraph that ends above the line's bottom
    edge when the distance from the paragraph's bottom to the line's top
    is at most ``attach_gap_mult`` line heights.
    """
    blocks = list(blocks)
    for info in leftovers:
        line_bottom = info.bounds.max_y()
        best_idx: Optional[int] = None
        best_dist = 0.0
        for idx, block in enumerate(blocks):
            if not isinstance(block.content, Paragraph):
                continue
            if block.bounds.max_y() > line_bottom:
                continue
            dist = max(0.0, info.bounds.min_y - block.bounds.max_y())
            if best_idx is None or dist < best_dist:
                best_idx, best_dist = idx, dist
        if best_idx is None or best_dist > info.bounds.height * cfg.attach_gap_mult:
            continue
        target = blocks[best_idx]
        lines = target.content.lines + (info.to_block_line(),)
        blocks[best_idx] = DocumentBlock(
            bounds=target.bounds.union(info.bounds),
            content=Paragraph.from_lines(lines),
        )
        assignment.claim(info)
        log.debug("Attached trailing line %r to paragraph %d", info.text, best_idx)
    return blocks


def make_standalone_paragraphs(
    infos: Sequence[LineInfo],
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Group unclaimed lines into paragraphs by vertical proximity.

    Lines are walked in reading order; a new paragraph starts whenever the
    gap to the previous line exceeds
    ``max(standalone_gap_mult * max(prev_h, cur_h), standalone_gap_floor)``.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    ordered = sort_in_reading_order(
        infos, page_size, cfg.reading_order_tolerance, key=lambda i: i.bounds
    )
    groups: List[List[LineInfo]] = []
    for info in ordered:
        if groups:
            prev = groups[-1][-1]
            gap = info.bounds.min_y - prev.bounds.max_y()
            max_h = max(prev.bounds.height, info.bounds.height)
            if gap <= max(cfg.standalone_gap_mult * max_h, cfg.standalone_gap_floor):
                groups[-1].append(info)
                continue
        groups.append([info])

    blocks: List[DocumentBlock] = []
    for group in groups:
        lines = [i.to_block_line() for i in group]
        blocks.append(
            DocumentBlock(
                bounds=union_all(ln.bounds for ln in lines),
                content=Paragraph.from_lines(lines),
            )
        )
    return blocks


# ── Entry points ───────────────────────────────────────────────────────


@dataclass
class Composition:
    """Blocks composed for one page, split by origin.

    ``structured`` holds the blocks built from region hints.
    ``standalone`` holds the paragraphs grouped from unclaimed lines.
    """

    structured: List[DocumentBlock] = field(default_factory=list)
    standalone: List[DocumentBlock] = field(default_factory=list)

    def blocks(self) -> List[DocumentBlock]:
        return self.structured + self.standalone


def compose_page(
    lines: Sequence[TextLine],
    page_size: Size,
    regions: Sequence[SemanticRegion] = (),
    region_size: Optional[Size] = None,
    cfg: Optional[ReconstructionConfig] = None,
) -> Composition:
    """Turn assembled lines and optional region hints into a :class:`Composition`.

    Regions are processed in input order and claim lines greedily.  A
    region that yields no usable text produces no block.  Every remaining
    line is placed into a standalone paragraph.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    frames = _Frames(page=page_size, region=region_size or page_size)
    infos = make_line_infos(lines, page_size)
    assignment = LineAssignment()

    structured: List[DocumentBlock] = []
    for region in regions:
        block = _compose_region(region, infos, assignment, frames, cfg)
        if block is not None:
            structured.append(block)

    leftovers = assignment.unassigned(infos)
    if cfg.attach_trailing_lines and leftovers:
        structured = attach_trailing_lines(structured, leftovers, assignment, cfg)
        leftovers = assignment.unassigned(leftovers)

    standalone = make_standalone_paragraphs(leftovers, page_size, cfg)
    log.debug(
        "Composed %d region blocks and %d standalone paragraphs from %d lines",
        len(structured),
        len(standalone),
        len(infos),
    )
    return Composition(structured=structured, standalone=standalone)


def compose_blocks(
    lines: Sequence[TextLine],
    page_size: Size,
    regions: Sequence[SemanticRegion] = (),
    region_size: Optional[Size] = None,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Region blocks followed by standalone paragraphs, unordered."""
    return compose_page(lines, page_size, regions, region_size, cfg).blocks()


def filter_image_candidates(
    candidates: Iterable[Rect],
    structured: Sequence[DocumentBlock],
    page_size: Size,
    cfg: Optional[ReconstructionConfig] = None,
) -> List[DocumentBlock]:
    """Keep plausible image rectangles from raw detector candidates.

    Candidates are clipped to the page, then rejected when they are tiny,
    span (almost) a whole page side, overlap a structured block, or
    duplicate an image that was already accepted.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    if page_size.is_empty():
        return []
    page_rect = Rect(0.0, 0.0, page_size.width, page_size.height)
    min_area = page_size.area() * cfg.image_min_area_ratio

    accepted: List[Rect] = []
    for cand in candidates:
        rect = cand.intersection(page_rect)
        if rect is None or rect.area() < min_area:
            continue
        if (
            rect.width >= page_size.width * cfg.image_max_side_ratio
            or rect.height >= page_size.height * cfg.image_max_side_ratio
        ):
            continue
        if any(
            rect.overlap_ratio(b.bounds) > cfg.image_block_overlap_max for b in structured
        ):
            continue
        if any(rect.overlap_ratio(a) > cfg.image_duplicate_overlap_max for a in accepted):
            continue
        accepted.append(rect)
    return [DocumentBlock(bounds=r, content=ImageContent()) for r in accepted]
