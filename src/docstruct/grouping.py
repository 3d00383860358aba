from __future__ import annotations

import math
from statistics import median_high
from typing import Iterable, List, Optional, Tuple

from .config import ReconstructionConfig
from .models import TextFragment, TextLine


def _typical_height(fragments: Iterable[TextFragment]) -> float:
    """Upper median of the strictly positive fragment heights (0 if none)."""
    heights = [f.bounds.height for f in fragments if f.bounds.height > 0]
    if not heights:
        return 0.0
    return float(median_high(heights))


def _is_vertical(
    frag: TextFragment, typical_height: float, cfg: ReconstructionConfig
) -> bool:
    """Tall, narrow fragment (rotated label, margin text)."""
    width = max(frag.bounds.width, cfg.min_fragment_width)
    height = frag.bounds.height
    if height < width * cfg.vertical_aspect_ratio:
        return False
    return typical_height == 0 or height >= typical_height * cfg.vertical_height_mult


def _partition_vertical(
    fragments: List[TextFragment], cfg: ReconstructionConfig
) -> Tuple[List[TextFragment], List[TextFragment]]:
    """Split *fragments* into ``(horizontal, vertical)``."""
    if not cfg.split_vertical:
        return list(fragments), []
    typical = _typical_height(fragments)
    horizontal: List[TextFragment] = []
    vertical: List[TextFragment] = []
    for frag in fragments:
        (vertical if _is_vertical(frag, typical, cfg) else horizontal).append(frag)
    return horizontal, vertical


def _cluster_rows(fragments: List[TextFragment]) -> List[TextLine]:
    """Seed-and-collect row clustering.

    The left-most unconsumed fragment seeds a line and claims every other
    unconsumed fragment whose vertical midpoint falls inside the seed's
    vertical span.  Membership is judged against the seed only, so two
    fragments that both overlap a tall seed join the same line even when
    they do not overlap each other.
    """
    remaining = sorted(fragments, key=lambda f: f.bounds.min_x)
    lines: List[TextLine] = []
    while remaining:
        seed = remaining[0]
        lo, hi = seed.bounds.min_y, seed.bounds.max_y()
        group = [seed]
        rest: List[TextFragment] = []
        for frag in remaining[1:]:
            if lo <= frag.bounds.mid_y() <= hi:
                group.append(frag)
            else:
                rest.append(frag)
        group.sort(key=lambda f: f.bounds.min_x)
        lines.append(TextLine(tuple(group)))
        remaining = rest
    return lines


def assemble_lines(
    fragments: Iterable[TextFragment],
    cfg: Optional[ReconstructionConfig] = None,
) -> List[TextLine]:
    """Group positioned fragments into lines ordered top to bottom.

    With ``cfg.split_vertical`` enabled, tall narrow fragments are kept
    out of row clustering and each becomes a singleton line.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    fragments = list(fragments)
    if not fragments:
        return []

    horizontal, vertical = _partition_vertical(fragments, cfg)
    lines = _cluster_rows(horizontal)
    lines.extend(TextLine((frag,)) for frag in vertical)
    lines.sort(key=lambda ln: ln.top_position())
    return lines


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def lines_to_string(lines: Iterable[TextLine]) -> str:
    """Render lines as plain text, preserving vertical spacing.

    Consecutive lines are separated by as many newlines as the vertical
    distance spans average line heights (at least one).  A line that is
    not below its predecessor starts a new page and is preceded by a
    ``---`` separator.
    """
    parts: List[str] = []
    previous: Optional[TextLine] = None
    for line in lines:
        if previous is not None:
            prev_y = previous.top_position()
            cur_y = line.top_position()
            if cur_y > prev_y:
                avg_height = max((previous.height() + line.height()) / 2, 1.0)
                parts.append("\n" * max(1, _round_half_up((cur_y - prev_y) / avg_height)))
            else:
                parts.append("\n---\n")
        parts.append(line.combined_text())
        previous = line
    return "".join(parts)
