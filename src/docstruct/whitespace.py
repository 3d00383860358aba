"""Whitespace-gap splitting of multi-word fragments.

Recognizers sometimes return a whole phrase as a single fragment.  When
pixel data for the page is available, the blank pixel columns inside the
fragment's crop show where the words sit, so the fragment can be cut into
one sub-fragment per word.

The scan is ``O(width * height)`` per fragment; crops larger than
``ReconstructionConfig.max_crop_pixels`` are left unsplit.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence, Tuple

from .config import ReconstructionConfig
from .geometry import Rect, Size
from .models import TextFragment

if TYPE_CHECKING:
    import numpy as np
    from PIL import Image

log = logging.getLogger(__name__)

Gap = Tuple[int, int]  # inclusive column range


class PixelSampler(Protocol):
    """Source of luminance pixels for a rectangle in page coordinates.

    ``size`` is the pixel size of the sampled image.
    """

    size: Size

    def sample(self, rect: Rect) -> Optional["np.ndarray"]:
        """Return a ``rows x columns`` luminance grid (0-255) or ``None``."""
        ...


def _as_uint8_gray(img: "Image.Image"):
    """Convert a PIL image to a uint8 grayscale numpy array."""
    import numpy as np

    if img.mode != "L":
        img = img.convert("L")
    arr = np.array(img)
    if arr.dtype != np.uint8:
        arr = arr.astype(np.uint8)
    return arr


class ImagePixelSampler:
    """:class:`PixelSampler` over a rendered page image.

    Page coordinates are mapped to pixels by the ratio of the image size to
    *page_size*.  The image is converted to grayscale once up front.
    """

    def __init__(
        self,
        image: "Image.Image",
        page_size: Size,
        max_pixels: int = 4_000_000,
    ) -> None:
        self.image = image if image.mode == "L" else image.convert("L")
        self.page_size = page_size
        self.size = Size(float(self.image.width), float(self.image.height))
        self.max_pixels = max_pixels

    def pixel_box(self, rect: Rect) -> Optional[Tuple[int, int, int, int]]:
        """Pixel crop box ``(left, top, right, bottom)`` for *rect*, clipped."""
        if self.page_size.is_empty():
            return None
        sx = self.size.width / self.page_size.width
        sy = self.size.height / self.page_size.height
        left = max(0, min(int(math.floor(rect.min_x * sx)), self.image.width))
        top = max(0, min(int(math.floor(rect.min_y * sy)), self.image.height))
        right = max(0, min(int(math.ceil(rect.max_x() * sx)), self.image.width))
        bottom = max(0, min(int(math.ceil(rect.max_y() * sy)), self.image.height))
        if right <= left or bottom <= top:
            return None
        return (left, top, right, bottom)

    def sample(self, rect: Rect):
        box = self.pixel_box(rect)
        if box is None:
            return None
        left, top, right, bottom = box
        if (right - left) * (bottom - top) > self.max_pixels:
            log.debug("Crop %s exceeds %d pixels, not sampled", box, self.max_pixels)
            return None
        return _as_uint8_gray(self.image.crop(box))


# ── Column analysis ────────────────────────────────────────────────────


def column_ink_ratios(grid, dark_threshold: int = 220):
    """Fraction of dark pixels (luminance below *dark_threshold*) per column.

    *grid* may be a 2-D luminance array or a 3-D RGB(A) array, which is
    reduced with the ITU-R 601 luma weights.
    """
    import numpy as np

    arr = np.asarray(grid, dtype=np.float64)
    if arr.ndim == 3:
        arr = arr[..., 0] * 0.299 + arr[..., 1] * 0.587 + arr[..., 2] * 0.114
    if arr.ndim != 2 or arr.size == 0:
        return np.zeros(0, dtype=np.float64)
    return (arr < dark_threshold).mean(axis=0)


def find_whitespace_gaps(
    ratios: Sequence[float],
    gap_threshold: float = 0.05,
    min_width: Optional[int] = None,
    min_width_divisor: int = 80,
) -> List[Gap]:
    """Maximal runs of blank columns, as inclusive ``(start, end)`` ranges.

    A column is blank when its ink ratio is at most *gap_threshold*.  Runs
    narrower than *min_width* (default ``max(1, len(ratios) // 80)``) are
    ignored.  Runs touching the crop edges count as gaps.
    """
    n = len(ratios)
    if min_width is None:
        min_width = max(1, n // min_width_divisor)
    gaps: List[Gap] = []
    start: Optional[int] = None
    for x in range(n):
        if ratios[x] <= gap_threshold:
            if start is None:
                start = x
        elif start is not None:
            if x - start >= min_width:
                gaps.append((start, x - 1))
            start = None
    if start is not None and n - start >= min_width:
        gaps.append((start, n - 1))
    return gaps


def _select_gaps(gaps: List[Gap], required: int) -> List[Gap]:
    """Keep the *required* widest gaps (left-most on ties), in column order."""
    if len(gaps) > required:
        gaps = sorted(gaps, key=lambda g: (-(g[1] - g[0] + 1), g[0]))[:required]
    return sorted(gaps, key=lambda g: g[0])


def _gap_midpoint(gap: Gap) -> int:
    count = gap[1] - gap[0] + 1
    return gap[0] + count // 2


# ── Fragment splitting ─────────────────────────────────────────────────


def split_fragment_on_whitespace(
    fragment: TextFragment,
    sampler: Optional[PixelSampler],
    cfg: Optional[ReconstructionConfig] = None,
) -> List[TextFragment]:
    """Cut *fragment* into one sub-fragment per whitespace-separated token.

    Returns ``[fragment]`` unchanged whenever the split cannot be
    justified by the pixels: no sampler or pixel data, a crop outside the
    configured size limits, a single token, or fewer blank-column gaps
    than token boundaries.
    """
    if cfg is None:
        cfg = ReconstructionConfig()
    if sampler is None:
        return [fragment]

    tokens = fragment.text.split()
    required = len(tokens) - 1
    if required <= 0:
        return [fragment]

    grid = sampler.sample(fragment.bounds)
    if grid is None:
        return [fragment]
    shape = getattr(grid, "shape", ())
    if len(shape) < 2:
        return [fragment]
    crop_h, crop_w = int(shape[0]), int(shape[1])
    if crop_w < cfg.min_crop_width or crop_h < cfg.min_crop_height:
        return [fragment]
    if crop_w * crop_h > cfg.max_crop_pixels:
        log.debug(
            "Skipping split for %r: %dx%d crop exceeds %d pixels",
            fragment.text,
            crop_w,
            crop_h,
            cfg.max_crop_pixels,
        )
        return [fragment]

    ratios = column_ink_ratios(grid, cfg.ink_luminance_threshold)
    gaps = find_whitespace_gaps(
        ratios,
        gap_threshold=cfg.gap_ink_ratio,
        min_width_divisor=cfg.gap_min_width_divisor,
    )
    if len(gaps) < required:
        log.debug(
            "Skipping split for %r: %d tokens, %d gaps",
            fragment.text,
            len(tokens),
            len(gaps),
        )
        return [fragment]

    b = fragment.bounds
    cuts = sorted(
        b.min_x + (_gap_midpoint(g) / crop_w) * b.width
        for g in _select_gaps(gaps, required)
    )
    xs = [b.min_x, *cuts, b.max_x()]

    parts: List[TextFragment] = []
    for i, token in enumerate(tokens):
        text = token.strip()
        if not text:
            continue
        x0, x1 = xs[i], xs[i + 1]
        parts.append(
            TextFragment(
                bounds=Rect(x0, b.min_y, max(cfg.min_subfragment_width, x1 - x0), b.height),
                text=text,
            )
        )
    if not parts:
        return [fragment]

    log.debug("Split fragment %r into %s", fragment.text, [p.text for p in parts])
    return parts


def refine_fragments(
    fragments: Sequence[TextFragment],
    sampler: Optional[PixelSampler],
    cfg: Optional[ReconstructionConfig] = None,
) -> List[TextFragment]:
    """Apply :func:`split_fragment_on_whitespace` to every multi-word fragment."""
    if cfg is None:
        cfg = ReconstructionConfig()
    refined: List[TextFragment] = []
    for frag in fragments:
        if sampler is not None and " " in frag.text.strip():
            refined.extend(split_fragment_on_whitespace(frag, sampler, cfg))
        else:
            refined.append(frag)
    return refined
