"""Rectangle types and the reading-order comparator.

All geometry uses a top-left origin with y growing downward.  Callers
holding bottom-left-origin coordinates (PDF user space) must flip them
before building a :class:`Rect`.

:class:`NormalizedRect` carries coordinates as fractions of a reference
size so rectangles produced at different raster resolutions can be
compared directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cmp_to_key
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

T = TypeVar("T")

Point = Tuple[float, float]


def _clamp01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


@dataclass(frozen=True)
class Size:
    """Width and height of a page or raster."""

    width: float
    height: float

    def area(self) -> float:
        """Area, clamped to zero."""
        return max(0.0, self.width) * max(0.0, self.height)

    def is_empty(self) -> bool:
        """True when either side is non-positive."""
        return self.width <= 0 or self.height <= 0

    def to_dict(self) -> dict:
        return {"width": round(self.width, 3), "height": round(self.height, 3)}

    @classmethod
    def from_dict(cls, d: dict) -> "Size":
        return cls(width=d["width"], height=d["height"])


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle ``(min_x, min_y, width, height)``."""

    min_x: float
    min_y: float
    width: float
    height: float

    @classmethod
    def from_bbox(cls, x0: float, y0: float, x1: float, y1: float):
        """Build from corner coordinates ``(x0, y0, x1, y1)``."""
        return cls(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))

    @classmethod
    def zero(cls):
        return cls(0.0, 0.0, 0.0, 0.0)

    def max_x(self) -> float:
        return self.min_x + self.width

    def max_y(self) -> float:
        return self.min_y + self.height

    def mid_x(self) -> float:
        return self.min_x + self.width / 2

    def mid_y(self) -> float:
        return self.min_y + self.height / 2

    def center(self) -> Point:
        return (self.mid_x(), self.mid_y())

    def area(self) -> float:
        """Area, clamped to zero."""
        return max(0.0, self.width) * max(0.0, self.height)

    def is_empty(self) -> bool:
        """True when the rectangle has no positive area."""
        return self.width <= 0 or self.height <= 0

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return (self.min_x, self.min_y, self.max_x(), self.max_y())

    # ── Operations ─────────────────────────────────────────────────────

    def expanded(self, by: float):
        """Grow every side by *by* (shrink when negative); size floors at 0."""
        width = max(0.0, self.width + 2 * by)
        height = max(0.0, self.height + 2 * by)
        return type(self)(
            self.mid_x() - width / 2, self.mid_y() - height / 2, width, height
        )

    def intersects(self, other: "Rect", tolerance: float = 0.0) -> bool:
        """Closed-interval overlap test after expanding both by *tolerance*."""
        a = self.expanded(tolerance) if tolerance else self
        b = other.expanded(tolerance) if tolerance else other
        return (
            a.min_x <= b.max_x()
            and b.min_x <= a.max_x()
            and a.min_y <= b.max_y()
            and b.min_y <= a.max_y()
        )

    def contains(self, point: Point, tolerance: float = 0.0) -> bool:
        """True when *point* lies inside the rectangle grown by *tolerance*."""
        x, y = point
        return (
            self.min_x - tolerance <= x <= self.max_x() + tolerance
            and self.min_y - tolerance <= y <= self.max_y() + tolerance
        )

    def intersection(self, other: "Rect") -> Optional["Rect"]:
        """Overlap rectangle, or ``None`` when there is no positive-area overlap."""
        x0 = max(self.min_x, other.min_x)
        y0 = max(self.min_y, other.min_y)
        x1 = min(self.max_x(), other.max_x())
        y1 = min(self.max_y(), other.max_y())
        if x1 <= x0 or y1 <= y0:
            return None
        return type(self)(x0, y0, x1 - x0, y1 - y0)

    def overlap_ratio(self, other: "Rect") -> float:
        """Intersection area divided by the smaller of the two areas.

        Returns 0 when either rectangle has zero area or they do not
        overlap with positive area.
        """
        smaller = min(self.area(), other.area())
        if smaller <= 0:
            return 0.0
        inter = self.intersection(other)
        if inter is None:
            return 0.0
        return inter.area() / smaller

    def union(self, other: "Rect"):
        """Smallest rectangle enclosing both."""
        x0 = min(self.min_x, other.min_x)
        y0 = min(self.min_y, other.min_y)
        x1 = max(self.max_x(), other.max_x())
        y1 = max(self.max_y(), other.max_y())
        return type(self)(x0, y0, x1 - x0, y1 - y0)

    def normalized(self, size: Size) -> "NormalizedRect":
        """Express this rectangle as fractions of *size*, clamped to [0, 1]."""
        if size.is_empty():
            return NormalizedRect.zero()
        x0 = _clamp01(self.min_x / size.width)
        y0 = _clamp01(self.min_y / size.height)
        x1 = _clamp01(self.max_x() / size.width)
        y1 = _clamp01(self.max_y() / size.height)
        return NormalizedRect(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0))

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "x": round(self.min_x, 3),
            "y": round(self.min_y, 3),
            "width": round(self.width, 3),
            "height": round(self.height, 3),
        }

    @classmethod
    def from_dict(cls, d: dict):
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(d["x"], d["y"], d["width"], d["height"])


@dataclass(frozen=True)
class NormalizedRect(Rect):
    """Rectangle in unit-square coordinates relative to a reference size."""

    def clamped(self) -> "NormalizedRect":
        """Project onto the unit square."""
        x0 = _clamp01(self.min_x)
        y0 = _clamp01(self.min_y)
        x1 = _clamp01(self.max_x())
        y1 = _clamp01(self.max_y())
        return NormalizedRect(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0))

    def expanded(self, by: float) -> "NormalizedRect":
        return Rect.expanded(self, by).clamped()

    def union(self, other: Rect) -> "NormalizedRect":
        return Rect.union(self, other).clamped()

    def scaled(self, size: Size) -> Rect:
        """Map back into the coordinate space of *size*."""
        return Rect(
            self.min_x * size.width,
            self.min_y * size.height,
            self.width * size.width,
            self.height * size.height,
        )


def union_all(rects: Iterable[Rect], fallback: Optional[Rect] = None) -> Optional[Rect]:
    """Union of every rectangle in *rects*; *fallback* when there are none."""
    result: Optional[Rect] = None
    for r in rects:
        result = r if result is None else result.union(r)
    return result if result is not None else fallback


# ── Reading order ──────────────────────────────────────────────────────


def compare_reading_order(
    a: Rect,
    b: Rect,
    frame: Optional[Size] = None,
    tolerance: float = 0.01,
) -> int:
    """Three-way reading-order comparison of two rectangles.

    Both rectangles are normalized by *frame* first (skipped when no
    usable frame is given, in which case *tolerance* is in absolute
    units).  Rows further apart than *tolerance* order top to bottom;
    rectangles within the same row order left to right.
    """
    if frame is not None and not frame.is_empty():
        a = a.normalized(frame)
        b = b.normalized(frame)
    dy = a.min_y - b.min_y
    if abs(dy) > tolerance:
        return -1 if dy < 0 else 1
    if a.min_x < b.min_x:
        return -1
    if a.min_x > b.min_x:
        return 1
    return 0


def is_in_reading_order(
    a: Rect, b: Rect, frame: Optional[Size] = None, tolerance: float = 0.01
) -> bool:
    """True when *a* strictly precedes *b*."""
    return compare_reading_order(a, b, frame, tolerance) < 0


def sort_in_reading_order(
    items: Sequence[T],
    frame: Optional[Size] = None,
    tolerance: float = 0.01,
    key: Optional[Callable[[T], Rect]] = None,
) -> List[T]:
    """Return *items* sorted top-to-bottom, left-to-right (stable on ties).

    *key* extracts the rectangle from each item; by default items are
    expected to expose a ``bounds`` attribute.
    """
    get = key if key is not None else (lambda item: item.bounds)
    return sorted(
        items,
        key=cmp_to_key(lambda x, y: compare_reading_order(get(x), get(y), frame, tolerance)),
    )
