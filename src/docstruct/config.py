from dataclasses import dataclass


class ConfigValidationError(ValueError):
    """Raised when a ReconstructionConfig field has an invalid value."""


def _check_range(
    name: str, value: float, lo: float, hi: float, *, inclusive: bool = True
) -> None:
    if inclusive:
        if not (lo <= value <= hi):
            raise ConfigValidationError(f"{name}={value} out of range [{lo}, {hi}]")
    else:
        if not (lo < value < hi):
            raise ConfigValidationError(f"{name}={value} out of range ({lo}, {hi})")


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigValidationError(f"{name}={value} must be > 0")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigValidationError(f"{name}={value} must be >= 0")


def _check_min_int(name: str, value: int, floor: int = 1) -> None:
    if int(value) != value or value < floor:
        raise ConfigValidationError(f"{name}={value} must be an integer >= {floor}")


@dataclass
class ReconstructionConfig:
    """Tunables for fragment assembly, block composition and refinement."""

    # ── Line assembly ──────────────────────────────────────────────────
    # Emit tall, narrow fragments (rotated labels, margin text) as their
    # own singleton lines instead of clustering them with neighbours.
    split_vertical: bool = False
    # A fragment is vertical when height >= width * this ratio ...
    vertical_aspect_ratio: float = 2.0
    # ... and height >= median fragment height * this multiplier.
    vertical_height_mult: float = 1.5
    # Width floor used by the aspect test (zero-width fragments).
    min_fragment_width: float = 0.1

    # ── Whitespace-gap fragment splitting ──────────────────────────────
    # Split multi-word fragments on blank pixel columns when a pixel
    # sampler is supplied.
    enable_whitespace_split: bool = True
    # Pixels darker than this luminance (0-255) count as ink.
    ink_luminance_threshold: int = 220
    # Columns whose ink fraction is at or below this are blank.
    gap_ink_ratio: float = 0.05
    # Minimum gap width is crop_width // this divisor (at least 1 px).
    gap_min_width_divisor: int = 80
    # Smallest crop (pixels) worth scanning.
    min_crop_width: int = 4
    min_crop_height: int = 2
    # Crops with more pixels than this are not scanned.
    max_crop_pixels: int = 4_000_000
    # Width floor for sub-fragments cut from a split fragment.
    min_subfragment_width: float = 0.5

    # ── Reading order ──────────────────────────────────────────────────
    # Rows closer than this fraction of the page height share a row.
    reading_order_tolerance: float = 0.01
    # Absolute row tolerance (page units) when ordering lines inside a region.
    line_order_tolerance: float = 1.0

    # ── Region composition ─────────────────────────────────────────────
    # Region matching tolerance = max(region height * ratio, floor), in
    # normalized page units.
    region_tolerance_ratio: float = 0.15
    region_tolerance_floor: float = 0.01
    # Standalone paragraphs break when the line gap exceeds
    # max(max line height * mult, floor).
    standalone_gap_mult: float = 1.2
    standalone_gap_floor: float = 12.0
    # Attach leftover lines sitting just below a composed paragraph.
    attach_trailing_lines: bool = False
    # Maximum gap (in line heights) for attaching a leftover line.
    attach_gap_mult: float = 0.5

    # ── Image candidates ───────────────────────────────────────────────
    # Minimum candidate area as a fraction of the page area.
    image_min_area_ratio: float = 0.01
    # Candidates spanning this fraction of a page side are page frames.
    image_max_side_ratio: float = 0.95
    # Reject candidates overlapping a structured block beyond this ratio.
    image_block_overlap_max: float = 0.35
    # Reject candidates overlapping an accepted image beyond this ratio.
    image_duplicate_overlap_max: float = 0.65

    # ── Paragraph split pass ───────────────────────────────────────────
    # Cut when the gap exceeds max(line height * mult, min gap) ...
    split_gap_mult: float = 0.9
    split_min_gap: float = 0.0
    # ... and the intro line is narrower than this fraction of the next.
    split_width_ratio: float = 0.75

    # ── Paragraph merge pass ───────────────────────────────────────────
    # Leading lines up to this many chars ending in ':' are headings.
    heading_max_chars: int = 30
    # Allowed overlap: -max(line height * mult, floor).
    merge_overlap_mult: float = 0.6
    merge_overlap_floor: float = 2.0
    # Allowed gap: max(min(line height * mult, line height + pad), floor).
    merge_gap_mult: float = 0.9
    merge_gap_pad: float = 6.0
    merge_gap_floor: float = 3.0
    # Left edges must agree within max(ratio, px / page width) of the page.
    merge_left_delta_ratio: float = 0.015
    merge_left_delta_px: float = 4.0

    # ── Deduplication ──────────────────────────────────────────────────
    # Only keys longer than this are checked for containment ...
    dedup_contained_min_length: int = 40
    # ... inside kept keys that are more than this many chars longer.
    dedup_contained_margin: int = 10

    # Run the split / merge / dedup passes after composition.
    apply_post_processing: bool = True

    def __post_init__(self) -> None:
        _check_positive("vertical_aspect_ratio", self.vertical_aspect_ratio)
        _check_positive("vertical_height_mult", self.vertical_height_mult)
        _check_positive("min_fragment_width", self.min_fragment_width)

        _check_range("ink_luminance_threshold", self.ink_luminance_threshold, 0, 255)
        _check_range("gap_ink_ratio", self.gap_ink_ratio, 0.0, 1.0)
        _check_min_int("gap_min_width_divisor", self.gap_min_width_divisor)
        _check_min_int("min_crop_width", self.min_crop_width)
        _check_min_int("min_crop_height", self.min_crop_height)
        _check_min_int("max_crop_pixels", self.max_crop_pixels)
        _check_positive("min_subfragment_width", self.min_subfragment_width)

        _check_range("reading_order_tolerance", self.reading_order_tolerance, 0.0, 1.0)
        _check_non_negative("line_order_tolerance", self.line_order_tolerance)

        _check_range("region_tolerance_ratio", self.region_tolerance_ratio, 0.0, 1.0)
        _check_range("region_tolerance_floor", self.region_tolerance_floor, 0.0, 1.0)
        _check_positive("standalone_gap_mult", self.standalone_gap_mult)
        _check_non_negative("standalone_gap_floor", self.standalone_gap_floor)
        _check_non_negative("attach_gap_mult", self.attach_gap_mult)

        _check_range("image_min_area_ratio", self.image_min_area_ratio, 0.0, 1.0)
        _check_range(
            "image_max_side_ratio", self.image_max_side_ratio, 0.0, 1.0, inclusive=False
        )
        _check_range("image_block_overlap_max", self.image_block_overlap_max, 0.0, 1.0)
        _check_range(
            "image_duplicate_overlap_max", self.image_duplicate_overlap_max, 0.0, 1.0
        )

        _check_positive("split_gap_mult", self.split_gap_mult)
        _check_non_negative("split_min_gap", self.split_min_gap)
        _check_range("split_width_ratio", self.split_width_ratio, 0.0, 1.0)

        _check_min_int("heading_max_chars", self.heading_max_chars)
        _check_non_negative("merge_overlap_mult", self.merge_overlap_mult)
        _check_non_negative("merge_overlap_floor", self.merge_overlap_floor)
        _check_positive("merge_gap_mult", self.merge_gap_mult)
        _check_non_negative("merge_gap_pad", self.merge_gap_pad)
        _check_non_negative("merge_gap_floor", self.merge_gap_floor)
        _check_range("merge_left_delta_ratio", self.merge_left_delta_ratio, 0.0, 1.0)
        _check_non_negative("merge_left_delta_px", self.merge_left_delta_px)

        _check_min_int("dedup_contained_min_length", self.dedup_contained_min_length, 0)
        _check_min_int("dedup_contained_margin", self.dedup_contained_margin, 0)
