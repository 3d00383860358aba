"""Tests for docstruct.config: ReconstructionConfig defaults, overrides, and validation."""

import pytest

from docstruct.config import ConfigValidationError, ReconstructionConfig


class TestReconstructionConfig:
    def test_defaults(self):
        cfg = ReconstructionConfig()
        assert cfg.split_vertical is False
        assert cfg.vertical_aspect_ratio == 2.0
        assert cfg.vertical_height_mult == 1.5
        assert cfg.gap_ink_ratio == 0.05
        assert cfg.reading_order_tolerance == 0.01
        assert cfg.region_tolerance_ratio == 0.15
        assert cfg.standalone_gap_floor == 12.0
        assert cfg.image_block_overlap_max == 0.35
        assert cfg.image_duplicate_overlap_max == 0.65
        assert cfg.split_width_ratio == 0.75
        assert cfg.heading_max_chars == 30
        assert cfg.dedup_contained_min_length == 40
        assert cfg.apply_post_processing is True

    def test_override(self):
        cfg = ReconstructionConfig(split_vertical=True, standalone_gap_floor=20.0)
        assert cfg.split_vertical is True
        assert cfg.standalone_gap_floor == 20.0

    def test_vars_round_trip(self):
        """vars(cfg) should produce a dict that can reconstruct the config."""
        cfg = ReconstructionConfig(split_vertical=True, merge_gap_pad=8.0)
        cfg2 = ReconstructionConfig(**vars(cfg))
        assert vars(cfg) == vars(cfg2)


class TestConfigValidation:
    """Validate __post_init__ range guards."""

    # ── Unit-range fields [0, 1] ──────────────────────────────────────

    def test_gap_ink_ratio_above_one_rejected(self):
        with pytest.raises(ConfigValidationError, match="gap_ink_ratio"):
            ReconstructionConfig(gap_ink_ratio=1.5)

    def test_region_tolerance_negative_rejected(self):
        with pytest.raises(ConfigValidationError, match="region_tolerance_ratio"):
            ReconstructionConfig(region_tolerance_ratio=-0.1)

    def test_overlap_boundaries_accepted(self):
        cfg = ReconstructionConfig(image_block_overlap_max=0.0, image_duplicate_overlap_max=1.0)
        assert cfg.image_block_overlap_max == 0.0
        assert cfg.image_duplicate_overlap_max == 1.0

    def test_max_side_ratio_exclusive(self):
        with pytest.raises(ConfigValidationError, match="image_max_side_ratio"):
            ReconstructionConfig(image_max_side_ratio=1.0)

    # ── Positive / non-negative ───────────────────────────────────────

    def test_zero_aspect_ratio_rejected(self):
        with pytest.raises(ConfigValidationError, match="vertical_aspect_ratio"):
            ReconstructionConfig(vertical_aspect_ratio=0.0)

    def test_negative_gap_floor_rejected(self):
        with pytest.raises(ConfigValidationError, match="standalone_gap_floor"):
            ReconstructionConfig(standalone_gap_floor=-1.0)

    def test_luminance_out_of_range_rejected(self):
        with pytest.raises(ConfigValidationError, match="ink_luminance_threshold"):
            ReconstructionConfig(ink_luminance_threshold=300)

    # ── Integer fields ────────────────────────────────────────────────

    def test_divisor_zero_rejected(self):
        with pytest.raises(ConfigValidationError, match="gap_min_width_divisor"):
            ReconstructionConfig(gap_min_width_divisor=0)

    def test_fractional_heading_chars_rejected(self):
        with pytest.raises(ConfigValidationError, match="heading_max_chars"):
            ReconstructionConfig(heading_max_chars=2.5)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            ReconstructionConfig(split_width_ratio=2.0)
