"""Tests for docstruct.whitespace: pixel-gap splitting of multi-word fragments."""

import numpy as np
import pytest
from conftest import make_fragment
from PIL import Image, ImageDraw

from docstruct.config import ReconstructionConfig
from docstruct.geometry import Rect, Size
from docstruct.whitespace import (
    ImagePixelSampler,
    column_ink_ratios,
    find_whitespace_gaps,
    refine_fragments,
    split_fragment_on_whitespace,
)


class GridSampler:
    """Returns the same luminance grid for any rectangle."""

    def __init__(self, grid):
        self.grid = grid
        self.size = Size(0, 0) if grid is None else Size(grid.shape[1], grid.shape[0])
        self.calls = 0

    def sample(self, rect):
        self.calls += 1
        return self.grid


def _grid_with_ink(width, height, ink_ranges):
    grid = np.full((height, width), 255, dtype=np.uint8)
    for start, end in ink_ranges:
        grid[:, start : end + 1] = 0
    return grid


class TestColumnAnalysis:
    def test_ink_ratios_gray(self):
        grid = np.array([[0, 255, 100], [255, 255, 219]], dtype=np.uint8)
        ratios = column_ink_ratios(grid)
        assert list(ratios) == [0.5, 0.0, 1.0]

    def test_ink_ratios_rgb(self):
        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        rgb[:, 1] = 255
        assert list(column_ink_ratios(rgb)) == [1.0, 0.0]

    def test_ink_ratios_empty(self):
        assert len(column_ink_ratios(np.zeros((0, 0)))) == 0

    def test_gaps_include_edges(self):
        ratios = [0, 0, 1, 1, 0, 0, 0, 1, 0]
        assert find_whitespace_gaps(ratios) == [(0, 1), (4, 6), (8, 8)]

    def test_gap_threshold(self):
        ratios = [1, 0.05, 0.06, 1]
        assert find_whitespace_gaps(ratios) == [(1, 1)]

    def test_min_width_scales_with_crop(self):
        ratios = [1.0] * 160
        ratios[50] = 0.0
        ratios[100] = ratios[101] = 0.0
        # 160 // 80 = 2 columns minimum.
        assert find_whitespace_gaps(ratios) == [(100, 101)]


class TestSplitFragment:
    def test_split_on_widest_gap(self, default_cfg):
        grid = _grid_with_ink(100, 10, [(5, 40), (60, 95)])
        frag = make_fragment(0, 0, 100, 10, "ab cd")
        parts = split_fragment_on_whitespace(frag, GridSampler(grid), default_cfg)
        assert [p.text for p in parts] == ["ab", "cd"]
        assert parts[0].bounds == Rect(0, 0, 50, 10)
        assert parts[1].bounds == Rect(50, 0, 50, 10)

    def test_split_maps_into_fragment_space(self, default_cfg):
        grid = _grid_with_ink(100, 10, [(5, 40), (60, 95)])
        frag = make_fragment(200, 30, 50, 8, "ab cd")
        parts = split_fragment_on_whitespace(frag, GridSampler(grid), default_cfg)
        assert parts[0].bounds.min_x == 200
        assert parts[1].bounds.min_x == pytest.approx(225)
        assert parts[1].bounds.max_x() == pytest.approx(250)
        assert all(p.bounds.min_y == 30 and p.bounds.height == 8 for p in parts)

    def test_three_tokens_pick_two_widest_in_order(self, default_cfg):
        grid = _grid_with_ink(120, 10, [(0, 19), (30, 59), (80, 119)])
        frag = make_fragment(0, 0, 120, 10, "one two three")
        parts = split_fragment_on_whitespace(frag, GridSampler(grid), default_cfg)
        assert [p.text for p in parts] == ["one", "two", "three"]
        assert parts[0].bounds.max_x() == pytest.approx(parts[1].bounds.min_x)
        assert parts[1].bounds.min_x < parts[2].bounds.min_x

    def test_too_few_gaps_unchanged(self, default_cfg):
        grid = _grid_with_ink(100, 10, [(0, 99)])
        frag = make_fragment(0, 0, 100, 10, "ab cd")
        assert split_fragment_on_whitespace(frag, GridSampler(grid), default_cfg) == [frag]

    def test_small_crop_unchanged(self, default_cfg):
        grid = _grid_with_ink(3, 1, [(1, 1)])
        frag = make_fragment(0, 0, 100, 10, "ab cd")
        assert split_fragment_on_whitespace(frag, GridSampler(grid), default_cfg) == [frag]

    def test_no_pixels_unchanged(self, default_cfg):
        frag = make_fragment(0, 0, 100, 10, "ab cd")
        assert split_fragment_on_whitespace(frag, None, default_cfg) == [frag]
        assert split_fragment_on_whitespace(frag, GridSampler(None), default_cfg) == [frag]

    def test_crop_over_pixel_limit_unchanged(self):
        grid = _grid_with_ink(100, 10, [(5, 40), (60, 95)])
        frag = make_fragment(0, 0, 100, 10, "ab cd")
        cfg = ReconstructionConfig(max_crop_pixels=999)
        assert split_fragment_on_whitespace(frag, GridSampler(grid), cfg) == [frag]
        cfg = ReconstructionConfig(max_crop_pixels=1000)
        assert len(split_fragment_on_whitespace(frag, GridSampler(grid), cfg)) == 2

    def test_single_token_not_sampled(self, default_cfg):
        sampler = GridSampler(_grid_with_ink(100, 10, [(10, 20)]))
        frag = make_fragment(0, 0, 100, 10, "word")
        assert split_fragment_on_whitespace(frag, sampler, default_cfg) == [frag]
        assert sampler.calls == 0


class TestImagePixelSampler:
    def _page_image(self):
        img = Image.new("RGB", (200, 20), "white")
        draw = ImageDraw.Draw(img)
        draw.rectangle([10, 2, 80, 17], fill="black")
        draw.rectangle([120, 2, 190, 17], fill="black")
        return img

    def test_size_is_image_pixels(self):
        sampler = ImagePixelSampler(self._page_image(), Size(100, 10))
        assert sampler.size == Size(200, 20)
        assert sampler.pixel_box(Rect(10, 1, 20, 5)) == (20, 2, 60, 12)

    def test_sample_scales_page_to_pixels(self):
        sampler = ImagePixelSampler(self._page_image(), Size(100, 10))
        grid = sampler.sample(Rect(0, 0, 100, 10))
        assert grid.shape == (20, 200)
        assert grid.dtype == np.uint8

    def test_split_with_real_image(self, default_cfg):
        sampler = ImagePixelSampler(self._page_image(), Size(100, 10))
        frag = make_fragment(0, 0, 100, 10, "ab cd")
        parts = split_fragment_on_whitespace(frag, sampler, default_cfg)
        assert [p.text for p in parts] == ["ab", "cd"]
        assert parts[0].bounds.max_x() == pytest.approx(50)

    def test_outside_image_returns_none(self):
        sampler = ImagePixelSampler(self._page_image(), Size(100, 10))
        assert sampler.sample(Rect(150, 0, 10, 10)) is None

    def test_oversized_crop_skipped(self):
        sampler = ImagePixelSampler(self._page_image(), Size(100, 10), max_pixels=10)
        assert sampler.sample(Rect(0, 0, 100, 10)) is None


class TestRefineFragments:
    def test_only_multi_word_fragments_split(self, default_cfg):
        grid = _grid_with_ink(100, 10, [(5, 40), (60, 95)])
        frags = [
            make_fragment(0, 0, 100, 10, "ab cd"),
            make_fragment(0, 20, 100, 10, "single"),
        ]
        out = refine_fragments(frags, GridSampler(grid), default_cfg)
        assert [f.text for f in out] == ["ab", "cd", "single"]

    def test_no_sampler_passthrough(self, default_cfg):
        frags = [make_fragment(0, 0, 100, 10, "ab cd")]
        assert refine_fragments(frags, None, default_cfg) == frags
