"""Tests for slicing a tall bitmap into page bands."""

import math

import pytest
from PIL import Image

from document_model import PageGeometry
from errors import RenderError
from page_slicer import PageSlicer, plan_slices


class TestPlanSlices:

    def test_three_pages_from_5400px(self):
        """Ideal slice 2200px: 2200 + 2200 + 1000."""
        plans = plan_slices(1000, 5400, 1000, 2200)
        assert [p.height_px for p in plans] == [2200, 2200, 1000]
        assert [p.source_y for p in plans] == [0, 2200, 4400]
        assert [p.page_index for p in plans] == [0, 1, 2]

    @pytest.mark.parametrize("height", [1, 791, 792, 793, 2376, 5000])
    def test_slices_cover_canvas_exactly(self, height):
        plans = plan_slices(612, height, 612, 792)
        assert sum(p.height_px for p in plans) == height
        assert len(plans) == math.ceil(height / 792)

    @pytest.mark.parametrize("height", [1234, 5000, 9999])
    def test_fractional_ratio(self, height):
        plans = plan_slices(1700, height, 612, 792)
        ideal = 792 * (1700 / 612.0)
        assert sum(p.height_px for p in plans) == height
        assert len(plans) == math.ceil(height / ideal)
        # bands are contiguous
        for prev, nxt in zip(plans, plans[1:]):
            assert nxt.source_y == prev.source_y + prev.height_px

    def test_placed_height_scales_back_to_points(self):
        plans = plan_slices(1224, 2000, 612, 792)
        assert plans[0].ratio == 2.0
        assert plans[0].placed_height == 792.0
        assert plans[-1].placed_height == (2000 - 1584) / 2.0

    def test_empty_canvas_has_no_pages(self):
        assert plan_slices(612, 0, 612, 792) == []

    @pytest.mark.parametrize("args", [(0, 100, 612, 792), (612, 100, 0, 792), (612, 100, 612, 0)])
    def test_invalid_geometry(self, args):
        with pytest.raises(RenderError):
            plan_slices(*args)

    def test_slice_smaller_than_a_pixel(self):
        with pytest.raises(RenderError):
            plan_slices(1, 100, 612, 100)


class TestPageSlicer:

    def test_slices_bitmap_into_raster_pages(self):
        pages = PageSlicer(PageGeometry.letter()).slice(Image.new("RGB", (612, 2000), "white"))
        assert len(pages) == 3
        assert all(p.is_raster for p in pages)
        assert [p.band.image.size[1] for p in pages] == [792, 792, 416]
        last = pages[-1].band
        assert (last.x, last.y, last.width, last.height) == (0.0, 0.0, 612, 416.0)

    def test_converts_alpha_bitmaps(self):
        pages = PageSlicer().slice(Image.new("RGBA", (612, 100)))
        assert pages[0].band.image.mode == "RGB"
