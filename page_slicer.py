# page_slicer.py
"""
Cut one tall captured bitmap into page-height bands, one band per page.

ratio = canvas_width / page_width couples bitmap pixels to page points; the
ideal band height in pixels is page_height * ratio. Band tops are snapped to
whole pixel rows (floor(i * ideal)), the last band absorbs the remainder, so:

    sum(band heights) == canvas_height
    page count        == ceil(canvas_height / ideal)

Breaks are purely geometric. Unlike the vector path, a table row can be cut
across two pages here.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from PIL import Image

from document_model import PageGeometry
from errors import RenderError
from pages import ImageBand, RenderedPage


@dataclass(frozen=True)
class SlicePlan:
    page_index: int
    source_y: int
    height_px: int
    ratio: float

    @property
    def placed_height(self) -> float:
        return self.height_px / self.ratio


def plan_slices(canvas_width: int, canvas_height: int, page_width: float, page_height: float) -> list[SlicePlan]:
    if canvas_width <= 0 or page_width <= 0 or page_height <= 0:
        raise RenderError(f"cannot slice {canvas_width}px bitmap onto {page_width}x{page_height} page")
    ratio = canvas_width / float(page_width)
    ideal = page_height * ratio
    if ideal < 1:
        raise RenderError(f"page slice of {ideal:.3f}px is smaller than one pixel row")
    max_slice = math.ceil(ideal)

    plans: list[SlicePlan] = []
    height_left = int(canvas_height)
    page_index = 0
    while height_left > 0:
        source_y = math.floor(page_index * ideal)
        next_top = min(canvas_height, math.floor((page_index + 1) * ideal))
        slice_h = min(max_slice, next_top - source_y, canvas_height - source_y)
        plans.append(SlicePlan(page_index=page_index, source_y=source_y, height_px=slice_h, ratio=ratio))
        height_left -= slice_h
        page_index += 1
    return plans


class PageSlicer:
    def __init__(self, geometry: PageGeometry | None = None):
        self.geometry = geometry or PageGeometry.letter()

    def plan(self, canvas_width: int, canvas_height: int) -> list[SlicePlan]:
        return plan_slices(canvas_width, canvas_height, self.geometry.page_width, self.geometry.page_height)

    def slice(self, bitmap: Image.Image) -> list[RenderedPage]:
        width, height = bitmap.size
        source = bitmap if bitmap.mode == "RGB" else bitmap.convert("RGB")
        pages = []
        for plan in self.plan(width, height):
            band = source.crop((0, plan.source_y, width, plan.source_y + plan.height_px))
            pages.append(RenderedPage(band=ImageBand(
                image=band,
                source_y=plan.source_y,
                height_px=plan.height_px,
                x=0.0,
                y=0.0,
                width=self.geometry.page_width,
                height=plan.placed_height,
            )))
        return pages
