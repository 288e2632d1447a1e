# pages.py
"""
Rendered pages handed to the PDF writer.

All coordinates are in points, measured from the TOP-LEFT corner of the page
(y grows downwards, text y is the baseline). The writer flips them into
reportlab's bottom-left space when it replays a page.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from PIL import Image

from asset_loader import LoadedImage


@dataclass(frozen=True)
class TextCmd:
    x: float
    y: float
    text: str
    font: str = "Helvetica"
    size: float = 10
    color: str = "#000000"
    align: str = "left"  # left | right | center


@dataclass(frozen=True)
class RectCmd:
    x: float
    y: float
    width: float
    height: float
    fill: str = "#000000"


@dataclass(frozen=True)
class LineCmd:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str = "#000000"
    width: float = 0.5


@dataclass(frozen=True)
class ImageCmd:
    x: float
    y: float
    width: float
    height: float
    image: LoadedImage


DrawCommand = Union[TextCmd, RectCmd, LineCmd, ImageCmd]


@dataclass
class ImageBand:
    """One horizontal slice of a captured bitmap plus where it lands on the page."""
    image: Image.Image
    source_y: int
    height_px: int
    x: float
    y: float
    width: float
    height: float


@dataclass
class RenderedPage:
    commands: list = field(default_factory=list)
    band: Optional[ImageBand] = None

    @property
    def is_raster(self) -> bool:
        return self.band is not None

    def add(self, cmd: DrawCommand) -> None:
        self.commands.append(cmd)

    def texts(self) -> list[str]:
        return [c.text for c in self.commands if isinstance(c, TextCmd)]

    def images(self) -> list[ImageCmd]:
        return [c for c in self.commands if isinstance(c, ImageCmd)]
