# pdf_writer.py
"""
Final assembly of rendered pages into one PDF.

Pages arrive either as draw-command lists (vector path) or as image bands
(raster path); both are replayed onto a single reportlab canvas. Writing is
all-or-nothing: any failure raises RenderError and no bytes are returned.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Sequence

from reportlab.lib import colors
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from document_model import DocumentModel, PageGeometry
from errors import RenderError
from pages import ImageBand, ImageCmd, LineCmd, RectCmd, RenderedPage, TextCmd

logger = logging.getLogger(__name__)

FOOTER_OFFSET = 24
FOOTER_SIZE = 8
FOOTER_COLOR = "#969696"


def output_filename(document: DocumentModel) -> str:
    # strip characters not allowed on Windows/mac paths
    name = re.sub(r'[\\/*?:"<>|]', "", document.filename).strip()
    return name or f"{document.kind.filename_prefix}.pdf"


def stamp_footers(pages: Sequence[RenderedPage], company_name: str, geometry: PageGeometry) -> Sequence[RenderedPage]:
    """
    Second pass over a finished page sequence: "Page i of N" centred and the
    company name left-aligned in every footer. Must run after the last page
    exists, since N is only known then.
    """
    total = len(pages)
    y = geometry.page_height - FOOTER_OFFSET
    for i, page in enumerate(pages, start=1):
        page.add(TextCmd(geometry.page_width / 2.0, y, f"Page {i} of {total}",
                         size=FOOTER_SIZE, color=FOOTER_COLOR, align="center"))
        if company_name:
            page.add(TextCmd(geometry.margin_left, y, company_name, size=FOOTER_SIZE, color=FOOTER_COLOR))
    return pages


class PDFWriter:
    def __init__(self, geometry: PageGeometry | None = None):
        self.geometry = geometry or PageGeometry.letter()

    def write(self, pages: Sequence[RenderedPage], *, title: str = "", author: str = "") -> bytes:
        if not pages:
            raise RenderError("no pages to write")

        g = self.geometry
        buf = io.BytesIO()
        try:
            pdf = canvas.Canvas(buf, pagesize=(g.page_width, g.page_height))
            if title:
                pdf.setTitle(title)
            if author:
                pdf.setAuthor(author)
            for page in pages:
                if page.band is not None:
                    self._place_band(pdf, page.band)
                for cmd in page.commands:
                    self._replay(pdf, cmd)
                pdf.showPage()
            pdf.save()
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"PDF encoding failed: {exc!r}") from exc

        data = buf.getvalue()
        logger.debug("Wrote %d page(s), %d bytes", len(pages), len(data))
        return data

    # -----------------------------
    # Replay helpers (top-left page coords -> reportlab bottom-left)
    # -----------------------------
    def _flip(self, y: float, height: float = 0.0) -> float:
        return self.geometry.page_height - y - height

    def _replay(self, pdf, cmd) -> None:
        if isinstance(cmd, TextCmd):
            pdf.setFont(cmd.font, cmd.size)
            pdf.setFillColor(colors.HexColor(cmd.color))
            y = self._flip(cmd.y)
            if cmd.align == "right":
                pdf.drawRightString(cmd.x, y, cmd.text)
            elif cmd.align == "center":
                pdf.drawCentredString(cmd.x, y, cmd.text)
            else:
                pdf.drawString(cmd.x, y, cmd.text)
        elif isinstance(cmd, RectCmd):
            pdf.setFillColor(colors.HexColor(cmd.fill))
            pdf.rect(cmd.x, self._flip(cmd.y, cmd.height), cmd.width, cmd.height, stroke=0, fill=1)
        elif isinstance(cmd, LineCmd):
            pdf.setStrokeColor(colors.HexColor(cmd.color))
            pdf.setLineWidth(cmd.width)
            pdf.line(cmd.x1, self._flip(cmd.y1), cmd.x2, self._flip(cmd.y2))
        elif isinstance(cmd, ImageCmd):
            pdf.drawImage(
                cmd.image.reader(),
                cmd.x,
                self._flip(cmd.y, cmd.height),
                width=cmd.width,
                height=cmd.height,
                mask="auto",
            )
        else:
            raise RenderError(f"unknown draw command {type(cmd).__name__}")

    def _place_band(self, pdf, band: ImageBand) -> None:
        pdf.drawImage(
            ImageReader(band.image),
            band.x,
            self._flip(band.y, band.height),
            width=band.width,
            height=band.height,
        )
