# vector_renderer.py
"""
Vector export path: draws a DocumentModel straight into page coordinates.

Breaks are row-aware. A line item never straddles two pages, the totals
block is kept together and notes/terms flow line by line onto new pages.
The branded header band appears on page 1 only; continuation pages start
directly with body content. Page numbers are stamped afterwards in a second
pass, once the page count is final.

Item descriptions: by default only the first wrapped line is drawn (longer
descriptions are cut off). ExportOptions.wrap_descriptions draws every line
and grows the row instead.
"""
from __future__ import annotations

import logging
from typing import Optional

from reportlab.lib.units import inch

from asset_loader import LoadedImage
from config import ExportOptions
from document_model import DocumentModel, GREEN, PageGeometry, format_date, money, percent
from pages import ImageCmd, LineCmd, RectCmd, RenderedPage, TextCmd
from pdf_writer import stamp_footers
from text_layout import SPACER, pdf_measure, wrap_paragraphs, wrap_text

logger = logging.getLogger(__name__)

# Header band (page 1)
HEADER_H = 1.35 * inch
LOGO_MAX_W = 1.2 * inch
LOGO_MAX_H = 0.75 * inch
BODY_GAP = 28

# Body
META_ROW_H = 18
SECTION_GAP = 12
BILL_TO_TITLE_H = 18
BILL_TO_LINE_H = 14
TABLE_HEADER_H = 22
ROW_H = 22
DESC_LINE_H = 10
DESC_WRAP_W = 198  # ~70 mm
DESC_SIZE = 8
TOTALS_GAP = 8
PARA_TITLE_H = 14

BLACK = "#000000"
WHITE = "#ffffff"
MUTED = "#646464"
TABLE_HEADER_BG = "#f0f0f0"
RULE = "#dddddd"


class VectorRenderer:
    def __init__(self, geometry: PageGeometry | None = None, options: ExportOptions | None = None):
        self.geometry = geometry or PageGeometry.letter()
        self.options = options or ExportOptions()
        self.pages: list[RenderedPage] = []
        self.page: Optional[RenderedPage] = None
        self.y = 0.0

    # Column anchors
    @property
    def qty_x(self) -> float:
        return self.geometry.page_width - 255

    @property
    def price_x(self) -> float:
        return self.geometry.page_width - 198

    @property
    def total_x(self) -> float:
        return self.geometry.right_edge - 4

    def render(self, document: DocumentModel, logo: Optional[LoadedImage] = None) -> list[RenderedPage]:
        self.pages = []
        self._new_page()

        self._draw_header(document, logo)
        self._draw_meta(document)
        self._draw_recipient(document)
        self._draw_table_header()
        for item in document.line_items:
            self._draw_item(item)
        self._draw_totals(document)
        if document.notes:
            self._flow_text("Notes:", document.notes, size=10, color=BLACK)
        if document.footer.legal_terms:
            self._flow_text("Terms & Conditions:", document.footer.legal_terms, size=8, color=MUTED)

        pages = self.pages
        stamp_footers(pages, document.header.company_name, self.geometry)
        logger.debug("Vector layout of %s: %d page(s)", document.export_key, len(pages))
        return pages

    # -----------------------------
    # Page flow
    # -----------------------------
    def _new_page(self) -> None:
        self.page = RenderedPage()
        self.pages.append(self.page)
        self.y = self.geometry.margin_top

    def _ensure_room(self, height: float) -> None:
        if self.y > self.geometry.break_threshold(height):
            self._new_page()

    def _text(self, x, y, text, font="Helvetica", size=10, color=BLACK, align="left") -> None:
        self.page.add(TextCmd(x, y, str(text), font=font, size=size, color=color, align=align))

    # -----------------------------
    # Sections
    # -----------------------------
    def _draw_header(self, document: DocumentModel, logo: Optional[LoadedImage]) -> None:
        g = self.geometry
        header = document.header
        self.page.add(RectCmd(0, 0, g.page_width, HEADER_H, fill=self.options.brand_color))

        text_x = g.margin_left
        if logo is not None:
            logo_w, logo_h = logo.fit(LOGO_MAX_W, LOGO_MAX_H)
            self.page.add(ImageCmd(g.margin_left, (HEADER_H - logo_h) / 2.0, logo_w, logo_h, logo))
            text_x = g.margin_left + logo_w + 10

        self._text(text_x, 40, header.company_name or document.kind.label, "Helvetica-Bold", 20, WHITE)
        if header.tagline:
            self._text(text_x, 58, header.tagline, "Helvetica", 10, WHITE)

        info_y = 30
        for info in header.contact_lines:
            self._text(g.right_edge, info_y, info, "Helvetica", 9, WHITE, align="right")
            info_y += 13
        if header.address:
            self._text(g.right_edge, max(info_y + 6, HEADER_H - 16), header.address, "Helvetica", 8, WHITE, align="right")

        self.y = max(self.y, HEADER_H) + BODY_GAP

    def _draw_meta(self, document: DocumentModel) -> None:
        g = self.geometry
        self._text(g.margin_left, self.y + 10, f"{document.kind.label} #: {document.document_number}")
        self._text(g.right_edge, self.y + 10, f"Date: {format_date(document.issue_date)}", align="right")
        self.y += META_ROW_H
        if document.due_or_valid_until:
            self._text(
                g.right_edge,
                self.y + 10,
                f"{document.date_label}: {format_date(document.due_or_valid_until)}",
                align="right",
            )
            self.y += META_ROW_H
        self.y += SECTION_GAP

    def _draw_recipient(self, document: DocumentModel) -> None:
        r = document.recipient
        if r is None:
            self.y += SECTION_GAP
            return
        g = self.geometry
        self._text(g.margin_left, self.y + 12, "Bill To:", "Helvetica-Bold", 12)
        self.y += BILL_TO_TITLE_H

        lines = [r.name]
        for extra in (r.company, r.email, r.phone):
            if extra:
                lines.append(extra)
        if r.address:
            lines.extend(wrap_text(r.address, pdf_measure("Helvetica", 10), g.content_width / 2.0))
        for ln in lines:
            self._text(g.margin_left, self.y + 10, ln)
            self.y += BILL_TO_LINE_H
        self.y += SECTION_GAP

    def _draw_table_header(self) -> None:
        g = self.geometry
        # keep the header with at least one row
        self._ensure_room(TABLE_HEADER_H + ROW_H)
        self.page.add(RectCmd(g.margin_left, self.y, g.content_width, TABLE_HEADER_H - 2, fill=TABLE_HEADER_BG))
        base = self.y + 14
        self._text(g.margin_left + 4, base, "Item", "Helvetica-Bold", 10)
        self._text(self.qty_x, base, "Qty", "Helvetica-Bold", 10)
        self._text(self.price_x, base, "Unit Price", "Helvetica-Bold", 10)
        self._text(self.total_x, base, "Total", "Helvetica-Bold", 10, align="right")
        self.y += TABLE_HEADER_H

    def _draw_item(self, item) -> None:
        g = self.geometry
        desc_lines: list[str] = []
        if item.description:
            wrapped = wrap_text(item.description, pdf_measure("Helvetica", DESC_SIZE), DESC_WRAP_W)
            desc_lines = wrapped if self.options.wrap_descriptions else wrapped[:1]
        row_h = ROW_H + DESC_LINE_H * len(desc_lines)

        self._ensure_room(row_h)

        base = self.y + 14
        name_w = self.qty_x - g.margin_left - 12
        name = wrap_text(item.name, pdf_measure("Helvetica", 10), name_w)[0]
        self._text(g.margin_left + 4, base, name)
        for i, ln in enumerate(desc_lines, start=1):
            self._text(g.margin_left + 4, base + DESC_LINE_H * i, ln, "Helvetica", DESC_SIZE, MUTED)
        self._text(self.qty_x, base, str(item.quantity))
        self._text(self.price_x, base, money(item.unit_price))
        self._text(self.total_x, base, money(item.line_total), align="right")
        self.page.add(LineCmd(g.margin_left, self.y + row_h - 3, g.right_edge, self.y + row_h - 3, color=RULE))
        self.y += row_h

    def _draw_totals(self, document: DocumentModel) -> None:
        t = document.totals
        rows = [("Subtotal:", money(t.subtotal), "Helvetica", 10, BLACK)]
        if t.tax_rate_percent > 0:
            rows.append((f"Tax ({percent(t.tax_rate_percent)}%):", money(t.tax_amount), "Helvetica", 10, BLACK))
        rows.append(("Total:", money(t.total), "Helvetica-Bold", 12, BLACK))
        if t.tracks_payment:
            rows.append(("Amount Paid:", money(t.amount_paid), "Helvetica", 10, GREEN))
            rows.append(("Balance Due:", money(t.display_balance), "Helvetica-Bold", 12, t.balance_color))
            if t.payment_status is not None:
                rows.append(("Payment Status:", t.payment_status.value.upper(), "Helvetica", 9, t.payment_status.color))

        block_h = sum(size + 6 for _label, _value, _font, size, _color in rows)
        self.y += TOTALS_GAP
        self._ensure_room(block_h)

        for label, value, font, size, color in rows:
            if label == "Total:":
                self.page.add(LineCmd(self.price_x, self.y + 1, self.total_x, self.y + 1, color=RULE))
            self._text(self.price_x, self.y + size + 1, label, font, size)
            self._text(self.total_x, self.y + size + 1, value, font, size, color, align="right")
            self.y += size + 6
        self.y += SECTION_GAP

    def _flow_text(self, title: str, text: str, *, size: float, color: str) -> None:
        g = self.geometry
        line_h = size + 3
        lines = wrap_paragraphs(text, pdf_measure("Helvetica", size), g.content_width)
        if not lines:
            return

        self._ensure_room(PARA_TITLE_H + line_h)
        self._text(g.margin_left, self.y + 10, title, "Helvetica-Bold", 10)
        self.y += PARA_TITLE_H
        for ln in lines:
            if ln == SPACER:
                self.y += 4
                continue
            self._ensure_room(line_h)
            self._text(g.margin_left, self.y + size, ln, "Helvetica", size, color)
            self.y += line_h
        self.y += SECTION_GAP
