# preview_layout.py
"""
Branded document preview drawn with Pillow.

This is the off-screen view the raster export path captures: a US Letter
wide sheet (816 CSS px = 8.5in at 96 dpi) with a 0.5in print margin,
rendered at an integer scale factor for resolution. Layout values below are
in CSS px; the scale is applied when drawing.

The result is one tall bitmap. Page breaks are applied later by the page
slicer and are pixel-blind, so a table row may be split across two pages.
"""
from __future__ import annotations

import functools
from typing import Callable, Optional

from PIL import Image, ImageDraw, ImageFont

from asset_loader import LoadedImage
from document_model import DocumentModel, GREEN, format_date, money, percent
from text_layout import SPACER, wrap_paragraphs, wrap_text

SHEET_W = 816
PRINT_MARGIN = 48  # 0.5in
CARD_PAD = 24
CARD_X = PRINT_MARGIN
CARD_W = SHEET_W - 2 * PRINT_MARGIN
CONTENT_X = CARD_X + CARD_PAD
CONTENT_W = CARD_W - 2 * CARD_PAD
SECTION_GAP = 24

TEXT = "#111827"
MUTED = "#6b7280"
BORDER = "#e5e7eb"
TABLE_HEAD_BG = "#f4f4f5"
WHITE = "#ffffff"

# (label, fraction of table width, alignment)
INVOICE_COLUMNS = [("Item", 0.40, "left"), ("Unit", 0.12, "center"), ("Unit Price", 0.18, "right"),
                   ("Qty", 0.12, "center"), ("Total", 0.18, "right")]
QUOTE_COLUMNS = [("Item", 0.28, "left"), ("Description", 0.30, "left"), ("Unit Price", 0.16, "right"),
                 ("Qty", 0.10, "center"), ("Total", 0.16, "right")]


@functools.lru_cache(maxsize=64)
def _font(size: int, bold: bool = False):
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


class _Layout:
    """
    Records drawing operations while tracking the vertical cursor, so the
    final bitmap can be allocated at exactly the content height.
    """

    def __init__(self, scale: int):
        self.s = max(1, int(scale))
        self.ops: list[Callable] = []
        self.y = 0.0

    def px(self, v: float) -> int:
        return int(round(v * self.s))

    def measure(self, size: int, bold: bool = False) -> Callable[[str], float]:
        font = _font(self.px(size), bold)
        return lambda s: font.getlength(s) / self.s

    def text(self, x, y, text, size=14, bold=False, color=TEXT, align="left") -> None:
        anchor = {"left": "la", "right": "ra", "center": "ma"}[align]
        font = _font(self.px(size), bold)
        px, py = self.px(x), self.px(y)
        self.ops.append(lambda d, img: d.text((px, py), str(text), font=font, fill=color, anchor=anchor))

    def rect(self, x, y, w, h, fill=None, outline=None) -> None:
        box = [self.px(x), self.px(y), self.px(x + w) - 1, self.px(y + h) - 1]
        width = self.s
        self.ops.append(lambda d, img: d.rectangle(box, fill=fill, outline=outline, width=width))

    def hline(self, x1, x2, y, color=BORDER) -> None:
        pts = [(self.px(x1), self.px(y)), (self.px(x2), self.px(y))]
        width = self.s
        self.ops.append(lambda d, img: d.line(pts, fill=color, width=width))

    def image(self, src: Image.Image, x, y, w, h) -> None:
        size = (max(1, self.px(w)), max(1, self.px(h)))
        pos = (self.px(x), self.px(y))

        def _paste(d, img):
            scaled = src.resize(size, Image.Resampling.LANCZOS)
            img.paste(scaled, pos, scaled if scaled.mode == "RGBA" else None)

        self.ops.append(_paste)

    def render(self, width: float, height: float) -> Image.Image:
        img = Image.new("RGB", (self.px(width), self.px(height)), WHITE)
        draw = ImageDraw.Draw(img)
        for op in self.ops:
            op(draw, img)
        return img


def render_preview(
    document: DocumentModel,
    logo: Optional[LoadedImage] = None,
    *,
    scale: int = 2,
    brand_color: str = "#1e3a5f",
) -> Image.Image:
    lay = _Layout(scale)
    lay.y = PRINT_MARGIN
    card_top = lay.y

    _header_band(lay, document, logo, brand_color)
    lay.y += CARD_PAD
    _meta(lay, document)
    _recipient(lay, document)
    _items_table(lay, document)
    _totals(lay, document)
    _paragraph(lay, "Notes:" if document.is_invoice else "NOTES", document.notes, size=14, color=TEXT)
    if not document.is_invoice:
        _signatures(lay, document)
    _paragraph(lay, "Terms & Conditions:", document.footer.legal_terms, size=12, color=MUTED)
    if document.is_invoice:
        _signatures(lay, document)
    lay.y += CARD_PAD - SECTION_GAP
    _services_band(lay, document, brand_color)

    lay.rect(CARD_X, card_top, CARD_W, lay.y - card_top, outline=BORDER)
    lay.y += PRINT_MARGIN
    return lay.render(SHEET_W, lay.y)


# -----------------------------
# Sections
# -----------------------------
def _header_band(lay: _Layout, document: DocumentModel, logo: Optional[LoadedImage], brand_color: str) -> None:
    header = document.header
    top = lay.y
    inner_top = top + CARD_PAD
    ops_start = len(lay.ops)

    left_x = CONTENT_X
    left_h = 0.0
    if logo is not None:
        logo_w, logo_h = logo.fit(160, 64)
        lay.image(logo.pil_image(), CONTENT_X, inner_top, logo_w, logo_h)
        left_x = CONTENT_X + logo_w + 16
        left_h = logo_h

    lay.text(left_x, inner_top + 4, header.company_name, size=24, bold=True, color=WHITE)
    text_h = 4 + 30
    if header.tagline:
        lay.text(left_x, inner_top + text_h + 4, header.tagline, size=14, color=WHITE)
        text_h += 22
    left_h = max(left_h, text_h)

    right_x = CONTENT_X + CONTENT_W
    ry = inner_top
    for info in header.contact_lines:
        lay.text(right_x, ry, info, size=14, color=WHITE, align="right")
        ry += 18
    if header.address:
        ry += 8
        lay.text(right_x, ry, header.address, size=12, color=WHITE, align="right")
        ry += 16

    band_h = CARD_PAD + max(left_h, ry - inner_top) + CARD_PAD
    # background goes underneath the band's text
    box = [lay.px(CARD_X), lay.px(top), lay.px(CARD_X + CARD_W) - 1, lay.px(top + band_h) - 1]
    lay.ops.insert(ops_start, lambda d, img: d.rectangle(box, fill=brand_color))
    lay.y = top + band_h


def _meta(lay: _Layout, document: DocumentModel) -> None:
    right_x = CONTENT_X + CONTENT_W
    top = lay.y
    if document.is_invoice:
        lay.text(CONTENT_X, top, f"Invoice #: {document.document_number or 'DRAFT'}", size=14)
        lay.text(right_x, top, f"Date: {format_date(document.issue_date)}", size=14, align="right")
        right_h = 20
        if document.due_or_valid_until:
            lay.text(right_x, top + right_h, f"Due Date: {format_date(document.due_or_valid_until)}",
                     size=14, align="right")
            right_h += 20
    else:
        lay.text(CONTENT_X, top, f"Quote #: {document.document_number}", size=14, bold=True)
        lay.text(right_x, top, f"Date: {format_date(document.issue_date)}", size=14, align="right")
        right_h = 20
        if document.due_or_valid_until:
            lay.text(right_x, top + right_h, f"Valid Until: {format_date(document.due_or_valid_until)}",
                     size=14, color=MUTED, align="right")
            right_h += 20
    lay.y = top + right_h + 16
    lay.hline(CONTENT_X, right_x, lay.y)
    lay.y += SECTION_GAP


def _recipient(lay: _Layout, document: DocumentModel) -> None:
    r = document.recipient
    if r is None:
        return
    title = "Bill To:" if document.is_invoice else "PREPARED FOR"
    lay.text(CONTENT_X, lay.y, title, size=14, bold=True, color=TEXT if document.is_invoice else MUTED)
    lay.y += 26
    lay.text(CONTENT_X, lay.y, r.name, size=14, bold=True)
    lay.y += 20
    for extra in (r.company, r.email, r.phone):
        if extra:
            lay.text(CONTENT_X, lay.y, extra, size=14)
            lay.y += 20
    if r.address:
        for ln in wrap_text(r.address, lay.measure(14), CONTENT_W / 2):
            lay.text(CONTENT_X, lay.y, ln, size=14, color=MUTED)
            lay.y += 20
    lay.y += SECTION_GAP - 4


def _items_table(lay: _Layout, document: DocumentModel) -> None:
    columns = INVOICE_COLUMNS if document.is_invoice else QUOTE_COLUMNS
    col_x = [CONTENT_X]
    for _label, frac, _align in columns[:-1]:
        col_x.append(col_x[-1] + CONTENT_W * frac)
    col_w = [CONTENT_W * frac for _label, frac, _align in columns]
    pad = 12

    def cell_x(i: int, align: str) -> float:
        if align == "right":
            return col_x[i] + col_w[i] - pad
        if align == "center":
            return col_x[i] + col_w[i] / 2
        return col_x[i] + pad

    top = lay.y
    head_h = 44
    lay.rect(CONTENT_X, top, CONTENT_W, head_h, fill=TABLE_HEAD_BG)
    for i, (label, _frac, align) in enumerate(columns):
        lay.text(cell_x(i, align), top + 14, label, size=14, bold=True, align=align)
    lay.y = top + head_h

    if not document.line_items:
        lay.hline(CONTENT_X, CONTENT_X + CONTENT_W, lay.y)
        lay.text(CONTENT_X + CONTENT_W / 2, lay.y + 32, "No items added yet", size=14, color=MUTED, align="center")
        lay.y += 80
    for item in document.line_items:
        row_top = lay.y
        lay.hline(CONTENT_X, CONTENT_X + CONTENT_W, row_top)
        name_lines = wrap_text(item.name, lay.measure(14, True), col_w[0] - 2 * pad)
        y = row_top + pad
        for ln in name_lines:
            lay.text(cell_x(0, "left"), y, ln, size=14, bold=True)
            y += 20
        if document.is_invoice:
            if item.description:
                y += 4
                for ln in wrap_text(item.description, lay.measure(12), col_w[0] - 2 * pad):
                    lay.text(cell_x(0, "left"), y, ln, size=12, color=MUTED)
                    y += 16
            lay.text(cell_x(1, "center"), row_top + pad, item.unit, size=14, align="center")
            desc_bottom = y
        else:
            dy = row_top + pad
            if item.description:
                for ln in wrap_text(item.description, lay.measure(14), col_w[1] - 2 * pad):
                    lay.text(cell_x(1, "left"), dy, ln, size=14, color=MUTED)
                    dy += 20
            lay.text(cell_x(1, "left"), dy + 4, f"Unit: {item.unit}", size=12, color=MUTED)
            desc_bottom = max(y, dy + 20)
        lay.text(cell_x(2, "right"), row_top + pad, money(item.unit_price), size=14, align="right")
        lay.text(cell_x(3, "center"), row_top + pad, str(item.quantity), size=14, align="center")
        lay.text(cell_x(4, "right"), row_top + pad, money(item.line_total), size=14, bold=True, align="right")
        lay.y = max(desc_bottom, row_top + pad + 20) + pad

    lay.rect(CONTENT_X, top, CONTENT_W, lay.y - top, outline=BORDER)
    lay.y += SECTION_GAP


def _totals(lay: _Layout, document: DocumentModel) -> None:
    t = document.totals
    box_w = 320
    left = CONTENT_X + CONTENT_W - box_w
    right = CONTENT_X + CONTENT_W

    def row(label, value, size=14, bold=False, color=TEXT, gap=28):
        lay.text(left, lay.y, label, size=size, bold=bold)
        lay.text(right, lay.y, value, size=size, bold=bold, color=color, align="right")
        lay.y += gap

    row("Subtotal:", money(t.subtotal))
    row(f"Tax ({percent(t.tax_rate_percent)}%):", money(t.tax_amount))
    lay.hline(left, right, lay.y - 4)
    lay.y += 6
    row("Total:", money(t.total), size=16, bold=True, gap=32)
    if t.tracks_payment:
        lay.hline(left, right, lay.y - 4)
        lay.y += 6
        row("Amount Paid:", money(t.amount_paid), color=GREEN)
        row("Balance Due:", money(t.display_balance), size=16, bold=True, color=t.balance_color, gap=30)
        if t.payment_status is not None:
            row("Payment Status:", t.payment_status.value.upper(), size=12, color=t.payment_status.color, gap=22)
    lay.y += SECTION_GAP - 8


def _paragraph(lay: _Layout, title: str, text: Optional[str], *, size: int, color: str) -> None:
    lines = wrap_paragraphs(text, lay.measure(size), CONTENT_W)
    if not lines:
        return
    lay.hline(CONTENT_X, CONTENT_X + CONTENT_W, lay.y)
    lay.y += 16
    lay.text(CONTENT_X, lay.y, title, size=14, bold=True)
    lay.y += 26
    line_h = size + 6
    for ln in lines:
        if ln == SPACER:
            lay.y += 4
            continue
        lay.text(CONTENT_X, lay.y, ln, size=size, color=color)
        lay.y += line_h
    lay.y += SECTION_GAP - 8


def _signatures(lay: _Layout, document: DocumentModel) -> None:
    col_gap = 48
    col_w = (CONTENT_W - col_gap) / 2
    if document.is_invoice:
        labels = ("Authorized Signature", "Date")
        lay.y += 8
    else:
        lay.hline(CONTENT_X, CONTENT_X + CONTENT_W, lay.y)
        lay.y += 16
        lay.text(CONTENT_X, lay.y, "ACCEPTANCE", size=14, bold=True)
        lay.y += 30
        labels = ("Customer Signature", "Date")

    line_y = lay.y + 40
    for i, label in enumerate(labels):
        x = CONTENT_X + i * (col_w + col_gap)
        lay.hline(x, x + col_w, line_y, color="#d1d5db")
        lay.text(x, line_y + 8, label, size=12, color=MUTED)
    lay.y = line_y + 28

    if not document.is_invoice:
        note = (
            f"By signing above, you accept this quote and authorize {document.header.company_name} "
            "to proceed with the work as outlined."
        )
        for ln in wrap_text(note, lay.measure(12), CONTENT_W):
            lay.text(CONTENT_X, lay.y, ln, size=12, color=MUTED)
            lay.y += 18
    lay.y += SECTION_GAP


def _services_band(lay: _Layout, document: DocumentModel, brand_color: str) -> None:
    services = list(document.footer.service_types)
    pad = 16
    top = lay.y
    rows = (len(services) + 1) // 2
    band_h = pad + 22 + rows * 18 + pad

    lay.rect(CARD_X, top, CARD_W, band_h, fill=brand_color)
    lay.text(CARD_X + CARD_W / 2, top + pad, "OUR SERVICES", size=12, bold=True, color=WHITE, align="center")
    col_w = (CONTENT_W - 24) / 2
    for i, name in enumerate(services):
        col, r = i % 2, i // 2
        cx = CONTENT_X + col * (col_w + 24) + col_w / 2
        lay.text(cx, top + pad + 22 + r * 18, name, size=12, color=WHITE, align="center")
    lay.y = top + band_h


class DocumentPreviewView:
    """
    Off-screen render target for the raster path.

    The document is handed over explicitly; the view calls ``on_ready`` once
    its bitmap exists. ``release`` drops the bitmap so the next export starts
    from a clean target.
    """

    def __init__(self, brand_color: str = "#1e3a5f"):
        self.brand_color = brand_color
        self._bitmap: Optional[Image.Image] = None

    def render(self, document: DocumentModel, logo: Optional[LoadedImage], scale: int, on_ready) -> None:
        self._bitmap = render_preview(document, logo, scale=scale, brand_color=self.brand_color)
        on_ready()

    def capture(self) -> Optional[Image.Image]:
        return self._bitmap

    def release(self) -> None:
        self._bitmap = None
