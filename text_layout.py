# text_layout.py
"""
Width-aware text wrapping shared by the vector renderer (reportlab font
metrics) and the preview layout (Pillow font metrics).

Callers pass a ``measure`` callable returning the rendered width of a string,
so the same line-breaking rules apply to both export paths.
"""
from __future__ import annotations

from typing import Callable

from reportlab.pdfbase.pdfmetrics import stringWidth

Measure = Callable[[str], float]

# Marks a paragraph break inside wrapped notes/terms; drawn as a small gap.
SPACER = "__SPACER__"


def pdf_measure(font: str, size: float) -> Measure:
    return lambda s: stringWidth(s, font, size)


def _split_long_token(token: str, measure: Measure, max_width: float) -> list[str]:
    """Break a single long token (like an email or URL) into width-safe chunks."""
    if measure(token) <= max_width:
        return [token]
    chunks = []
    remaining = token
    while remaining:
        lo, hi = 1, len(remaining)
        fit = 1
        while lo <= hi:
            mid = (lo + hi) // 2
            if measure(remaining[:mid]) <= max_width:
                fit = mid
                lo = mid + 1
            else:
                hi = mid - 1
        chunks.append(remaining[:fit])
        remaining = remaining[fit:]
    return chunks


def wrap_text(text, measure: Measure, max_width: float) -> list[str]:
    words = str(text or "").split()
    expanded = []
    for w in words:
        expanded.extend(_split_long_token(w, measure, max_width))

    lines = []
    current = ""
    for w in expanded:
        test = current + (" " if current else "") + w
        if measure(test) <= max_width:
            current = test
        else:
            if current:
                lines.append(current)
            current = w
    if current:
        lines.append(current)
    return lines or [""]


def wrap_paragraphs(text, measure: Measure, max_width: float) -> list[str]:
    """
    Wrap multi-line free text (notes, legal terms):
    - each original line is wrapped to the width
    - a SPACER marker separates original lines
    - blank lines are dropped, trailing spacers trimmed
    """
    raw = (text or "").strip()
    if not raw:
        return []

    out = []
    for ln in raw.splitlines():
        ln = ln.strip()
        if not ln:
            continue
        out.extend(wrap_text(ln, measure, max_width))
        out.append(SPACER)
    while out and out[-1] == SPACER:
        out.pop()
    return out
